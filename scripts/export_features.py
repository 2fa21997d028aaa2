#!/usr/bin/env python3
"""Export extracted integration features as JSON.

Usage:
    python scripts/export_features.py --data-dir ./data
    python scripts/export_features.py --data-dir ./data --document-id 42
    python scripts/export_features.py --data-dir ./data --output out/index.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from integration_features.catalog.documents import DocumentRepository
from integration_features.config.settings import CatalogConfig
from integration_features.pipeline.index import build_index, parse_document
from integration_features.telemetry.log_context import configure_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Export integration features extracted from stored documents",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Catalog data directory. Default: INTEGRATION_FEATURES_DATA_DIR or ./data",
    )
    parser.add_argument(
        "--document-id",
        type=int,
        default=None,
        help="Export a single document's features instead of the full index.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write JSON to this file instead of stdout.",
    )
    parser.add_argument("--indent", type=int, default=2, help="JSON indent. Default: 2")
    return parser.parse_args(argv)


def export(args: argparse.Namespace) -> str:
    """Build the requested JSON payload.

    Raises:
        LookupError: If ``--document-id`` does not match an integration document.
    """
    config = CatalogConfig()
    if args.data_dir is not None:
        config = config.model_copy(update={"data_dir": args.data_dir})
    repository = DocumentRepository.from_config(config)

    if args.document_id is not None:
        document = repository.get(args.document_id)
        if document is None or document.content_type != config.content_type:
            raise LookupError(f"Integration document {args.document_id} not found")
        return parse_document(document).to_json(indent=args.indent)

    index = build_index(repository.list_documents(config.content_type))
    return index.model_dump_json(indent=args.indent)


def main(argv: list[str] | None = None) -> int:
    configure_logging(logging.INFO)
    args = parse_args(argv)

    try:
        payload = export(args)
    except LookupError as exc:
        logger.error("%s", exc)
        return 1

    if args.output is None:
        sys.stdout.write(payload + "\n")
    else:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(payload + "\n", encoding="utf-8")
        logger.info("Wrote %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
