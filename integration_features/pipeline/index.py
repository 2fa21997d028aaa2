"""Integration index builder.

Runs the feature parser over every document and aggregates the results.
Documents are processed in the order the source supplies them; that order
is preserved in ``integrations`` and ``all_features``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from integration_features.blocks.grammar import parse_blocks
from integration_features.catalog.documents import Document
from integration_features.config.settings import BlockNames
from integration_features.pipeline.cache import ExtractionCache
from integration_features.pipeline.parser import FeatureParser, extract_features
from integration_features.pipeline.records import (
    ExtractionResult,
    IndexedFeature,
    IntegrationIndex,
    IntegrationSummary,
)
from integration_features.telemetry.log_context import document_scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentFeatures:
    """One document paired with the parser holding its extracted features."""

    document: Document
    parser: FeatureParser


def parse_document(
    document: Document,
    cache: ExtractionCache | None = None,
    names: BlockNames | None = None,
) -> FeatureParser:
    """Extract a document's features, through ``cache`` when one is given."""
    names = names or BlockNames()

    def extract(content: str) -> ExtractionResult:
        return extract_features(parse_blocks(content), names)

    with document_scope(document.id):
        if cache is None:
            result = extract(document.content)
        else:
            result = cache.get_or_extract(document.id, document.content, extract)
    return FeatureParser.from_result(result, names=names)


def collect_document_features(
    documents: Iterable[Document],
    cache: ExtractionCache | None = None,
    names: BlockNames | None = None,
) -> list[DocumentFeatures]:
    """Parse every document, keeping the input order."""
    return [
        DocumentFeatures(document=document, parser=parse_document(document, cache, names))
        for document in documents
    ]


def build_index(
    documents: Iterable[Document],
    cache: ExtractionCache | None = None,
    names: BlockNames | None = None,
) -> IntegrationIndex:
    """Build the cross-document feature index."""
    index = IntegrationIndex()

    for entry in collect_document_features(documents, cache, names):
        document, parser = entry.document, entry.parser

        index.integrations.append(
            IntegrationSummary(
                id=document.id,
                title=document.title,
                slug=document.slug,
                url=document.url,
                summary=parser.get_summary(),
                features=parser.to_api_format(include_descriptions=True),
            )
        )

        for feature in parser.get_all_features():
            indexed = IndexedFeature(
                **feature.model_dump(),
                integration_id=document.id,
                integration_title=document.title,
            )
            index.all_features.append(indexed)
            index.total_features += 1
            # Unknown tiers stay in all_features but get no bucket.
            if indexed.tier in index.by_tier:
                index.by_tier[indexed.tier].append(indexed)

    logger.info(
        "Built integration features index",
        extra={
            "integrations": len(index.integrations),
            "total_features": index.total_features,
        },
    )
    return index
