"""Logging setup with per-document correlation context."""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Iterator

_DOCUMENT_ID_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "document_id", default="-"
)

LOG_FORMAT = "%(asctime)s | %(levelname)s | document_id=%(document_id)s | %(name)s | %(message)s"


class DocumentContextFilter(logging.Filter):
    """Inject the current document id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.document_id = _DOCUMENT_ID_VAR.get("-")
        return True


def _ensure_filter_on_root_handlers() -> None:
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if not any(isinstance(f, DocumentContextFilter) for f in handler.filters):
            handler.addFilter(DocumentContextFilter())


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure root logging format with document context."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root_logger.setLevel(level)
        formatter = logging.Formatter(LOG_FORMAT)
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)
    _ensure_filter_on_root_handlers()


def current_document_id() -> str:
    return _DOCUMENT_ID_VAR.get("-")


@contextmanager
def document_scope(document_id: int | str) -> Iterator[None]:
    """Tag logs emitted inside the block with ``document_id``."""
    token = _DOCUMENT_ID_VAR.set(str(document_id))
    try:
        yield
    finally:
        _DOCUMENT_ID_VAR.reset(token)
