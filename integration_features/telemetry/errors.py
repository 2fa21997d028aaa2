"""Structured error telemetry helpers."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Canonical error codes for operational telemetry."""

    BLOCK_TREE_MALFORMED = "BLOCK_TREE_MALFORMED"
    BLOCK_ATTRIBUTES_INVALID = "BLOCK_ATTRIBUTES_INVALID"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    DOCUMENT_LOAD_FAILED = "DOCUMENT_LOAD_FAILED"


def emit_structured_error(
    logger: logging.Logger,
    *,
    code: ErrorCode,
    message: str,
    suppressed: bool,
    document_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit a structured telemetry event via logging.

    Suppressed errors were degraded to a default value and are logged at
    WARNING; the rest are logged at ERROR.
    """
    level = logging.WARNING if suppressed else logging.ERROR
    logger.log(
        level,
        "integration_features_error",
        extra={
            "error_code": code,
            "error_message": message,
            "suppressed": suppressed,
            "error_document_id": document_id,
            "details": details or {},
        },
    )
