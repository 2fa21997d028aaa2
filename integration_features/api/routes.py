"""REST API routes for integration features.

Provides read-only endpoints for:
- Features of a single integration document
- The index of every integration's features, with tier and search filters
- Features grouped by tier across all integrations
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from integration_features.api.feature_service import (
    FeatureService,
    ResponseFormat,
    TierParam,
)
from integration_features.config.settings import ServiceConfig

router = APIRouter()

_config = ServiceConfig()
_feature_service = FeatureService.from_config(_config)


@router.get("/integration-features")
def get_integration_features_index(
    tier: TierParam | None = Query(default=None, description="Filter by tier"),
    search: str | None = Query(default=None, description="Search features by label"),
) -> dict[str, Any]:
    """Index of all integration features.

    ``filtered_features`` is added when ``tier`` is given and
    ``search_results`` when ``search`` is given.
    """
    response = _feature_service.get_index(tier=tier, search=search)
    return response.model_dump(mode="json", exclude_none=True)


@router.get("/integration-features/by-tier")
def get_integration_features_by_tier() -> dict[str, Any]:
    """Features across all integrations, grouped by tier."""
    return {
        tier: listing.model_dump(mode="json")
        for tier, listing in _feature_service.get_features_by_tier().items()
    }


@router.get("/integration-features/{document_id}")
def get_document_features(
    document_id: int,
    format: ResponseFormat = Query(default="full", description="Response format"),
    include_descriptions: bool = Query(
        default=False, description="Include feature descriptions in the api format"
    ),
) -> dict[str, Any]:
    """Features of a single integration document."""
    response = _feature_service.get_document_features(
        document_id,
        response_format=format,
        include_descriptions=include_descriptions,
    )
    return response.model_dump(mode="json", exclude_none=True)
