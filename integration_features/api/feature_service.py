"""Service layer behind the integration features endpoints."""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import HTTPException
from pydantic import BaseModel

from integration_features.catalog.documents import (
    Document,
    DocumentRepository,
    DocumentSource,
)
from integration_features.config.settings import ServiceConfig
from integration_features.pipeline.cache import ExtractionCache
from integration_features.pipeline.index import build_index, parse_document
from integration_features.pipeline.records import (
    ApiCategory,
    ExtractionResult,
    FeatureSummary,
    IndexedFeature,
    IntegrationIndex,
)
from integration_features.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)

ResponseFormat = Literal["full", "api", "summary"]
TierParam = Literal["free", "pro", "proplus"]


class DocumentFeaturesResponse(BaseModel):
    """Features of a single integration document."""

    document_id: int
    title: str
    slug: str
    data: ExtractionResult | list[ApiCategory] | FeatureSummary


class IndexResponse(IntegrationIndex):
    """The integration index plus optional filter results."""

    filtered_features: list[IndexedFeature] | None = None
    search_results: list[IndexedFeature] | None = None


class TierListing(BaseModel):
    count: int
    features: list[dict[str, Any]]


class FeatureService:
    def __init__(
        self,
        documents: DocumentSource,
        config: ServiceConfig | None = None,
        cache: ExtractionCache | None = None,
    ) -> None:
        self._documents = documents
        self._config = config or ServiceConfig()
        self._cache = cache

    @staticmethod
    def from_config(config: ServiceConfig) -> FeatureService:
        cache = ExtractionCache(config.cache.max_entries) if config.cache.enabled else None
        return FeatureService(
            documents=DocumentRepository.from_config(config.catalog),
            config=config,
            cache=cache,
        )

    @property
    def cache(self) -> ExtractionCache | None:
        return self._cache

    def _resolve_document(self, document_id: int) -> Document:
        document = self._documents.get(document_id)
        if document is None or document.content_type != self._config.catalog.content_type:
            emit_structured_error(
                logger,
                code=ErrorCode.DOCUMENT_NOT_FOUND,
                message="Integration document not found",
                suppressed=False,
                document_id=document_id,
            )
            raise HTTPException(
                status_code=404,
                detail={"code": "not_found", "message": "Integration document not found"},
            )
        return document

    def _list_documents(self) -> list[Document]:
        return self._documents.list_documents(self._config.catalog.content_type)

    def get_document_features(
        self,
        document_id: int,
        response_format: ResponseFormat = "full",
        include_descriptions: bool = False,
    ) -> DocumentFeaturesResponse:
        document = self._resolve_document(document_id)
        parser = parse_document(document, self._cache, self._config.blocks)

        if response_format == "summary":
            data: ExtractionResult | list[ApiCategory] | FeatureSummary = parser.get_summary()
        elif response_format == "api":
            data = parser.to_api_format(include_descriptions)
        else:
            data = parser.get_data() or ExtractionResult()

        return DocumentFeaturesResponse(
            document_id=document.id,
            title=document.title,
            slug=document.slug,
            data=data,
        )

    def build_index(self) -> IntegrationIndex:
        return build_index(self._list_documents(), self._cache, self._config.blocks)

    def get_index(self, tier: TierParam | None = None, search: str | None = None) -> IndexResponse:
        index = self.build_index()
        response = IndexResponse(**dict(index))

        if tier and tier in index.by_tier:
            response.filtered_features = index.by_tier[tier]

        if search:
            needle = search.lower()
            response.search_results = [
                feature for feature in index.all_features if needle in feature.label.lower()
            ]

        return response

    def get_features_by_tier(self) -> dict[str, TierListing]:
        index = self.build_index()
        return {
            tier: TierListing(
                count=len(features),
                features=[
                    {"label": feature.label, "integration": feature.integration_title}
                    for feature in features
                ],
            )
            for tier, features in index.by_tier.items()
        }

    def invalidate_document(self, document_id: int) -> bool:
        """Forget cached extraction for a document whose content changed."""
        if self._cache is None:
            return False
        return self._cache.invalidate(document_id)
