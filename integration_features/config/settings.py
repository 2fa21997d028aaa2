"""Integration features configuration settings."""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

GROUP_BLOCK = "popup-maker/integration-features-group"
FEATURE_BLOCK = "popup-maker/integration-feature"
LABEL_CLASS = "pm-integration-feature__label"

DEFAULT_ALLOWED_ORIGINS = ("http://localhost", "http://127.0.0.1")


def _is_truthy_env(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


class BlockNames(BaseModel):
    """Block identifiers recognized by the feature extractor."""

    group_block: str = GROUP_BLOCK
    feature_block: str = FEATURE_BLOCK
    label_class: str = LABEL_CLASS

    model_config = {"frozen": True}


class CatalogConfig(BaseModel):
    """Document catalog configuration."""

    data_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("INTEGRATION_FEATURES_DATA_DIR", "./data"))
    )
    content_type: str = Field(
        default_factory=lambda: os.getenv("INTEGRATION_FEATURES_CONTENT_TYPE", "integration")
    )
    permalink_base: str = Field(
        default_factory=lambda: os.getenv("INTEGRATION_FEATURES_PERMALINK_BASE", "/integrations")
    )

    @field_validator("content_type")
    @classmethod
    def _validate_content_type(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content_type cannot be empty")
        return value.strip()


class CacheConfig(BaseModel):
    """Optional extraction cache configuration."""

    enabled: bool = Field(
        default_factory=lambda: _is_truthy_env(os.getenv("INTEGRATION_FEATURES_CACHE_ENABLED", ""))
    )
    max_entries: int = Field(
        default_factory=lambda: int(os.getenv("INTEGRATION_FEATURES_CACHE_MAX_ENTRIES", "256"))
    )

    @field_validator("max_entries")
    @classmethod
    def _validate_max_entries(cls, value: int) -> int:
        if value < 1:
            raise ValueError("INTEGRATION_FEATURES_CACHE_MAX_ENTRIES must be >= 1")
        return value


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _is_web_origin(origin: str) -> bool:
    parsed = urlparse(origin)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc) and parsed.path in {"", "/"}


class APIConfig(BaseModel):
    """CORS controls for the read-only API.

    ``allowed_origins`` accepts a list or a comma-separated string; the
    environment value goes through the same validation as explicit input.
    """

    allowed_origins: list[str] = Field(
        default_factory=lambda: _split_csv(os.getenv("INTEGRATION_FEATURES_ALLOWED_ORIGINS", ""))
        or list(DEFAULT_ALLOWED_ORIGINS),
        validate_default=True,
    )
    cors_allow_credentials: bool = Field(
        default_factory=lambda: _is_truthy_env(
            os.getenv("INTEGRATION_FEATURES_CORS_ALLOW_CREDENTIALS", "")
        )
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _coerce_origins(cls, value: object) -> object:
        return _split_csv(value) if isinstance(value, str) else value

    @field_validator("allowed_origins")
    @classmethod
    def _check_origins(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one CORS origin is required")
        rejected = [origin for origin in value if not _is_web_origin(origin)]
        if rejected:
            raise ValueError(f"CORS origins must be http(s) scheme://host[:port]: {rejected}")
        return [origin.rstrip("/") for origin in value]


class ServiceConfig(BaseModel):
    """Root configuration for the integration features service."""

    blocks: BlockNames = Field(default_factory=BlockNames)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    log_level: str = Field(
        default_factory=lambda: os.getenv("INTEGRATION_FEATURES_LOG_LEVEL", "INFO")
    )
