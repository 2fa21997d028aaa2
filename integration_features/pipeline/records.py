"""Feature records: extracted categories and features, summaries, index shapes."""

from __future__ import annotations

from pydantic import BaseModel, Field

from integration_features.blocks.nodes import (
    DEFAULT_GROUP_ICON,
    TIERS,
    HeadingTag,
    IconStyle,
    Tier,
)

UNCATEGORIZED_ID = "__uncategorized__"
UNCATEGORIZED_HEADING = "Features"


def empty_tier_counts() -> dict[str, int]:
    return {tier: 0 for tier in TIERS}


class Feature(BaseModel):
    """A single labeled capability extracted from a feature block."""

    label: str = ""
    tier: Tier = "free"
    has_description: bool = False
    description: str = ""
    show_free_badge: bool = False
    icon_style: IconStyle = "plus-minus"

    model_config = {"frozen": True}


class IndexedFeature(Feature):
    """A feature carrying the provenance of the document it came from."""

    integration_id: int
    integration_title: str


class Category(BaseModel):
    """A feature group, or the synthetic bucket for standalone features.

    ``show_feature_count`` and ``feature_count`` are display hints copied from
    the block; they are not recomputed from ``features``.
    """

    id: str
    heading: str = ""
    subheading: str = ""
    icon: str = DEFAULT_GROUP_ICON
    icon_color: str = ""
    icon_background_color: str = ""
    heading_tag: HeadingTag = "h2"
    show_feature_count: bool = False
    feature_count: int = 0
    features: list[Feature] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def is_uncategorized(self) -> bool:
        return self.id == UNCATEGORIZED_ID


class ExtractionResult(BaseModel):
    """Everything one extraction pass found in a block tree."""

    categories: list[Category] = Field(default_factory=list)
    total_features: int = 0
    features_by_tier: dict[str, int] = Field(default_factory=empty_tier_counts)

    model_config = {"frozen": True}


class FeatureSummary(BaseModel):
    """Summary statistics for one document."""

    total_categories: int
    total_features: int
    features_with_descriptions: int
    features_by_tier: dict[str, int]
    category_names: list[str]


class ApiFeature(BaseModel):
    label: str
    tier: Tier
    description: str | None = None


class ApiCategory(BaseModel):
    """Simplified external-facing category shape."""

    name: str
    icon: str
    features: list[ApiFeature] = Field(default_factory=list)


class IntegrationSummary(BaseModel):
    """Per-document entry of the integration index."""

    id: int
    title: str
    slug: str
    url: str
    summary: FeatureSummary
    features: list[ApiCategory]


class IntegrationIndex(BaseModel):
    """Cross-document aggregate of every integration's features."""

    integrations: list[IntegrationSummary] = Field(default_factory=list)
    total_features: int = 0
    all_features: list[IndexedFeature] = Field(default_factory=list)
    by_tier: dict[str, list[IndexedFeature]] = Field(
        default_factory=lambda: {tier: [] for tier in TIERS}
    )
