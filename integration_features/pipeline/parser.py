"""Integration feature parser.

Walks a block tree, collects feature groups and features into categories,
and counts them by tier. ``extract_features`` is the pure extraction pass;
``FeatureParser`` wraps one pass with the read-only views the API and the
index builder use.

Walk rules, depth first and in document order:

* blocks without a name (freeform text) are skipped;
* a feature group becomes a Category, and only its direct feature children
  become its features;
* a feature outside any group goes into the shared uncategorized bucket,
  created the first time one is seen;
* any other block is searched recursively.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from integration_features.blocks.grammar import parse_blocks
from integration_features.blocks.nodes import (
    DEFAULT_GROUP_ICON,
    Block,
    FeatureNode,
    GroupNode,
    classify,
    coerce_blocks,
)
from integration_features.config.settings import BlockNames
from integration_features.pipeline.markup import describe_children, find_label_text, strip_all_tags
from integration_features.pipeline.records import (
    UNCATEGORIZED_HEADING,
    UNCATEGORIZED_ID,
    ApiCategory,
    ApiFeature,
    Category,
    ExtractionResult,
    Feature,
    FeatureSummary,
    empty_tier_counts,
)
from integration_features.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class _Accumulator:
    """Mutable state of a single extraction pass. Never leaves ``extract_features``."""

    names: BlockNames
    categories: list[Category] = field(default_factory=list)
    total_features: int = 0
    features_by_tier: dict[str, int] = field(default_factory=empty_tier_counts)
    uncategorized_index: int | None = None
    group_count: int = 0
    used_ids: set[str] = field(default_factory=set)

    def count(self, feature: Feature) -> None:
        self.total_features += 1
        if feature.tier in self.features_by_tier:
            self.features_by_tier[feature.tier] += 1

    def add_uncategorized(self, feature: Feature) -> None:
        if self.uncategorized_index is None:
            self.categories.append(
                Category(
                    id=UNCATEGORIZED_ID,
                    heading=UNCATEGORIZED_HEADING,
                    subheading="",
                    icon=DEFAULT_GROUP_ICON,
                )
            )
            self.uncategorized_index = len(self.categories) - 1

        bucket = self.categories[self.uncategorized_index]
        self.categories[self.uncategorized_index] = bucket.model_copy(
            update={"features": [*bucket.features, feature]}
        )
        self.count(feature)

    def next_group_id(self, node: GroupNode) -> str:
        self.group_count += 1
        base = _slugify(node.anchor) or _slugify(node.heading) or f"group-{self.group_count}"
        candidate = base
        suffix = 2
        while candidate in self.used_ids:
            candidate = f"{base}-{suffix}"
            suffix += 1
        self.used_ids.add(candidate)
        return candidate


def _slugify(text: str) -> str:
    return _SLUG_RE.sub("-", strip_all_tags(text).lower()).strip("-")


def parse_feature(node: FeatureNode, names: BlockNames | None = None) -> Feature:
    """Build a Feature from a classified feature block."""
    names = names or BlockNames()

    if node.label:
        label = strip_all_tags(node.label)
    else:
        label = find_label_text(node.markup, names.label_class)

    description = describe_children(node.children)

    return Feature(
        label=label,
        tier=node.tier,
        has_description=node.has_description or bool(description),
        description=description,
        show_free_badge=node.show_free_badge,
        icon_style=node.icon_style,
    )


def _parse_group(node: GroupNode, acc: _Accumulator) -> Category:
    features: list[Feature] = []
    for child in node.children:
        child_node = classify(child, acc.names)
        if not isinstance(child_node, FeatureNode):
            continue
        feature = parse_feature(child_node, acc.names)
        features.append(feature)
        acc.count(feature)

    return Category(
        id=acc.next_group_id(node),
        heading=node.heading,
        subheading=node.subheading,
        icon=node.icon,
        icon_color=node.icon_color,
        icon_background_color=node.icon_background_color,
        heading_tag=node.heading_tag,
        show_feature_count=node.show_feature_count,
        feature_count=node.feature_count,
        features=features,
    )


def _walk(blocks: list[Block], acc: _Accumulator) -> None:
    # One (siblings, position) frame per open level keeps document order
    # without recursing.
    stack: list[tuple[list[Block], int]] = [(blocks, 0)]
    while stack:
        siblings, position = stack.pop()
        if position >= len(siblings):
            continue
        stack.append((siblings, position + 1))

        block = siblings[position]
        if not block.block_name:
            continue

        node = classify(block, acc.names)
        if isinstance(node, GroupNode):
            acc.categories.append(_parse_group(node, acc))
        elif isinstance(node, FeatureNode):
            acc.add_uncategorized(parse_feature(node, acc.names))
        elif node.children:
            stack.append((node.children, 0))


def extract_features(blocks: Any, names: BlockNames | None = None) -> ExtractionResult:
    """Extract categories, features and tier counts from a block tree.

    ``blocks`` may be a list of ``Block`` models or of raw block dicts. Anything
    that is not a list yields an empty result.
    """
    if not isinstance(blocks, (list, tuple)):
        emit_structured_error(
            logger,
            code=ErrorCode.BLOCK_TREE_MALFORMED,
            message=f"Expected a list of blocks, got {type(blocks).__name__}",
            suppressed=True,
        )
        return ExtractionResult()

    acc = _Accumulator(names=names or BlockNames())
    _walk(coerce_blocks(blocks), acc)

    logger.debug(
        "Extracted integration features",
        extra={
            "categories": len(acc.categories),
            "total_features": acc.total_features,
        },
    )
    return ExtractionResult(
        categories=acc.categories,
        total_features=acc.total_features,
        features_by_tier=dict(acc.features_by_tier),
    )


class FeatureParser:
    """Extracted feature data for one document, with read-only views over it."""

    def __init__(self, blocks: Any = None, names: BlockNames | None = None) -> None:
        self._names = names or BlockNames()
        self._data: ExtractionResult | None = None
        if blocks is not None:
            self.parse(blocks)

    @classmethod
    def from_content(cls, content: str, names: BlockNames | None = None) -> FeatureParser:
        """Parse serialized block markup."""
        return cls(parse_blocks(content), names=names)

    @classmethod
    def from_result(cls, data: ExtractionResult, names: BlockNames | None = None) -> FeatureParser:
        """Wrap an existing extraction result, e.g. one served from a cache."""
        parser = cls(names=names)
        parser._data = data
        return parser

    def parse(self, blocks: Any) -> FeatureParser:
        self._data = extract_features(blocks, self._names)
        return self

    def get_data(self) -> ExtractionResult | None:
        return self._data

    def to_json(self, indent: int | None = 2) -> str:
        return (self._data or ExtractionResult()).model_dump_json(indent=indent)

    def get_categories(self) -> list[Category]:
        return list(self._data.categories) if self._data else []

    def get_all_features(self) -> list[Feature]:
        """All features, in category order then document order. No dedup."""
        features: list[Feature] = []
        for category in self.get_categories():
            features.extend(category.features)
        return features

    def get_features_by_tier(self, tier: str) -> list[Feature]:
        return [feature for feature in self.get_all_features() if feature.tier == tier]

    def get_tier_counts(self) -> dict[str, int]:
        if self._data is None:
            return empty_tier_counts()
        return dict(self._data.features_by_tier)

    def get_total_count(self) -> int:
        return self._data.total_features if self._data else 0

    def get_features_with_descriptions(self) -> list[Feature]:
        return [feature for feature in self.get_all_features() if feature.has_description]

    def search_features(self, query: str) -> list[Feature]:
        """Case-insensitive substring match on labels. An empty query matches all."""
        needle = query.lower()
        return [feature for feature in self.get_all_features() if needle in feature.label.lower()]

    def get_summary(self) -> FeatureSummary:
        categories = self.get_categories()
        return FeatureSummary(
            total_categories=len(categories),
            total_features=len(self.get_all_features()),
            features_with_descriptions=len(self.get_features_with_descriptions()),
            features_by_tier=self.get_tier_counts(),
            category_names=[category.heading for category in categories],
        )

    def to_api_format(self, include_descriptions: bool = False) -> list[ApiCategory]:
        """Simplified per-category export used by API responses."""
        output: list[ApiCategory] = []
        for category in self.get_categories():
            output.append(
                ApiCategory(
                    name=category.heading,
                    icon=category.icon,
                    features=[
                        ApiFeature(
                            label=feature.label,
                            tier=feature.tier,
                            description=(
                                feature.description
                                if include_descriptions and feature.description
                                else None
                            ),
                        )
                        for feature in category.features
                    ],
                )
            )
        return output
