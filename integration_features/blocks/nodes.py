"""Block tree models.

``Block`` mirrors the shape produced by the block grammar parser (and by
WordPress' ``parse_blocks``). Extraction never reads a ``Block`` directly;
it classifies each one into a ``GroupNode``, ``FeatureNode`` or
``OtherNode`` whose fields already carry their defaults.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal, TypeVar, Union

from pydantic import BaseModel, Field

from integration_features.config.settings import BlockNames

logger = logging.getLogger(__name__)

Tier = Literal["free", "pro", "proplus"]
IconStyle = Literal["chevron", "plus-minus"]
HeadingTag = Literal["h2", "h3"]

TIERS: tuple[Tier, ...] = ("free", "pro", "proplus")
ICON_STYLES: tuple[IconStyle, ...] = ("chevron", "plus-minus")
HEADING_TAGS: tuple[HeadingTag, ...] = ("h2", "h3")

DEFAULT_GROUP_ICON = "admin-plugins"

_T = TypeVar("_T")

_INT_RE = re.compile(r"-?[0-9]+", re.ASCII)


class Block(BaseModel):
    """A parsed block: name, attributes, markup and child blocks."""

    block_name: str | None = Field(default=None, alias="blockName")
    attrs: dict[str, Any] = Field(default_factory=dict)
    inner_html: str = Field(default="", alias="innerHTML")
    inner_content: list[str | None] = Field(default_factory=list, alias="innerContent")
    inner_blocks: list[Block] = Field(default_factory=list, alias="innerBlocks")

    model_config = {"populate_by_name": True}

    @property
    def string_fragments(self) -> str:
        """Concatenated text fragments of ``inner_content``."""
        return "".join(part for part in self.inner_content if isinstance(part, str))

    @classmethod
    def from_raw(cls, raw: Any) -> Block | None:
        """Coerce a JSON-like node into a Block, defaulting every bad field.

        Returns None only when ``raw`` is not a mapping at all.
        """
        if isinstance(raw, Block):
            return raw
        if not isinstance(raw, dict):
            return None
        return coerce_blocks([raw])[0]


def _first_present(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _build_block(raw: dict[str, Any], inner_blocks: list[Block]) -> Block:
    name = _first_present(raw, "blockName", "block_name")
    attrs = raw.get("attrs")
    inner_html = _first_present(raw, "innerHTML", "inner_html")
    inner_content = _first_present(raw, "innerContent", "inner_content")

    return Block(
        block_name=name if isinstance(name, str) and name else None,
        attrs=attrs if isinstance(attrs, dict) else {},
        inner_html=inner_html if isinstance(inner_html, str) else "",
        inner_content=[
            part
            for part in _as_list(inner_content)
            if part is None or isinstance(part, str)
        ],
        inner_blocks=inner_blocks,
    )


@dataclass
class _PendingBlock:
    """A raw node whose children are still being coerced."""

    raw: dict[str, Any]
    items: list[Any]
    built: list[Block] = field(default_factory=list)
    position: int = 0


def coerce_blocks(raw: Any) -> list[Block]:
    """Coerce a JSON-like tree into blocks; non-lists yield an empty list.

    Children are built before their parent with an explicit stack, so tree
    depth is not limited by the interpreter's recursion limit.
    """
    if not isinstance(raw, (list, tuple)):
        return []

    root = _PendingBlock(raw={}, items=list(raw))
    stack = [root]
    while stack:
        frame = stack[-1]
        if frame.position < len(frame.items):
            item = frame.items[frame.position]
            frame.position += 1
            if isinstance(item, Block):
                frame.built.append(item)
            elif isinstance(item, dict):
                children = _first_present(item, "innerBlocks", "inner_blocks")
                stack.append(_PendingBlock(raw=item, items=_as_list(children)))
            continue

        stack.pop()
        if stack:
            stack[-1].built.append(_build_block(frame.raw, frame.built))
    return root.built


# --- Node variants ---


class GroupNode(BaseModel):
    """A feature group block with attribute defaults applied."""

    kind: Literal["group"] = "group"
    heading: str = ""
    subheading: str = ""
    icon: str = DEFAULT_GROUP_ICON
    icon_color: str = ""
    icon_background_color: str = ""
    heading_tag: HeadingTag = "h2"
    show_feature_count: bool = False
    feature_count: int = 0
    anchor: str = ""
    children: list[Block] = Field(default_factory=list)


class FeatureNode(BaseModel):
    """A feature block with attribute defaults applied."""

    kind: Literal["feature"] = "feature"
    label: str = ""
    tier: Tier = "free"
    has_description: bool = False
    show_free_badge: bool = False
    icon_style: IconStyle = "plus-minus"
    markup: str = ""
    children: list[Block] = Field(default_factory=list)


class OtherNode(BaseModel):
    """Any other block, including freeform content without a name."""

    kind: Literal["other"] = "other"
    block_name: str | None = None
    children: list[Block] = Field(default_factory=list)


Node = Union[GroupNode, FeatureNode, OtherNode]


def classify(block: Block, names: BlockNames | None = None) -> Node:
    """Map a block onto the node variant the extractor works with."""
    names = names or BlockNames()
    attrs = block.attrs

    if block.block_name == names.group_block:
        return GroupNode(
            heading=_str_attr(attrs, "heading"),
            subheading=_str_attr(attrs, "subheading"),
            icon=_str_attr(attrs, "groupIcon") or DEFAULT_GROUP_ICON,
            icon_color=_str_attr(attrs, "groupIconColor"),
            icon_background_color=_str_attr(attrs, "groupIconBackgroundColor"),
            heading_tag=_choice_attr(attrs, "headingTag", HEADING_TAGS, "h2"),
            show_feature_count=_bool_attr(attrs, "showFeatureCount"),
            feature_count=_int_attr(attrs, "featureCount"),
            anchor=_str_attr(attrs, "anchor"),
            children=block.inner_blocks,
        )

    if block.block_name == names.feature_block:
        return FeatureNode(
            label=_str_attr(attrs, "label"),
            tier=_choice_attr(attrs, "tier", TIERS, "free"),
            has_description=_flag_attr(attrs, "hasDescription"),
            show_free_badge=_bool_attr(attrs, "showFreeBadge"),
            icon_style=_choice_attr(attrs, "iconStyle", ICON_STYLES, "plus-minus"),
            markup=block.inner_html or block.string_fragments,
            children=block.inner_blocks,
        )

    return OtherNode(block_name=block.block_name, children=block.inner_blocks)


# --- Total attribute reads ---


def _str_attr(attrs: dict[str, Any], key: str, default: str = "") -> str:
    value = attrs.get(key, default)
    return value if isinstance(value, str) else default


def _bool_attr(attrs: dict[str, Any], key: str, default: bool = False) -> bool:
    value = attrs.get(key, default)
    return value if isinstance(value, bool) else default


def _int_attr(attrs: dict[str, Any], key: str, default: int = 0) -> int:
    value = attrs.get(key, default)
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        return int(value.strip())
    return default


def _flag_attr(attrs: dict[str, Any], key: str) -> bool:
    """Truthiness of a loosely typed flag; ``"0"`` and ``""`` count as unset."""
    value = attrs.get(key)
    if isinstance(value, str):
        return value not in ("", "0")
    return bool(value)


def _choice_attr(attrs: dict[str, Any], key: str, choices: tuple[_T, ...], default: _T) -> _T:
    value = attrs.get(key, default)
    if value in choices:
        return value
    logger.debug("Unknown %s value %r, using %r", key, value, default)
    return default
