"""Block grammar parser.

Turns serialized block markup into a tree of ``Block`` models::

    <!-- wp:popup-maker/integration-feature {"tier":"pro"} -->
    <div>...</div>
    <!-- /wp:popup-maker/integration-feature -->

Openers carry an optional JSON attribute object, closers repeat the name,
and void blocks end in ``/-->``. Names without a namespace belong to
``core/``. Text outside any block becomes a freeform block with no name.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from integration_features.blocks.nodes import Block
from integration_features.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)

_DELIMITER_RE = re.compile(
    r"<!--\s+(?P<closer>/)?wp:(?P<namespace>[a-z][a-z0-9_-]*/)?(?P<name>[a-z][a-z0-9_-]*)"
    r"\s+(?P<attrs>\{.*?\}\s+)?(?P<void>/)?-->",
    re.DOTALL,
)


@dataclass
class _Frame:
    """An opened block still collecting its content."""

    name: str
    attrs: dict[str, Any]
    html: list[str] = field(default_factory=list)
    content: list[str | None] = field(default_factory=list)
    children: list[Block] = field(default_factory=list)

    def add_text(self, text: str) -> None:
        if text:
            self.html.append(text)
            self.content.append(text)

    def add_child(self, block: Block) -> None:
        self.children.append(block)
        self.content.append(None)

    def to_block(self) -> Block:
        return Block(
            block_name=self.name,
            attrs=self.attrs,
            inner_html="".join(self.html),
            inner_content=self.content,
            inner_blocks=self.children,
        )


def _freeform(text: str) -> Block:
    return Block(block_name=None, inner_html=text, inner_content=[text])


def _parse_attrs(raw: str | None, block_name: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        attrs = json.loads(raw)
    except json.JSONDecodeError as exc:
        emit_structured_error(
            logger,
            code=ErrorCode.BLOCK_ATTRIBUTES_INVALID,
            message=str(exc),
            suppressed=True,
            details={"block_name": block_name},
        )
        return {}
    return attrs if isinstance(attrs, dict) else {}


def parse_blocks(document: str) -> list[Block]:
    """Parse serialized block markup into a list of top-level blocks."""
    if not isinstance(document, str) or not document:
        return []

    output: list[Block] = []
    stack: list[_Frame] = []
    offset = 0

    def add_text(text: str) -> None:
        if not text:
            return
        if stack:
            stack[-1].add_text(text)
        else:
            output.append(_freeform(text))

    def add_block(block: Block) -> None:
        if stack:
            stack[-1].add_child(block)
        else:
            output.append(block)

    for match in _DELIMITER_RE.finditer(document):
        start, end = match.span()
        add_text(document[offset:start])
        offset = end

        name = (match.group("namespace") or "core/") + match.group("name")

        if match.group("closer"):
            if not stack:
                # Stray closer: keep it as plain text.
                add_text(match.group(0))
                continue
            frame = stack.pop()
            if frame.name != name:
                logger.debug("Closer %s does not match open block %s", name, frame.name)
            add_block(frame.to_block())
            continue

        attrs = _parse_attrs(match.group("attrs"), name)
        if match.group("void"):
            add_block(Block(block_name=name, attrs=attrs))
        else:
            stack.append(_Frame(name=name, attrs=attrs))

    add_text(document[offset:])

    # Blocks left open at end of input are closed in place.
    while stack:
        frame = stack.pop()
        add_block(frame.to_block())

    return output
