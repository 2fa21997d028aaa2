"""Markup helpers for feature labels and descriptions."""

from __future__ import annotations

from bs4 import BeautifulSoup

from integration_features.blocks.nodes import Block

_REMOVED_ELEMENTS = ["script", "style"]


def strip_all_tags(markup: str) -> str:
    """Return the text of ``markup`` with every tag removed and whitespace trimmed.

    ``<script>`` and ``<style>`` elements are dropped together with their content.
    """
    if not markup:
        return ""
    if "<" not in markup:
        return markup.strip()

    soup = BeautifulSoup(markup, "html.parser")
    for element in soup.find_all(_REMOVED_ELEMENTS):
        element.decompose()
    return soup.get_text().strip()


def find_label_text(markup: str, label_class: str) -> str:
    """Text of the first ``<span>`` whose class contains ``label_class``."""
    if not markup or label_class not in markup:
        return ""

    soup = BeautifulSoup(markup, "html.parser")
    span = soup.find("span", class_=lambda value: bool(value) and label_class in value)
    if span is None:
        return ""
    return strip_all_tags(span.decode_contents())


def render_block_content(block: Block) -> str:
    """Rendered markup of a block: its inner HTML, else its text fragments, trimmed."""
    if block.inner_html:
        return block.inner_html.strip()
    if block.inner_content:
        return block.string_fragments.strip()
    return ""


def describe_children(children: list[Block]) -> str:
    """Join the non-empty rendered markup of ``children`` with newlines."""
    parts = [render_block_content(child) for child in children]
    return "\n".join(part for part in parts if part)
