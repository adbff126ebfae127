"""Markup tree model and flattening into marked text."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple, Union

LOG = logging.getLogger("mixmark")

LATEX_BLOCK_TAG = "latex"
LATEX_INLINE_TAG = "latex-inline"
LINE_BREAK_TAG = "br"
PARAGRAPH_TAGS = frozenset({"p", "div"})
FRAGMENT_TAG = "#fragment"

EMPTY_INLINE_MATH = "$ $"


@dataclass(frozen=True)
class TextNode:
    text: str


@dataclass(frozen=True)
class ElementNode:
    tag: str
    children: Tuple["MarkupNode", ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tag", self.tag.lower())
        object.__setattr__(self, "children", tuple(self.children))


MarkupNode = Union[TextNode, ElementNode]


def _require_node(node: object) -> None:
    if not isinstance(node, (TextNode, ElementNode)):
        raise TypeError(f"Expected TextNode or ElementNode, got {type(node).__name__}")


def text_of(node: MarkupNode) -> str:
    _require_node(node)
    if isinstance(node, TextNode):
        return node.text
    return "".join(text_of(child) for child in node.children)


def encode_math(body: str, *, inline: bool, trim: bool = True) -> str:
    """Wrap a math body in ``$``/``$$`` delimiters that ``segment`` decodes back."""
    if inline:
        body = body.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    if trim:
        body = body.strip()
    if inline:
        # "$$" would open a block formula
        return f"${body}$" if body.strip() else EMPTY_INLINE_MATH
    return f"$${body}$$"


def _encode_math(node: ElementNode, *, trim: bool, inline: bool) -> str:
    return encode_math(text_of(node), inline=inline, trim=trim)


def _flatten_children(children: Iterable[MarkupNode], *, inline_tags: bool, trim: bool) -> str:
    nodes = list(children)
    parts: List[str] = []
    last = len(nodes) - 1
    for index, child in enumerate(nodes):
        parts.append(_flatten_node(child, inline_tags=inline_tags, trim=trim))
        if index < last and isinstance(child, ElementNode) and child.tag in PARAGRAPH_TAGS:
            parts.append("\n")
    return "".join(parts)


def _flatten_node(node: MarkupNode, *, inline_tags: bool, trim: bool) -> str:
    _require_node(node)
    if isinstance(node, TextNode):
        return node.text
    if node.tag == LATEX_BLOCK_TAG:
        return _encode_math(node, trim=trim, inline=False)
    if node.tag == LATEX_INLINE_TAG and inline_tags:
        return _encode_math(node, trim=trim, inline=True)
    if node.tag == LINE_BREAK_TAG:
        return "\n"
    return _flatten_children(node.children, inline_tags=inline_tags, trim=trim)


def flatten(root: MarkupNode, *, recognize_inline_tags: bool = True, trim_math: bool = True) -> str:
    """Flatten a markup tree into marked text.

    ``<latex>`` becomes ``$$...$$``, ``<latex-inline>`` becomes ``$...$``,
    ``<br>`` becomes a newline and a ``<p>``/``<div>`` is followed by a
    newline unless it is the last of its siblings. Any other element only
    contributes its children.
    """
    flat = _flatten_node(root, inline_tags=recognize_inline_tags, trim=trim_math)
    LOG.debug("Flattened markup tree into %d char(s)", len(flat))
    return flat


def parse_html(html: str) -> ElementNode:
    """Parse an HTML fragment into a markup tree rooted at a transparent fragment node.

    Comments, doctypes and other non-content strings are dropped; entities are
    decoded.
    """
    if not isinstance(html, str):
        raise TypeError(f"parse_html() expects str, got {type(html).__name__}")
    try:
        from bs4 import BeautifulSoup, NavigableString, Tag  # type: ignore
        from bs4.element import PreformattedString  # type: ignore
    except Exception as exc:
        raise RuntimeError(f"beautifulsoup4 not available: {exc}") from exc

    def convert(parent) -> Tuple[MarkupNode, ...]:
        nodes: List[MarkupNode] = []
        for child in parent.children:
            if isinstance(child, Tag):
                nodes.append(ElementNode(child.name, convert(child)))
            elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
                nodes.append(TextNode(str(child)))
        return tuple(nodes)

    soup = BeautifulSoup(html, "html.parser")
    root = ElementNode(FRAGMENT_TAG, convert(soup))
    LOG.debug("Parsed HTML into %d top-level node(s)", len(root.children))
    return root


def flatten_html(html: str, *, recognize_inline_tags: bool = True, trim_math: bool = True) -> str:
    if not html:
        return ""
    return flatten(parse_html(html), recognize_inline_tags=recognize_inline_tags, trim_math=trim_math)
