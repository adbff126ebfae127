"""Segment mixed Markdown, LaTeX and restricted HTML into typed spans."""

from .core import (
    Document,
    SegmenterConfig,
    Span,
    SpanKind,
    is_markdown,
    parse_content,
    segment,
    setup_logging,
)
from .markup import ElementNode, MarkupNode, TextNode, flatten, flatten_html, parse_html
from .roundtrip import to_marked_text, to_restricted_html
from .version import __version__

__all__ = [
    "Document",
    "ElementNode",
    "MarkupNode",
    "SegmenterConfig",
    "Span",
    "SpanKind",
    "TextNode",
    "__version__",
    "flatten",
    "flatten_html",
    "is_markdown",
    "parse_content",
    "parse_html",
    "segment",
    "setup_logging",
    "to_marked_text",
    "to_restricted_html",
]
