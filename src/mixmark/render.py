"""HTML rendering helpers for segmented documents."""

from __future__ import annotations

import functools
import html
import logging
from typing import Any, List

from .core import Document, SpanKind
from .markup import LATEX_BLOCK_TAG, LATEX_INLINE_TAG

LOG = logging.getLogger("mixmark")

HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#39;"),
    ("\n", "<br>"),
)


def escape_html_and_newlines(text: str) -> str:
    if not text:
        return ""
    for raw, escaped in HTML_ESCAPES:
        text = text.replace(raw, escaped)
    return text


@functools.lru_cache(maxsize=1)
def _markdown_renderer() -> Any:
    try:
        from markdown_it import MarkdownIt  # type: ignore
    except Exception as exc:
        raise RuntimeError(f"markdown-it-py not available: {exc}") from exc

    return MarkdownIt("commonmark", {"html": True, "breaks": True}).enable("table").enable("strikethrough")


def render_markdown(markdown: str) -> str:
    """Render Markdown to HTML with hard line breaks, tables and strikethrough.

    A renderer failure is logged and the Markdown is returned unchanged.
    """
    if not markdown:
        return ""
    renderer = _markdown_renderer()
    try:
        return renderer.render(markdown)
    except Exception as exc:
        LOG.warning("Markdown rendering failed, keeping raw text: %s", exc)
        return markdown


def parse_markdown(content: str) -> str:
    if not content:
        return ""
    if content.strip().startswith("<"):
        return content
    return render_markdown(content)


def render_document(document: Document) -> str:
    parts: List[str] = []
    for span in document:
        if span.kind is SpanKind.LATEX_BLOCK:
            parts.append(f"<{LATEX_BLOCK_TAG}>{html.escape(span.content, quote=False)}</{LATEX_BLOCK_TAG}>")
        elif span.kind is SpanKind.LATEX_INLINE:
            parts.append(f"<{LATEX_INLINE_TAG}>{html.escape(span.content, quote=False)}</{LATEX_INLINE_TAG}>")
        elif span.kind is SpanKind.MARKDOWN:
            parts.append(render_markdown(span.content))
        else:
            parts.append(escape_html_and_newlines(span.content))
    LOG.debug("Rendered %d span(s)", len(parts))
    return "".join(parts)
