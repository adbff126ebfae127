"""Conversion between restricted HTML and marked plain text."""

from __future__ import annotations

import html
import logging
from typing import List, Union

from .core import BLOCK_DELIMITER, INLINE_DELIMITER, normalize_newlines, scan_block_regions, scan_inline_regions
from .markup import (
    LATEX_BLOCK_TAG,
    LATEX_INLINE_TAG,
    LINE_BREAK_TAG,
    ElementNode,
    MarkupNode,
    TextNode,
    flatten,
    parse_html,
)

LOG = logging.getLogger("mixmark")

LINE_BREAK_HTML = f"<{LINE_BREAK_TAG}>"


def to_marked_text(source: Union[str, MarkupNode], *, recognize_inline_tags: bool = True) -> str:
    """Encode restricted HTML (or an already parsed tree) as marked text.

    Math bodies are kept as authored; only the delimiters change, so the
    result decodes with ``segment``.
    """
    if isinstance(source, str):
        if not source:
            return ""
        root: MarkupNode = parse_html(source)
    elif isinstance(source, (TextNode, ElementNode)):
        root = source
    else:
        raise TypeError(f"to_marked_text() expects str or markup node, got {type(source).__name__}")
    return flatten(root, recognize_inline_tags=recognize_inline_tags, trim_math=False)


def _escape(text: str) -> str:
    return html.escape(text, quote=False)


def _tag_inline_math(text: str) -> str:
    parts: List[str] = []
    pos = 0
    for start, end in scan_inline_regions(text):
        parts.append(_escape(text[pos:start]))
        body = text[start + len(INLINE_DELIMITER) : end - len(INLINE_DELIMITER)].strip()
        parts.append(f"<{LATEX_INLINE_TAG}>{_escape(body)}</{LATEX_INLINE_TAG}>")
        pos = end
    parts.append(_escape(text[pos:]))
    return "".join(parts)


def _append_text(lines: List[str], text: str) -> None:
    first, *rest = _tag_inline_math(text).split("\n")
    lines[-1] += first
    lines.extend(rest)


def _tagged_lines(text: str) -> List[str]:
    lines: List[str] = [""]
    pos = 0
    for start, end in scan_block_regions(text):
        _append_text(lines, text[pos:start])
        body = text[start + len(BLOCK_DELIMITER) : end - len(BLOCK_DELIMITER)].strip()
        # block bodies keep their newlines and never split a line
        lines[-1] += f"<{LATEX_BLOCK_TAG}>{_escape(body)}</{LATEX_BLOCK_TAG}>"
        pos = end
    _append_text(lines, text[pos:])
    return lines


def to_restricted_html(marked_text: str) -> str:
    """Convert marked text into ``<p>``/``<br>``/``<latex>``/``<latex-inline>`` HTML.

    Block formulas are tagged first, then single-line inline formulas. Lines
    are regrouped into paragraphs: consecutive non-blank lines share one
    ``<p>`` joined by ``<br>``, a blank line closes the paragraph. When no
    line carries content the tagged text is returned unwrapped.
    """
    if not isinstance(marked_text, str):
        raise TypeError(f"to_restricted_html() expects str, got {type(marked_text).__name__}")
    if not marked_text:
        return ""

    lines = _tagged_lines(normalize_newlines(marked_text))
    paragraphs: List[str] = []
    current: List[str] = []
    for line in lines:
        stripped = line.strip()
        if not stripped:
            if current:
                paragraphs.append(f"<p>{LINE_BREAK_HTML.join(current)}</p>")
                current = []
            continue
        current.append(stripped)
    if current:
        paragraphs.append(f"<p>{LINE_BREAK_HTML.join(current)}</p>")

    if not paragraphs:
        return "\n".join(lines)
    LOG.debug("Converted %d line(s) into %d paragraph(s)", len(lines), len(paragraphs))
    return "".join(paragraphs)
