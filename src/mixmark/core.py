"""Core segmentation for mixmark."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .markup import ElementNode, MarkupNode, TextNode, encode_math, flatten, flatten_html

LOG = logging.getLogger("mixmark")

CLASSIFY_MARKDOWN_ENV = "MIXMARK_CLASSIFY_MARKDOWN"
INLINE_TAGS_ENV = "MIXMARK_INLINE_TAGS"

BLOCK_DELIMITER = "$$"
INLINE_DELIMITER = "$"

LATEX_INLINE_TAG_RE = re.compile(r"<latex-inline>([^<]*)</latex-inline>", re.IGNORECASE)
LATEX_BLOCK_TAG_RE = re.compile(r"<latex>([^<]*)</latex>", re.IGNORECASE)

MARKDOWN_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"^#{1,6}[ \t]", re.MULTILINE),  # heading
    re.compile(r"^[-*+][ \t]", re.MULTILINE),  # unordered list
    re.compile(r"^\d+\.[ \t]", re.MULTILINE),  # ordered list
    re.compile(r"\*\*[^*]+\*\*"),  # bold
    re.compile(r"__[^_]+__"),
    re.compile(r"\*[^*]+\*"),  # italic
    re.compile(r"_[^_]+_"),
    re.compile(r"`[^`]+`"),  # inline code
    re.compile(r"\[.+\]\(.+\)"),  # link
    re.compile(r"!\[.+\]\(.+\)"),  # image
    re.compile(r"^>[ \t]", re.MULTILINE),  # blockquote
    re.compile(r"^(?:-{3,}|\*{3,})[ \t]*$", re.MULTILINE),  # thematic break
    re.compile(r"\|.+\|"),  # table row
    re.compile(r"^```[\s\S]*?```$", re.MULTILINE),  # fenced code
)


class SpanKind(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    LATEX_INLINE = "latex-inline"
    LATEX_BLOCK = "latex-block"

    @property
    def is_math(self) -> bool:
        return self in (SpanKind.LATEX_INLINE, SpanKind.LATEX_BLOCK)


@dataclass(frozen=True)
class Span:
    kind: SpanKind
    content: str

    def delimited(self) -> str:
        if self.kind is SpanKind.LATEX_BLOCK:
            return f"{BLOCK_DELIMITER}{self.content}{BLOCK_DELIMITER}"
        if self.kind is SpanKind.LATEX_INLINE:
            return f"{INLINE_DELIMITER}{self.content}{INLINE_DELIMITER}"
        return self.content

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.kind.value, "content": self.content}


@dataclass(frozen=True)
class Document:
    """Ordered, immutable sequence of spans produced by one segmentation call."""

    spans: Tuple[Span, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[Span]:
        return iter(self.spans)

    def __len__(self) -> int:
        return len(self.spans)

    def __getitem__(self, index: int) -> Span:
        return self.spans[index]

    def kinds(self) -> List[SpanKind]:
        return [span.kind for span in self.spans]

    def to_dicts(self) -> List[Dict[str, str]]:
        return [span.to_dict() for span in self.spans]

    def to_marked_text(self) -> str:
        return "".join(span.delimited() for span in self.spans)


@dataclass(frozen=True)
class SegmenterConfig:
    classify_markdown: bool = True
    recognize_inline_tags: bool = True

    @classmethod
    def from_env(cls) -> "SegmenterConfig":
        return cls(
            classify_markdown=_env_flag_enabled(os.environ.get(CLASSIFY_MARKDOWN_ENV), default=True),
            recognize_inline_tags=_env_flag_enabled(os.environ.get(INLINE_TAGS_ENV), default=True),
        )


def _env_flag_enabled(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"", "0", "false", "off", "no"}


def _resolve_log_level(verbose: bool, debug: bool) -> int:
    return logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)


def _configure_mixmark_logger(level: int) -> None:
    LOG.setLevel(level)
    LOG.propagate = False
    if not LOG.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        handler.setLevel(level)
        LOG.addHandler(handler)
        return
    for handler in LOG.handlers:
        handler.setLevel(level)
        if handler.formatter is None:
            handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))


def setup_logging(verbose: bool, debug: bool) -> None:
    level = _resolve_log_level(verbose, debug)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    _configure_mixmark_logger(level)


def is_markdown(text: Optional[str]) -> bool:
    """Return True when ``text`` carries at least one recognizable Markdown construct."""
    if text is None:
        return False
    if not isinstance(text, str):
        raise TypeError(f"is_markdown() expects str, got {type(text).__name__}")
    if not text.strip():
        return False
    return any(pattern.search(text) for pattern in MARKDOWN_PATTERNS)


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def rewrite_latex_tags(text: str, *, recognize_inline_tags: bool = True) -> str:
    if recognize_inline_tags:
        text = LATEX_INLINE_TAG_RE.sub(lambda m: encode_math(m.group(1), inline=True), text)
    return LATEX_BLOCK_TAG_RE.sub(lambda m: encode_math(m.group(1), inline=False), text)


def scan_block_regions(text: str) -> List[Tuple[int, int]]:
    """Locate ``$$...$$`` regions by literal bracket matching.

    Returns ``(start, end)`` offsets that include both delimiters. The body is
    the shortest run up to the next ``$$`` and may span lines. An opening
    ``$$`` with no closing partner ends the scan and stays literal.
    """
    regions: List[Tuple[int, int]] = []
    pos = 0
    while True:
        start = text.find(BLOCK_DELIMITER, pos)
        if start < 0:
            break
        close = text.find(BLOCK_DELIMITER, start + len(BLOCK_DELIMITER))
        if close < 0:
            break
        end = close + len(BLOCK_DELIMITER)
        regions.append((start, end))
        pos = end
    return regions


def scan_inline_regions(text: str) -> List[Tuple[int, int]]:
    """Locate single-line ``$...$`` regions in text that holds no block formulas.

    A candidate opens at a ``$`` not preceded by ``$`` and closes at the next
    ``$``; it is accepted when the body is non-empty, has no newline and the
    closing ``$`` is not followed by another ``$``. A rejected candidate
    leaves its opening ``$`` literal and scanning resumes right after it.
    """
    regions: List[Tuple[int, int]] = []
    pos = 0
    while True:
        start = text.find(INLINE_DELIMITER, pos)
        if start < 0:
            break
        if start > 0 and text[start - 1] == INLINE_DELIMITER:
            pos = start + 1
            continue
        close = text.find(INLINE_DELIMITER, start + 1)
        if close < 0:
            break
        body = text[start + 1 : close]
        if body and "\n" not in body and text[close + 1 : close + 2] != INLINE_DELIMITER:
            regions.append((start, close + 1))
            pos = close + 1
        else:
            pos = start + 1
    return regions


def _residual_kind(residual: str, config: SegmenterConfig) -> SpanKind:
    if config.classify_markdown and is_markdown(residual):
        return SpanKind.MARKDOWN
    return SpanKind.TEXT


def _segment_interstitial(
    text: str, config: SegmenterConfig, *, after_block: bool, before_block: bool
) -> List[Span]:
    if after_block:
        text = text.lstrip("\n")
    if before_block:
        text = text.rstrip("\n")
    if not text:
        return []

    pieces: List[Span] = []
    pos = 0
    for start, end in scan_inline_regions(text):
        if start > pos:
            pieces.append(Span(SpanKind.TEXT, text[pos:start]))
        body = text[start + len(INLINE_DELIMITER) : end - len(INLINE_DELIMITER)]
        pieces.append(Span(SpanKind.LATEX_INLINE, body.strip()))
        pos = end
    if pos < len(text):
        pieces.append(Span(SpanKind.TEXT, text[pos:]))

    residual = "".join(piece.content for piece in pieces if piece.kind is SpanKind.TEXT)
    kind = _residual_kind(residual, config)
    if kind is SpanKind.TEXT:
        return pieces
    return [Span(kind, piece.content) if piece.kind is SpanKind.TEXT else piece for piece in pieces]


def segment(flat: str, config: Optional[SegmenterConfig] = None) -> Document:
    """Split marked text into ordered ``text``/``markdown``/``latex-*`` spans.

    Block formulas are excised first; inline formulas are then scanned in each
    region between blocks, so a ``$`` inside a block body never opens an
    inline formula. Residual text is classified per region.
    """
    if not isinstance(flat, str):
        raise TypeError(f"segment() expects str, got {type(flat).__name__}")
    cfg = config or SegmenterConfig()

    text = normalize_newlines(flat)
    text = rewrite_latex_tags(text, recognize_inline_tags=cfg.recognize_inline_tags)
    if not text:
        return Document()

    spans: List[Span] = []
    pos = 0
    seen_block = False
    blocks = scan_block_regions(text)
    for start, end in blocks:
        spans.extend(_segment_interstitial(text[pos:start], cfg, after_block=seen_block, before_block=True))
        body = text[start + len(BLOCK_DELIMITER) : end - len(BLOCK_DELIMITER)]
        spans.append(Span(SpanKind.LATEX_BLOCK, body.strip()))
        seen_block = True
        pos = end
    spans.extend(_segment_interstitial(text[pos:], cfg, after_block=seen_block, before_block=False))

    LOG.debug(
        "Segmented %d char(s) into %d span(s) (%d block formula(s))",
        len(text),
        len(spans),
        len(blocks),
    )
    return Document(tuple(spans))


def parse_content(source: Union[str, MarkupNode], config: Optional[SegmenterConfig] = None) -> Document:
    cfg = config or SegmenterConfig()
    if isinstance(source, (TextNode, ElementNode)):
        flat = flatten(source, recognize_inline_tags=cfg.recognize_inline_tags)
    elif isinstance(source, str):
        if source.strip().startswith("<"):
            flat = flatten_html(source, recognize_inline_tags=cfg.recognize_inline_tags)
        else:
            flat = source
    else:
        raise TypeError(f"parse_content() expects str or markup node, got {type(source).__name__}")
    return segment(flat, cfg)
