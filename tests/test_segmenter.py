import logging

import pytest

import mixmark.core as core
from mixmark.core import Document, SegmenterConfig, Span, SpanKind
from mixmark.markup import ElementNode, TextNode

TEXT = SpanKind.TEXT
MARKDOWN = SpanKind.MARKDOWN
INLINE = SpanKind.LATEX_INLINE
BLOCK = SpanKind.LATEX_BLOCK

MIXED_SOURCE = "# Title\nSee $x^2$ and\n\n$$\\int_0^1 f(x)dx$$\n\nMore *text*."


def _pairs(document: Document):
    return [(span.kind, span.content) for span in document]


def test_block_formula_takes_precedence_over_inline():
    assert _pairs(core.segment("$$a$b$$")) == [(BLOCK, "a$b")]


def test_unterminated_dollar_is_literal_text():
    assert _pairs(core.segment("price is $5")) == [(TEXT, "price is $5")]


def test_unterminated_block_delimiter_is_literal_text():
    assert _pairs(core.segment("cost $$5 and $3")) == [(TEXT, "cost $$5 and $3")]


def test_empty_block_formula_is_retained():
    assert _pairs(core.segment("$$ $$")) == [(BLOCK, "")]
    assert _pairs(core.segment("$$$$")) == [(BLOCK, "")]


def test_whitespace_inline_formula_yields_empty_span():
    assert _pairs(core.segment("a $ $ b")) == [(TEXT, "a "), (INLINE, ""), (TEXT, " b")]


def test_mixed_markdown_and_math_document():
    assert _pairs(core.segment(MIXED_SOURCE)) == [
        (MARKDOWN, "# Title\nSee "),
        (INLINE, "x^2"),
        (MARKDOWN, " and"),
        (BLOCK, "\\int_0^1 f(x)dx"),
        (MARKDOWN, "More *text*."),
    ]


def test_energy_sentence_segments_into_text_and_block():
    assert _pairs(core.segment("Energy: $$E=mc^2$$")) == [(TEXT, "Energy: "), (BLOCK, "E=mc^2")]


def test_inline_formula_body_cannot_span_lines():
    # block bodies may span lines, inline bodies may not
    assert _pairs(core.segment("$a\nb$")) == [(TEXT, "$a\nb$")]
    assert _pairs(core.segment("$$\na\nb\n$$")) == [(BLOCK, "a\nb")]


def test_inline_formula_bodies_are_trimmed():
    assert _pairs(core.segment("$ x + y $")) == [(INLINE, "x + y")]


def test_several_inline_formulas_keep_source_order():
    assert _pairs(core.segment("$a$ and $b$")) == [(INLINE, "a"), (TEXT, " and "), (INLINE, "b")]


def test_inline_formula_directly_after_block():
    assert _pairs(core.segment("$$a$$$b$")) == [(BLOCK, "a"), (INLINE, "b")]


def test_newlines_around_block_formulas_are_absorbed():
    assert _pairs(core.segment("intro\n\n$$x$$\n\noutro")) == [(TEXT, "intro"), (BLOCK, "x"), (TEXT, "outro")]
    assert _pairs(core.segment("$$a$$\n\n$$b$$")) == [(BLOCK, "a"), (BLOCK, "b")]


def test_spaces_between_block_formulas_are_kept():
    assert _pairs(core.segment("$$a$$ $$b$$")) == [(BLOCK, "a"), (TEXT, " "), (BLOCK, "b")]


def test_residual_pieces_around_inline_math_share_classification():
    assert _pairs(core.segment("**bold $x$ text**")) == [
        (MARKDOWN, "**bold "),
        (INLINE, "x"),
        (MARKDOWN, " text**"),
    ]


def test_latex_tags_in_raw_text_are_rewritten():
    assert _pairs(core.segment("A <latex> E = mc^2 </latex> B")) == [
        (TEXT, "A "),
        (BLOCK, "E = mc^2"),
        (TEXT, " B"),
    ]
    assert _pairs(core.segment("<latex-inline> x </latex-inline> is inline")) == [
        (INLINE, "x"),
        (TEXT, " is inline"),
    ]
    assert _pairs(core.segment("<LATEX>y</LATEX>")) == [(BLOCK, "y")]


def test_empty_inline_tag_in_raw_text_does_not_open_a_block():
    assert _pairs(core.segment("a <latex-inline></latex-inline> and $$y$$")) == [
        (TEXT, "a "),
        (INLINE, ""),
        (TEXT, " and "),
        (BLOCK, "y"),
    ]
    assert _pairs(core.segment("x <latex-inline> </latex-inline> y")) == [
        (TEXT, "x "),
        (INLINE, ""),
        (TEXT, " y"),
    ]


def test_multiline_inline_tag_in_raw_text_is_joined():
    assert _pairs(core.segment("x <latex-inline>a\nb</latex-inline> y")) == [
        (TEXT, "x "),
        (INLINE, "a b"),
        (TEXT, " y"),
    ]


def test_latex_tag_with_nested_angle_bracket_stays_literal():
    assert _pairs(core.segment("<latex>a<b</latex>")) == [(TEXT, "<latex>a<b</latex>")]


def test_inline_tags_can_be_left_unrecognized():
    config = SegmenterConfig(recognize_inline_tags=False)
    doc = core.segment("<latex-inline>x</latex-inline>", config)
    assert _pairs(doc) == [(TEXT, "<latex-inline>x</latex-inline>")]


def test_markdown_classification_can_be_disabled():
    config = SegmenterConfig(classify_markdown=False)
    assert _pairs(core.segment("# Title", config)) == [(TEXT, "# Title")]
    assert _pairs(core.segment("# Title")) == [(MARKDOWN, "# Title")]


def test_carriage_returns_are_normalized():
    assert _pairs(core.segment("a\r\nb\rc")) == [(TEXT, "a\nb\nc")]


def test_empty_input_yields_empty_document():
    doc = core.segment("")
    assert len(doc) == 0
    assert doc.to_dicts() == []


def test_segment_rejects_non_string_input():
    with pytest.raises(TypeError):
        core.segment(None)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "source",
    [
        "plain",
        "a $x$ b",
        "$$y$$ tail",
        "x $$a$b$$ y $c$",
        "price is $5",
        "$$$$",
    ],
)
def test_spans_reassemble_into_the_source(source):
    doc = core.segment(source)
    assert doc.to_marked_text() == source


def test_newlines_beside_block_formulas_are_not_reassembled():
    doc = core.segment("a\n$$x$$\nb")
    assert _pairs(doc) == [(TEXT, "a"), (BLOCK, "x"), (TEXT, "b")]
    assert doc.to_marked_text() == "a$$x$$b"
    assert core.segment("a\n$$x$$").to_marked_text() == "a$$x$$"


@pytest.mark.parametrize("source", ["x $$a$b$$ y $c$", MIXED_SOURCE, "$a$ and $b$"])
def test_resegmenting_reassembled_text_is_stable(source):
    doc = core.segment(source)
    assert core.segment(doc.to_marked_text()) == doc


def test_document_helpers():
    doc = core.segment("x $$a$b$$")
    assert doc.kinds() == [TEXT, BLOCK]
    assert doc[1] == Span(BLOCK, "a$b")
    assert list(doc) == list(doc.spans)
    assert doc.to_dicts() == [
        {"type": "text", "content": "x "},
        {"type": "latex-block", "content": "a$b"},
    ]
    assert BLOCK.is_math and INLINE.is_math
    assert not TEXT.is_math and not MARKDOWN.is_math


def test_scanners_report_delimited_offsets():
    assert core.scan_block_regions("a $$b$$ c $$d") == [(2, 7)]
    assert core.scan_inline_regions("a $b$ $$ $c") == [(2, 5)]


def test_parse_content_accepts_html_string_tree_and_plain_text():
    expected = [(TEXT, "Energy: "), (BLOCK, "E=mc^2")]
    assert _pairs(core.parse_content("<p>Energy: <latex>E=mc^2</latex></p>")) == expected

    tree = ElementNode("p", (TextNode("Energy: "), ElementNode("latex", (TextNode("E=mc^2"),))))
    assert _pairs(core.parse_content(tree)) == expected

    assert _pairs(core.parse_content("Energy: $$E=mc^2$$")) == expected


def test_parse_content_honours_inline_tag_switch():
    config = SegmenterConfig(recognize_inline_tags=False)
    doc = core.parse_content("<p>Let <latex-inline>x</latex-inline></p>", config)
    assert _pairs(doc) == [(TEXT, "Let x")]


def test_parse_content_rejects_other_types():
    with pytest.raises(TypeError):
        core.parse_content(42)  # type: ignore[arg-type]


def test_config_from_env(monkeypatch):
    monkeypatch.delenv(core.CLASSIFY_MARKDOWN_ENV, raising=False)
    monkeypatch.delenv(core.INLINE_TAGS_ENV, raising=False)
    assert core.SegmenterConfig.from_env() == SegmenterConfig()

    monkeypatch.setenv(core.CLASSIFY_MARKDOWN_ENV, "off")
    monkeypatch.setenv(core.INLINE_TAGS_ENV, "yes")
    assert core.SegmenterConfig.from_env() == SegmenterConfig(classify_markdown=False, recognize_inline_tags=True)

    monkeypatch.setenv(core.INLINE_TAGS_ENV, "")
    assert core.SegmenterConfig.from_env().recognize_inline_tags is False


def test_setup_logging_levels(monkeypatch):
    monkeypatch.setattr(core.LOG, "handlers", [])
    monkeypatch.setattr(core.LOG, "level", core.LOG.level)
    monkeypatch.setattr(core.LOG, "propagate", core.LOG.propagate)
    core.setup_logging(False, True)
    assert core.LOG.level == logging.DEBUG
    assert core.LOG.propagate is False
    assert len(core.LOG.handlers) == 1

    core.setup_logging(True, False)
    assert core.LOG.level == logging.INFO
    assert len(core.LOG.handlers) == 1

    core.setup_logging(False, False)
    assert core.LOG.level == logging.WARNING
