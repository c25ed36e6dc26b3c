"""Tests for escaping plain text into XWiki 2.0."""

import re

import pytest

from wikiblocks.adapters.xwiki_parser import XWikiParser
from wikiblocks.adapters.xwiki_renderer import XWikiRenderer
from wikiblocks.core.model import (
    ITALIC,
    BOLD,
    Block,
    BlockKind,
    Document,
    paragraph,
    text_blocks,
)
from wikiblocks.core.reference import DocumentReference
from wikiblocks.format import EscapeState, escape, unescape

PARAGRAPH_START = EscapeState(text_on_new_line=True, in_paragraph=True)


def test_escape_char_is_escaped():
    assert escape("a~b") == "a~~b"


def test_plain_text_untouched():
    assert escape("Hello world") == "Hello world"
    assert escape("") == ""


def test_list_at_line_start():
    """A list marker at the start of a paragraph line is escaped once."""
    assert escape("* item", PARAGRAPH_START) == "~* item"
    assert escape("1. item", PARAGRAPH_START) == "~1. item"
    assert escape("* item", EscapeState(in_paragraph=True)) == "* item"


def test_heading_at_line_start():
    assert escape("= Title", PARAGRAPH_START) == "~= Title"


def test_no_double_escaping():
    """Characters matched by several rules get one escape character."""
    assert escape("** a", PARAGRAPH_START) == "~*~* a"


def test_equals_in_heading():
    assert escape("a = b", EscapeState(in_section=True)) == "a ~= b"
    assert escape("a = b") == "a = b"


def test_double_chars():
    """Formatting toggles and the line break are escaped."""
    assert escape("**bold**") == "~*~*bold~*~*"
    assert escape("a//b") == "a~/~/b"
    assert escape("x\\\\y") == "x~\\~\\y"
    assert escape("a__b,,c") == "a~_~_b~,~,c"


def test_link_and_macro_openings():
    assert escape("[[Page]]") == "~[~[Page]]"
    assert escape("{{macro/}}") == "~{~{macro/}}"
    assert escape("{{{verbatim}}}") == "~{~{~{verbatim}}}"


def test_link_label():
    """Inside a label the closing and separating tokens are escaped."""
    state = EscapeState(in_link=True)

    assert escape("a]]b", state) == "a~]~]b"
    assert escape("a>>b", state) == "a~>~>b"
    assert escape("a||b", state) == "a~|~|b"


def test_uri_colons():
    """Every would-be URI colon is escaped, not only the first one."""
    assert escape("image:a.png and mailto:x@y") == "image~:a.png and mailto~:x@y"
    assert escape("mailto: someone") == "mailto: someone"


def test_escape_last_char():
    assert escape("hello:", escape_last_char=True) == "hello~:"


def test_escape_first_if_matching():
    assert escape("*b", escape_first_if_matching=re.compile(r"(\*)")) == "~*b"
    assert escape("b", escape_first_if_matching=re.compile(r"(\*)")) == "b"


def test_unescape():
    assert unescape("~*~*bold~*~*") == "**bold**"
    assert unescape("a~~b") == "a~b"
    assert unescape("trailing~") == "trailing~"


def round_trip(document):
    text = XWikiRenderer().render(document)
    return text, XWikiParser().parse(text)


@pytest.mark.parametrize(
    "text",
    [
        "* not a list",
        "1. not a list either",
        "= not a heading",
        "**not bold**",
        "[[not a link]]",
        "{{notamacro/}}",
        "image:nope.png",
        "tilde ~ stays",
        "a // b -- c",
    ],
)
def test_paragraph_round_trip(text):
    """Rendered paragraph text parses back to the same blocks."""
    document = Document([paragraph(text_blocks(text))])

    _, parsed = round_trip(document)

    assert parsed == document


def test_heading_round_trip():
    document = Document([
        Block(BlockKind.HEADING, text_blocks("a = b ="), {"id": "Ha-b"}, level=2),
    ])

    text, parsed = round_trip(document)

    assert text == "== a ~= b ~= =="
    assert parsed == document


@pytest.mark.parametrize(
    "label, expected",
    [
        ("a]]b>>c", "[[a~]~]b~>~>c>>Space.Page]]"),
        ("a>", "[[a~>>>Space.Page]]"),
        (">", "[[~>>>Space.Page]]"),
    ],
)
def test_link_label_round_trip(label, expected):
    """Labels never close or split the link they sit in."""
    link = Block(
        BlockKind.LINK,
        text_blocks(label),
        reference=DocumentReference(space="Space", page="Page"),
    )
    document = Document([paragraph([link])])

    text, parsed = round_trip(document)

    assert text == expected
    assert parsed == document


def test_text_before_format_round_trip():
    """A colon right before italics doesn't turn into a URL."""
    document = Document([
        paragraph(text_blocks("hello:") + [Block(BlockKind.FORMAT, text_blocks("x"), style=ITALIC)]),
    ])

    text, parsed = round_trip(document)

    assert text == "hello~://x//"
    assert parsed == document


def test_text_after_format_token_round_trip():
    """A star right after an opening bold token is escaped."""
    document = Document([
        paragraph([Block(BlockKind.FORMAT, text_blocks("*b"), style=BOLD)]),
    ])

    text, parsed = round_trip(document)

    assert text == "**~*b**"
    assert parsed == document


def test_format_content_round_trip():
    """Text ending in a token character stays inside the format."""
    document = Document([
        paragraph([Block(BlockKind.FORMAT, text_blocks("x*"), style=BOLD)]),
    ])

    text, parsed = round_trip(document)

    assert text == "**x~***"
    assert parsed == document
