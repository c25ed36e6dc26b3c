"""Escaping of plain text emitted into XWiki 2.0 syntax."""

import re
from dataclasses import dataclass
from typing import Pattern

ESCAPE_CHAR = "~"

LIST_PATTERN = re.compile(r"[ \t]*((\*+[:;]*)|([1*]+\.[:;]*)|([:;]+))[ \t]+")
SECTION_PATTERN = re.compile(r"[ \t]*(=+)")
DOUBLE_CHARS_PATTERN = re.compile(r"//|\*\*|__|--|\^\^|,,|##|\\\\")
URI_COLON_PATTERN = re.compile(r"(?:image|attach|mailto)(:)(?=[^\x00-\x20])")
LINK_TOKENS = (">>", "]]", "||")


@dataclass(frozen=True)
class EscapeState:
    """Where the renderer stands when a run of text is emitted."""

    text_on_new_line: bool = False
    in_paragraph: bool = False
    in_section: bool = False
    in_link: bool = False


class _Marks:
    """The text plus one "needs escaping" flag per character."""

    def __init__(self, text: str):
        self.text = text
        self.flags = [False] * len(text)

    def mark(self, index: int) -> None:
        self.flags[index] = True

    def mark_all(self, token: str) -> None:
        # Non-overlapping, left to right
        start = self.text.find(token)
        while start != -1:
            for index in range(start, start + len(token)):
                self.flags[index] = True
            start = self.text.find(token, start + len(token))

    def mark_first_matched(self, pattern: Pattern[str]) -> None:
        m = pattern.match(self.text)
        if m and m.group(1):
            self.flags[m.start(1)] = True

    def render(self) -> str:
        return "".join(
            ESCAPE_CHAR + c if escaped else c
            for c, escaped in zip(self.text, self.flags)
        )


def escape(
    text: str,
    state: EscapeState = EscapeState(),
    escape_last_char: bool = False,
    escape_first_if_matching: Pattern[str] | None = None,
) -> str:
    """Escape a run of plain text so that parsing it back gives the same text.

    Args:
        text: The text run, as it should read once parsed again
        state: Renderer position at the time the run is emitted
        escape_last_char: Escape the last character, for when the next
            emitted token could combine with it (e.g. "hello:" before "//")
        escape_first_if_matching: Pattern whose group 1, when the pattern
            matches at the start of the text, gets its first character
            escaped (e.g. a "*" right after a closing "**")

    Returns:
        The escaped text
    """
    if not text:
        return text

    marks = _Marks(text)

    # The escape character itself
    marks.mark_all(ESCAPE_CHAR)

    # Start of line in a paragraph: keep it from turning into a list item
    # or a heading. Escaping the first character is enough.
    if state.in_paragraph and state.text_on_new_line:
        marks.mark_first_matched(LIST_PATTERN)
        marks.mark_first_matched(SECTION_PATTERN)

    if escape_first_if_matching is not None:
        marks.mark_first_matched(escape_first_if_matching)

    # "=" would close the heading
    if state.in_section:
        marks.mark_all("=")

    if state.in_link:
        # Label text must neither close nor split the link
        for token in LINK_TOKENS:
            marks.mark_all(token)
    else:
        marks.mark_all("[[")

    # Verbatim and macro openings
    marks.mark_all("{{{")
    marks.mark_all("{{")

    # Format toggles and the explicit line break
    for m in DOUBLE_CHARS_PATTERN.finditer(text):
        marks.mark(m.start())
        marks.mark(m.start() + 1)

    # ":" of a would-be URI, only when something printable follows
    for m in URI_COLON_PATTERN.finditer(text):
        marks.mark(m.start(1))

    if escape_last_char:
        marks.mark(len(text) - 1)

    return marks.render()


def combines(left: str, right: str, in_link: bool = False) -> bool:
    """Would ``left`` followed by ``right`` read as markup?"""
    if not left or not right:
        return False
    pair = left[-1] + right[0]
    return bool(
        DOUBLE_CHARS_PATTERN.fullmatch(pair)
        or pair in ("{{", "[[")
        or (in_link and pair in LINK_TOKENS)
        or (left[-1] == ":" and right.startswith("//"))
    )


def unescape(text: str) -> str:
    """Drop escape characters; ``~x`` reads as ``x``."""
    out = []
    i = 0
    while i < len(text):
        if text[i] == ESCAPE_CHAR and i + 1 < len(text):
            out.append(text[i + 1])
            i += 2
            continue
        out.append(text[i])
        i += 1
    return "".join(out)
