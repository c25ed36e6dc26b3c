import re

from ..core.errors import ReferenceParseError
from ..core.model import (
    BOLD,
    BULLETED,
    DEFINITION,
    FREESTANDING,
    INLINE,
    ITALIC,
    MONOSPACE,
    NUMBERED,
    STANDALONE,
    STRIKEOUT,
    SUBSCRIPT,
    SUPERSCRIPT,
    UNDERLINE,
    Block,
    BlockKind,
    Document,
    macro_block,
    plain_text,
    text_blocks,
)
from ..core.ports import ParserStrategy
from ..core.syntax import XWIKI_2_0
from ..core.utils import IdGenerator
from ..format.escape import ESCAPE_CHAR, unescape
from .reference_parser import ReferenceParser

HEADING_RE = re.compile(r"^[ \t]*(={1,6})(?!=)(.*)$")
HEADING_CLOSE_RE = re.compile(r"(?:^|[ \t]+)=+[ \t]*$")
LIST_RE = re.compile(r"^[ \t]*(\*+|1+\.|[;:]+)[ \t]+(.*)$")
HR_RE = re.compile(r"^[ \t]*-{4,}[ \t]*$")

_PARAM = r"""[^\s=/}"]+[ \t]*=[ \t]*(?:"(?:[^"\\]|\\.)*"|[^\s"/}]+)"""
MACRO_RE = re.compile(
    r"\{\{([a-zA-Z0-9_][a-zA-Z0-9_.:-]*)((?:\s+%s)*)\s*(/?)\}\}" % _PARAM
)
PARAM_RE = re.compile(r"""([^\s=/}"]+)[ \t]*=[ \t]*(?:"((?:[^"\\]|\\.)*)"|([^\s"/}]+))""")

FREESTANDING_URI_RE = re.compile(r"(?:image|attach|mailto):[^\s\[\]{}|~\"<>]+")
URL_RE = re.compile(r"[a-zA-Z][a-zA-Z0-9+.-]*://[^\s\[\]{}|~\"<>]+")

FORMAT_TOKENS = {
    "**": BOLD,
    "//": ITALIC,
    "__": UNDERLINE,
    "--": STRIKEOUT,
    "^^": SUPERSCRIPT,
    ",,": SUBSCRIPT,
    "##": MONOSPACE,
}


def find_unescaped(text: str, token: str, start: int = 0) -> int:
    """Index of the first ``token`` at or after ``start`` that isn't escaped."""
    i = start
    while i < len(text):
        if text[i] == ESCAPE_CHAR:
            i += 2
            continue
        if text.startswith(token, i):
            return i
        i += 1
    return -1


def parse_parameters(text: str) -> dict[str, str]:
    """``a="1" b=2`` -> ``{"a": "1", "b": "2"}``; ``\\"`` and ``\\\\`` are unescaped."""
    out: dict[str, str] = {}
    for m in PARAM_RE.finditer(text):
        if m.group(2) is not None:
            out[m.group(1)] = re.sub(r"\\(.)", r"\1", m.group(2))
        else:
            out[m.group(1)] = m.group(3)
    return out


def match_macro(text: str, pos: int) -> tuple[str, dict[str, str], str | None, int] | None:
    """
    Match ``{{id params/}}`` or ``{{id params}}content{{/id}}`` at ``pos``.

    Returns (id, parameters, content, end) or None. Nested macros with the
    same id are balanced.
    """
    m = MACRO_RE.match(text, pos)
    if m is None:
        return None
    macro_id = m.group(1)
    parameters = parse_parameters(m.group(2))
    if m.group(3):
        return macro_id, parameters, None, m.end()

    closing = "{{/" + macro_id + "}}"
    opening_re = re.compile(r"\{\{" + re.escape(macro_id) + r"(?=[\s/}])")
    depth = 1
    i = m.end()
    while True:
        close = text.find(closing, i)
        if close == -1:
            return None
        for om in opening_re.finditer(text, i, close):
            nested = MACRO_RE.match(text, om.start())
            if nested is not None and not nested.group(3):
                depth += 1
        depth -= 1
        if depth == 0:
            return macro_id, parameters, text[m.end():close], close + len(closing)
        i = close + len(closing)


class XWikiParser(ParserStrategy):
    """
    Parser for the commonly used part of XWiki 2.0 syntax: paragraphs,
    headings, lists, horizontal lines, formatting, links, images, macros,
    verbatim and ``~`` escapes.
    """

    syntax = XWIKI_2_0

    def __init__(self, references: ReferenceParser | None = None):
        self.references = references or ReferenceParser()

    def parse(self, text: str, id_generator: IdGenerator | None = None) -> Document:
        """
        Parse ``text`` into a Document.

        Headings get an ``id`` parameter from ``id_generator``; pass the
        generator of an enclosing document to keep ids unique across both.
        """
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        document = Document(id_generator=id_generator)
        paragraph_lines: list[str] = []
        list_items: list[tuple[int, str, str]] = []

        def flush_paragraph():
            if paragraph_lines:
                document.add_child(
                    Block(BlockKind.PARAGRAPH, self.parse_inline("\n".join(paragraph_lines)))
                )
                paragraph_lines.clear()

        def flush_lists():
            if list_items:
                document.add_children(self._build_lists(list_items))
                list_items.clear()

        pos = 0
        while pos < len(text):
            end = text.find("\n", pos)
            if end == -1:
                end = len(text)
            line = text[pos:end]
            next_pos = end + 1

            if not line.strip():
                flush_paragraph()
                flush_lists()
                pos = next_pos
                continue

            if not paragraph_lines:
                start = pos + len(line) - len(line.lstrip(" \t"))
                block, block_end = self._standalone(text, start)
                if block is not None:
                    flush_lists()
                    document.add_child(block)
                    pos = block_end
                    continue

            if HR_RE.match(line):
                flush_paragraph()
                flush_lists()
                document.add_child(Block(BlockKind.HORIZONTAL_LINE))
            elif HEADING_RE.match(line):
                flush_paragraph()
                flush_lists()
                document.add_child(self._heading(line, document.id_generator))
            elif LIST_RE.match(line):
                flush_paragraph()
                m = LIST_RE.match(line)
                marker = m.group(1)
                if marker.startswith("*"):
                    style, depth = BULLETED, len(marker)
                elif marker.endswith("."):
                    style, depth = NUMBERED, len(marker) - 1
                else:
                    style, depth = DEFINITION, len(marker)
                list_items.append((depth, style, m.group(2)))
            else:
                flush_lists()
                paragraph_lines.append(line)
            pos = next_pos

        flush_paragraph()
        flush_lists()
        return document

    def _standalone(self, text: str, start: int) -> tuple[Block | None, int]:
        """A verbatim block or a macro filling whole lines, starting at ``start``."""
        block = None
        end = -1
        if text.startswith("{{{", start):
            close = text.find("}}}", start + 3)
            if close != -1:
                block = Block(BlockKind.VERBATIM, text=text[start + 3:close], style=STANDALONE)
                end = close + 3
        elif text.startswith("{{", start):
            found = match_macro(text, start)
            if found is not None:
                macro_id, parameters, content, end = found
                block = macro_block(macro_id, parameters, content, inline=False)
        if block is None:
            return None, start

        line_end = text.find("\n", end)
        if line_end == -1:
            line_end = len(text)
        if text[end:line_end].strip():
            # Something follows on the same line: this is inline content
            return None, start
        return block, line_end + 1

    def _heading(self, line: str, id_generator: IdGenerator) -> Block:
        m = HEADING_RE.match(line)
        rest = m.group(2)
        close = HEADING_CLOSE_RE.search(rest)
        if close is not None:
            rest = rest[:close.start()]
        children = self.parse_inline(rest.strip(" \t"))
        heading = Block(BlockKind.HEADING, children, level=len(m.group(1)))
        heading.set_parameter("id", id_generator.generate_unique_id("H", plain_text(heading)))
        return heading

    def _build_lists(self, items: list[tuple[int, str, str]]) -> list[Block]:
        roots: list[Block] = []
        stack: list[tuple[int, Block]] = []
        for depth, style, content in items:
            while stack and (
                stack[-1][0] > depth
                or (stack[-1][0] == depth and stack[-1][1].style != style)
            ):
                stack.pop()
            if stack and stack[-1][0] == depth:
                current = stack[-1][1]
            else:
                current = Block(BlockKind.LIST, style=style)
                if stack:
                    stack[-1][1].children[-1].add_child(current)
                else:
                    roots.append(current)
                stack.append((depth, current))
            current.add_child(Block(BlockKind.LIST_ITEM, self.parse_inline(content)))
        return roots

    def parse_inline(self, text: str, in_link: bool = False) -> list[Block]:
        blocks: list[Block] = []
        buffer: list[str] = []

        def flush():
            if buffer:
                blocks.extend(text_blocks("".join(buffer)))
                buffer.clear()

        i = 0
        while i < len(text):
            c = text[i]

            if c == ESCAPE_CHAR:
                if i + 1 < len(text):
                    buffer.append(text[i + 1])
                    i += 2
                else:
                    buffer.append(c)
                    i += 1
                continue

            if c == "\n":
                flush()
                blocks.append(Block(BlockKind.NEWLINE))
                i += 1
                continue

            found = self._inline_element(text, i, in_link)
            if found is not None:
                block, i = found
                flush()
                blocks.append(block)
                continue

            token = text[i:i + 2]
            if token in FORMAT_TOKENS:
                close = find_unescaped(text, token, i + 2)
                if close != -1:
                    flush()
                    blocks.append(
                        Block(
                            BlockKind.FORMAT,
                            self.parse_inline(text[i + 2:close], in_link),
                            style=FORMAT_TOKENS[token],
                        )
                    )
                    i = close + 2
                    continue

            buffer.append(c)
            i += 1

        flush()
        return blocks

    def _inline_element(self, text: str, i: int, in_link: bool) -> tuple[Block, int] | None:
        """Verbatim, macro, link, image or line break starting at ``i``."""
        if text.startswith("{{{", i):
            close = text.find("}}}", i + 3)
            if close != -1:
                return Block(BlockKind.VERBATIM, text=text[i + 3:close], style=INLINE), close + 3
            return None

        if text.startswith("{{", i):
            found = match_macro(text, i)
            if found is None:
                return None
            macro_id, parameters, content, end = found
            return macro_block(macro_id, parameters, content, inline=True), end

        if text.startswith("[[", i) and not in_link:
            return self._link(text, i)

        if text.startswith("\\\\", i):
            return Block(BlockKind.NEWLINE), i + 2

        m = FREESTANDING_URI_RE.match(text, i)
        if m is None and (i == 0 or not text[i - 1].isalnum()):
            m = URL_RE.match(text, i)
        if m is not None and not in_link:
            location = m.group(0)
            try:
                if location.startswith("image:"):
                    block = Block(
                        BlockKind.IMAGE,
                        reference=self.references.parse_image(location),
                        style=FREESTANDING,
                    )
                else:
                    block = Block(
                        BlockKind.LINK,
                        reference=self.references.parse(location),
                        style=FREESTANDING,
                    )
            except ReferenceParseError:
                return None
            return block, m.end()

        return None

    def _link(self, text: str, i: int) -> tuple[Block, int] | None:
        end = find_unescaped(text, "]]", i + 2)
        if end == -1:
            return None
        inner = text[i + 2:end]

        label = None
        separator = find_unescaped(inner, ">>")
        if separator != -1:
            label, inner = inner[:separator], inner[separator + 2:]

        parameters: dict[str, str] = {}
        separator = find_unescaped(inner, "||")
        if separator != -1:
            parameters = parse_parameters(inner[separator + 2:])
            inner = inner[:separator]
        target = unescape(inner)

        try:
            if target.startswith("image:") and label is None:
                reference = self.references.parse_image(target)
                return Block(BlockKind.IMAGE, parameters=parameters, reference=reference), end + 2
            reference = self.references.parse(target)
        except ReferenceParseError:
            return None

        children = self.parse_inline(label, in_link=True) if label else []
        return Block(BlockKind.LINK, children, parameters, reference=reference), end + 2
