import re

from ..core.model import (
    BOLD,
    BULLETED,
    FREESTANDING,
    INLINE,
    ITALIC,
    MONOSPACE,
    NUMBERED,
    STRIKEOUT,
    SUBSCRIPT,
    SUPERSCRIPT,
    UNDERLINE,
    Block,
    BlockKind,
    MacroCall,
)
from ..core.ports import Renderer
from ..core.reference import URIReference
from ..core.syntax import XWIKI_2_0
from ..format.escape import EscapeState, combines, escape

FORMAT_TOKENS = {
    BOLD: "**",
    ITALIC: "//",
    UNDERLINE: "__",
    STRIKEOUT: "--",
    SUPERSCRIPT: "^^",
    SUBSCRIPT: ",,",
    MONOSPACE: "##",
}

STANDALONE_KINDS = (
    BlockKind.PARAGRAPH,
    BlockKind.HEADING,
    BlockKind.LIST,
    BlockKind.HORIZONTAL_LINE,
    BlockKind.DOCUMENT,
)


def render_macro_call(call: MacroCall) -> str:
    out = "{{" + call.id
    for name, value in call.parameters.items():
        value = value.replace("\\", "\\\\").replace('"', '\\"')
        out += f' {name}="{value}"'
    if call.content is None:
        return out + "/}}"
    return out + "}}" + call.content + "{{/" + call.id + "}}"


class _Printer:
    def __init__(self):
        self.parts: list[str] = []
        self.last = ""

    def write(self, text: str) -> None:
        if text:
            self.parts.append(text)
            self.last = text[-1]

    @property
    def at_line_start(self) -> bool:
        return self.last in ("", "\n")

    def getvalue(self) -> str:
        return "".join(self.parts)


class XWikiRenderer(Renderer):
    """
    Serialize a block tree to XWiki 2.0 syntax.

    Plain text goes through the escape handler, so parsing the output again
    gives back the same text. Expanded macros are written as the macro call,
    not as their output.
    """

    syntax = XWIKI_2_0

    def render(self, block: Block) -> str:
        printer = _Printer()
        if block.kind is BlockKind.DOCUMENT:
            self._standalone_sequence(block.children, printer)
        elif self._is_standalone(block):
            self._standalone_sequence([block], printer)
        else:
            self._inline(
                [block], printer, EscapeState(in_paragraph=True)
            )
        return printer.getvalue()

    def _is_standalone(self, block: Block) -> bool:
        if block.kind in STANDALONE_KINDS:
            return True
        if block.kind in (BlockKind.MACRO, BlockKind.MACRO_MARKER):
            return not block.macro.inline
        if block.kind is BlockKind.VERBATIM:
            return block.style != INLINE
        return False

    def _standalone_sequence(self, blocks: list[Block], printer: _Printer) -> None:
        first = True
        run: list[Block] = []

        def separate():
            nonlocal first
            if not first:
                printer.write("\n\n")
            first = False

        for block in blocks:
            if self._is_standalone(block):
                if run:
                    separate()
                    self._inline(run, printer, EscapeState(in_paragraph=True))
                    run = []
                separate()
                self._standalone(block, printer)
            else:
                run.append(block)
        if run:
            separate()
            self._inline(run, printer, EscapeState(in_paragraph=True))

    def _standalone(self, block: Block, printer: _Printer) -> None:
        kind = block.kind
        if kind is BlockKind.DOCUMENT:
            self._standalone_sequence(block.children, printer)
        elif kind is BlockKind.PARAGRAPH:
            self._inline(block.children, printer, EscapeState(in_paragraph=True))
        elif kind is BlockKind.HEADING:
            marker = "=" * (block.level or 1)
            printer.write(marker + " ")
            self._inline(block.children, printer, EscapeState(in_section=True))
            printer.write(" " + marker)
        elif kind is BlockKind.LIST:
            self._list(block, printer, 1)
        elif kind is BlockKind.HORIZONTAL_LINE:
            printer.write("----")
        elif kind is BlockKind.VERBATIM:
            printer.write("{{{" + (block.text or "") + "}}}")
        else:
            printer.write(render_macro_call(block.macro))

    def _list(self, block: Block, printer: _Printer, depth: int) -> None:
        if block.style == NUMBERED:
            marker = "1" * depth + "."
        elif block.style == BULLETED or block.style is None:
            marker = "*" * depth
        else:
            marker = ";" * depth
        for index, item in enumerate(block.children):
            if index or depth > 1:
                printer.write("\n")
            printer.write(marker + " ")
            inline = [c for c in item.children if c.kind is not BlockKind.LIST]
            self._inline(inline, printer, EscapeState())
            for nested in item.children:
                if nested.kind is BlockKind.LIST:
                    self._list(nested, printer, depth + 1)

    def _inline(
        self, blocks: list[Block], printer: _Printer, state: EscapeState, next_token: str = ""
    ) -> None:
        """Write inline blocks; ``next_token`` is what the caller writes right after."""
        buffer: list[str] = []

        def flush(next_token: str) -> None:
            if not buffer:
                return
            text = "".join(buffer)
            buffer.clear()
            first = None
            if combines(printer.last, text, state.in_link):
                first = re.compile("(" + re.escape(text[0]) + ")")
            printer.write(
                escape(
                    text,
                    EscapeState(
                        text_on_new_line=printer.at_line_start,
                        in_paragraph=state.in_paragraph,
                        in_section=state.in_section,
                        in_link=state.in_link,
                    ),
                    escape_last_char=combines(text, next_token, state.in_link),
                    escape_first_if_matching=first,
                )
            )

        for block in blocks:
            kind = block.kind
            if kind is BlockKind.WORD or kind is BlockKind.SPECIAL_SYMBOL:
                buffer.append(block.text or "")
                continue
            if kind is BlockKind.SPACE:
                buffer.append(" ")
                continue

            if kind is BlockKind.FORMAT:
                token = FORMAT_TOKENS.get(block.style, "")
                flush(token)
                printer.write(token)
                self._inline(block.children, printer, state, token)
                printer.write(token)
            elif kind is BlockKind.NEWLINE:
                flush("\n")
                printer.write("\n")
            elif kind is BlockKind.LINK:
                previous = "".join(buffer)[-1:] or printer.last
                self._link(block, printer, flush, previous)
            elif kind is BlockKind.IMAGE:
                self._image(block, printer, flush)
            elif kind is BlockKind.VERBATIM:
                flush("{{{")
                printer.write("{{{" + (block.text or "") + "}}}")
            elif kind in (BlockKind.MACRO, BlockKind.MACRO_MARKER):
                flush("{{")
                printer.write(render_macro_call(block.macro))
            elif kind is BlockKind.RAW:
                flush(block.text or "")
                printer.write(block.text or "")
            elif kind is BlockKind.ERROR:
                buffer.append(block.text or "")
            else:
                # Containers without syntax of their own
                flush("")
                self._inline(block.children, printer, state)
        flush(next_token)

    def _link(self, block: Block, printer: _Printer, flush, previous: str) -> None:
        target = str(block.reference) if block.reference is not None else ""
        if (
            block.style == FREESTANDING
            and not block.children
            and not block.parameters
            and not previous.isalnum()
        ):
            flush(target)
            printer.write(target)
            return
        flush("[[")
        printer.write("[[")
        if block.children:
            self._inline(block.children, printer, EscapeState(in_link=True), ">>")
            printer.write(">>")
        printer.write(target)
        self._link_parameters(block, printer)
        printer.write("]]")

    def _image(self, block: Block, printer: _Printer, flush) -> None:
        reference = block.reference
        if isinstance(reference, URIReference) and reference.scheme == "attach":
            location = reference.path
        else:
            location = str(reference)
        if block.style == FREESTANDING and not block.parameters:
            flush("image:")
            printer.write("image:" + location)
            return
        flush("[[")
        printer.write("[[image:" + location)
        self._link_parameters(block, printer)
        printer.write("]]")

    def _link_parameters(self, block: Block, printer: _Printer) -> None:
        if block.parameters:
            printer.write("||" + " ".join(
                f'{k}="{v}"' for k, v in block.parameters.items()
            ))
