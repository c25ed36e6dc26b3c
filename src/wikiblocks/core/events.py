"""Flatten a block tree into the begin/end/on event stream renderers consume."""

from typing import Callable, Iterator, NamedTuple

from .model import FREESTANDING, INLINE, Block, BlockKind


class Event(NamedTuple):
    name: str  # "beginParagraph", "onWord", ...
    args: tuple = ()


def _container(name: str, args: Callable[[Block], tuple]) -> Callable[[Block], tuple[Event, Event]]:
    def frame(block: Block) -> tuple[Event, Event]:
        values = args(block)
        return Event("begin" + name, values), Event("end" + name, values)
    return frame


def _macro_args(block: Block) -> tuple:
    macro = block.macro
    return (macro.id, dict(macro.parameters), macro.content)


def _marker_frame(block: Block) -> tuple[Event, Event]:
    name = "MacroMarkerInline" if block.macro.inline else "MacroMarkerStandalone"
    args = _macro_args(block)
    return Event("begin" + name, args), Event("end" + name, args)


_CONTAINERS: dict[BlockKind, Callable[[Block], tuple[Event, Event]]] = {
    BlockKind.DOCUMENT: _container("Document", lambda b: (b.parameters,)),
    BlockKind.PARAGRAPH: _container("Paragraph", lambda b: (b.parameters,)),
    BlockKind.HEADING: _container("Heading", lambda b: (b.level, b.parameters)),
    BlockKind.LIST: _container("List", lambda b: (b.style, b.parameters)),
    BlockKind.LIST_ITEM: _container("ListItem", lambda b: ()),
    BlockKind.FORMAT: _container("Format", lambda b: (b.style, b.parameters)),
    BlockKind.LINK: _container(
        "Link", lambda b: (b.reference, b.style == FREESTANDING, b.parameters)
    ),
    BlockKind.MACRO_MARKER: _marker_frame,
}

_LEAVES: dict[BlockKind, Callable[[Block], Event]] = {
    BlockKind.WORD: lambda b: Event("onWord", (b.text,)),
    BlockKind.SPACE: lambda b: Event("onSpace"),
    BlockKind.SPECIAL_SYMBOL: lambda b: Event("onSpecialSymbol", (b.text,)),
    BlockKind.NEWLINE: lambda b: Event("onNewLine"),
    BlockKind.HORIZONTAL_LINE: lambda b: Event("onHorizontalLine", (b.parameters,)),
    BlockKind.VERBATIM: lambda b: Event(
        "onVerbatimInline" if b.style == INLINE else "onVerbatimStandalone",
        (b.text, b.parameters),
    ),
    BlockKind.MACRO: lambda b: Event(
        "onMacroInline" if b.macro.inline else "onMacroStandalone", _macro_args(b)
    ),
    BlockKind.IMAGE: lambda b: Event(
        "onImage", (b.reference, b.style == FREESTANDING, b.parameters)
    ),
    BlockKind.RAW: lambda b: Event("onRawText", (b.text, b.syntax)),
    BlockKind.ERROR: lambda b: Event("onError", (b.text, b.get_parameter("description"))),
}


def iter_events(block: Block) -> Iterator[Event]:
    """Events for ``block`` and its subtree, in document order."""
    # Explicit stack: macro expansion can nest far deeper than the
    # interpreter's recursion limit.
    stack: list[tuple[Iterator[Block], Event]] = []
    pending: Block | None = block
    while True:
        if pending is not None:
            leaf = _LEAVES.get(pending.kind)
            if leaf is not None:
                yield leaf(pending)
            else:
                begin, end = _CONTAINERS[pending.kind](pending)
                yield begin
                stack.append((iter(pending.children), end))
            pending = None
        if not stack:
            return
        children, end = stack[-1]
        pending = next(children, None)
        if pending is None:
            stack.pop()
            yield end
