from __future__ import annotations

import re
import weakref
from dataclasses import dataclass, field
from enum import Enum
from itertools import chain
from typing import Any, Callable, Iterable, Iterator, Union

from .errors import TreeStructureError
from .reference import Reference
from .utils import IdGenerator


class BlockKind(str, Enum):
    DOCUMENT = "document"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    LIST = "list"
    LIST_ITEM = "list_item"
    FORMAT = "format"
    WORD = "word"
    SPACE = "space"
    SPECIAL_SYMBOL = "special_symbol"
    NEWLINE = "newline"
    HORIZONTAL_LINE = "horizontal_line"
    VERBATIM = "verbatim"
    MACRO = "macro"  # not expanded (yet)
    MACRO_MARKER = "macro_marker"  # wraps the output of an executed macro
    LINK = "link"
    IMAGE = "image"
    RAW = "raw"
    ERROR = "error"


# Values of Block.style per kind
BULLETED = "bulleted"
NUMBERED = "numbered"
DEFINITION = "definition"

BOLD = "bold"
ITALIC = "italic"
UNDERLINE = "underline"
STRIKEOUT = "strikeout"
MONOSPACE = "monospace"
SUPERSCRIPT = "superscript"
SUBSCRIPT = "subscript"

INLINE = "inline"
STANDALONE = "standalone"
FREESTANDING = "freestanding"

SPECIAL_SYMBOLS = "!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"

_TEXT_RE = re.compile(
    r"(?P<space>[ \t])|(?P<newline>\r\n|\r|\n)|(?P<special>[%s])|(?P<word>[^ \t\r\n%s]+)"
    % (re.escape(SPECIAL_SYMBOLS), re.escape(SPECIAL_SYMBOLS))
)


@dataclass
class MacroCall:
    id: str
    parameters: dict[str, str] = field(default_factory=dict)
    content: str | None = None
    inline: bool = False

    def copy(self) -> "MacroCall":
        return MacroCall(self.id, dict(self.parameters), self.content, self.inline)

    def _key(self) -> tuple:
        return (self.id, frozenset(self.parameters.items()), self.content, self.inline)


BlockPredicate = Union[BlockKind, tuple, Callable[["Block"], bool]]
BlockFilter = Callable[["Block"], list["Block"]]


def _as_predicate(predicate: BlockPredicate) -> Callable[["Block"], bool]:
    if isinstance(predicate, BlockKind):
        return lambda block: block.kind is predicate
    if isinstance(predicate, tuple):
        return lambda block: block.kind in predicate
    return predicate


class Block:
    """
    A node of the document tree.

    The parent owns its children; ``parent`` is only a weak back-reference
    that every insertion keeps in sync with the actual container.
    """

    def __init__(
        self,
        kind: BlockKind,
        children: Iterable[Block] | None = None,
        parameters: dict[str, str] | None = None,
        *,
        text: str | None = None,
        level: int | None = None,
        style: str | None = None,
        macro: MacroCall | None = None,
        reference: Reference | None = None,
        syntax: str | None = None,
    ):
        self.kind = kind
        self.parameters: dict[str, str] = dict(parameters or {})
        self.text = text
        self.level = level
        self.style = style
        self.macro = macro
        self.reference = reference
        self.syntax = syntax
        self._parent: weakref.ref[Block] | None = None
        self._children: list[Block] = []
        if children:
            self.add_children(children)

    # Navigation

    @property
    def parent(self) -> Block | None:
        return self._parent() if self._parent is not None else None

    @property
    def children(self) -> list[Block]:
        # a copy: the tree is only mutated through the methods below
        return list(self._children)

    @property
    def root(self) -> Block:
        block = self
        while block.parent is not None:
            block = block.parent
        return block

    @property
    def index_in_parent(self) -> int:
        parent = self.parent
        return -1 if parent is None else parent._index_of(self)

    @property
    def path(self) -> tuple[int, ...]:
        """Child indexes leading from the root down to this block."""
        out: list[int] = []
        block = self
        while block.parent is not None:
            out.append(block.index_in_parent)
            block = block.parent
        return tuple(reversed(out))

    def ancestors(self) -> Iterator[Block]:
        block = self.parent
        while block is not None:
            yield block
            block = block.parent

    def descendants(self) -> Iterator[Block]:
        """All descendants in document order."""
        stack = list(reversed(self._children))
        while stack:
            block = stack.pop()
            yield block
            stack.extend(reversed(block._children))

    def get_parameter(self, name: str, default: str | None = None) -> str | None:
        return self.parameters.get(name, default)

    def set_parameter(self, name: str, value: str) -> None:
        self.parameters[name] = value

    # Mutation

    def add_child(self, block: Block) -> None:
        self.insert_after(block, None)

    def add_children(self, blocks: Iterable[Block]) -> None:
        for block in list(blocks):
            self.add_child(block)

    def insert_before(self, block: Block, next_block: Block | None) -> None:
        """Insert ``block`` before ``next_block``, or append it when that is None."""
        self._insert(block, next_block, 0)

    def insert_after(self, block: Block, previous_block: Block | None) -> None:
        """Insert ``block`` after ``previous_block``, or append it when that is None."""
        self._insert(block, previous_block, 1)

    def _insert(self, block: Block, sibling: Block | None, offset: int) -> None:
        self._check_insertable(block)
        if sibling is not None:
            if sibling is block:
                raise TreeStructureError("A block can't be inserted next to itself")
            self._index_of_or_fail(sibling)
        block._detach()
        if sibling is None:
            self._children.append(block)
        else:
            self._children.insert(self._index_of(sibling) + offset, block)
        block._parent = weakref.ref(self)

    def replace_child(self, new_blocks: Block | Iterable[Block], old_block: Block) -> None:
        """
        Replace ``old_block`` by zero or more blocks at the same position.

        Raises:
            TreeStructureError: if ``old_block`` is not a direct child, or if
                ``new_blocks`` holds the same block twice
        """
        if isinstance(new_blocks, Block):
            new_blocks = [new_blocks]
        new_blocks = list(new_blocks)
        position = self._index_of_or_fail(old_block)
        if len({id(block) for block in new_blocks}) != len(new_blocks):
            raise TreeStructureError("The same block can't be inserted twice")
        for block in new_blocks:
            if block is not old_block:
                self._check_insertable(block)

        # Keep the slot while the new blocks leave their old containers,
        # some of them may be our own children.
        slot = Block(BlockKind.RAW)
        self._children[position] = slot
        old_block._parent = None
        for block in new_blocks:
            block._detach()
        position = self._index_of(slot)
        self._children[position:position + 1] = new_blocks
        for block in new_blocks:
            block._parent = weakref.ref(self)

    def remove_child(self, block: Block) -> None:
        self.replace_child([], block)

    def _detach(self) -> None:
        parent = self.parent
        if parent is not None:
            index = parent._index_of(self)
            if index != -1:
                del parent._children[index]
        self._parent = None

    def _check_insertable(self, block: Block) -> None:
        if block is self or any(ancestor is block for ancestor in self.ancestors()):
            raise TreeStructureError("A block can't become a descendant of itself")

    def _index_of(self, block: Block) -> int:
        for index, child in enumerate(self._children):
            if child is block:
                return index
        return -1

    def _index_of_or_fail(self, block: Block) -> int:
        index = self._index_of(block)
        if index == -1:
            raise TreeStructureError(f"{block!r} is not a child of {self!r}")
        return index

    # Search

    def find_by_type(self, predicate: BlockPredicate, recursive: bool = True) -> list[Block]:
        """Matching descendants in document order (direct children only if not recursive)."""
        matches = _as_predicate(predicate)
        if recursive:
            return [block for block in self.descendants() if matches(block)]
        return [block for block in self._children if matches(block)]

    def find_previous_by_type(self, predicate: BlockPredicate, recursive: bool = True) -> Block | None:
        """Closest match among previous siblings, then the parent, then upward."""
        matches = _as_predicate(predicate)
        block = self
        while block.parent is not None:
            parent = block.parent
            for sibling in reversed(parent._children[:parent._index_of(block)]):
                if matches(sibling):
                    return sibling
            if matches(parent):
                return parent
            if not recursive:
                return None
            block = parent
        return None

    def find_next_by_type(self, predicate: BlockPredicate, recursive: bool = True) -> Block | None:
        """Closest match among next siblings, then the parent's next siblings, upward."""
        matches = _as_predicate(predicate)
        block = self
        while block.parent is not None:
            parent = block.parent
            for sibling in parent._children[parent._index_of(block) + 1:]:
                if matches(sibling):
                    return sibling
            if not recursive:
                return None
            block = parent
        return None

    def find_ancestor_by_type(self, predicate: BlockPredicate) -> Block | None:
        matches = _as_predicate(predicate)
        for ancestor in self.ancestors():
            if matches(ancestor):
                return ancestor
        return None

    # Copy and comparison

    def clone(self, block_filter: BlockFilter | None = None) -> Block:
        """
        Deep copy of this subtree.

        With a filter, each cloned child is replaced by ``block_filter(child)``;
        when that is empty the child's own (filtered) children take its place.
        """
        copy = self._copy_node()
        # (copy, remaining source children); a copy is filtered and attached
        # once all of its children are done
        stack = [(copy, iter(self._children))]
        while stack:
            current, children = stack[-1]
            child = next(children, None)
            if child is not None:
                stack.append((child._copy_node(), iter(child._children)))
                continue
            stack.pop()
            if not stack:
                break
            filtered = [current] if block_filter is None else block_filter(current)
            if not filtered:
                filtered = current.children
            stack[-1][0].add_children(filtered)
        return copy

    def _copy_node(self) -> Block:
        return Block(
            self.kind,
            parameters=self.parameters,
            text=self.text,
            level=self.level,
            style=self.style,
            macro=self.macro.copy() if self.macro is not None else None,
            reference=self.reference,
            syntax=self.syntax,
        )

    def _payload(self) -> tuple:
        return (
            self.text,
            self.level,
            self.style,
            self.macro._key() if self.macro is not None else None,
            self.reference,
            self.syntax,
        )

    def _node_key(self) -> tuple:
        return (
            type(self),
            self.kind,
            self._payload(),
            frozenset(self.parameters.items()),
            len(self._children),
        )

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Block) or type(other) is not type(self):
            return NotImplemented
        pairs = [(self, other)]
        while pairs:
            left, right = pairs.pop()
            if left is right:
                continue
            if left._node_key() != right._node_key():
                return False
            pairs.extend(zip(left._children, right._children))
        return True

    def __hash__(self) -> int:
        return hash(tuple(block._node_key() for block in chain([self], self.descendants())))

    def __repr__(self) -> str:
        details = [self.kind.name]
        for name in ("text", "level", "style", "macro", "reference", "syntax"):
            value = getattr(self, name)
            if value is not None:
                details.append(f"{name}={value!r}")
        if self.parameters:
            details.append(f"parameters={self.parameters!r}")
        if self._children:
            details.append(f"children={len(self._children)}")
        return f"Block({', '.join(details)})"


class Document(Block):
    """The root of a parsed document; owns the id generator of the document."""

    def __init__(
        self,
        children: Iterable[Block] | None = None,
        parameters: dict[str, str] | None = None,
        id_generator: IdGenerator | None = None,
    ):
        super().__init__(BlockKind.DOCUMENT, children, parameters)
        self.id_generator = id_generator or IdGenerator()

    def _copy_node(self) -> Document:
        return Document(parameters=self.parameters, id_generator=self.id_generator.copy())


# Shortcuts used by parsers, macros and tests


def paragraph(children: Iterable[Block] = (), **parameters: str) -> Block:
    return Block(BlockKind.PARAGRAPH, children, parameters)


def word(text: str) -> Block:
    return Block(BlockKind.WORD, text=text)


def space() -> Block:
    return Block(BlockKind.SPACE)


def special_symbol(symbol: str) -> Block:
    return Block(BlockKind.SPECIAL_SYMBOL, text=symbol)


def macro_block(
    macro_id: str,
    parameters: dict[str, str] | None = None,
    content: str | None = None,
    inline: bool = False,
) -> Block:
    return Block(
        BlockKind.MACRO,
        macro=MacroCall(macro_id, dict(parameters or {}), content, inline),
    )


def text_blocks(text: str) -> list[Block]:
    """Split plain text into WORD, SPACE, SPECIAL_SYMBOL and NEWLINE blocks."""
    blocks: list[Block] = []
    for m in _TEXT_RE.finditer(text):
        if m.group("space"):
            blocks.append(space())
        elif m.group("newline"):
            blocks.append(Block(BlockKind.NEWLINE))
        elif m.group("special"):
            blocks.append(special_symbol(m.group("special")))
        else:
            blocks.append(word(m.group("word")))
    return blocks


def plain_text(block: Block) -> str:
    """The text a reader sees in a subtree, without any markup."""
    parts = []
    for node in chain([block], block.descendants()):
        if node.kind is BlockKind.WORD or node.kind is BlockKind.SPECIAL_SYMBOL:
            parts.append(node.text or "")
        elif node.kind is BlockKind.SPACE:
            parts.append(" ")
        elif node.kind is BlockKind.NEWLINE:
            parts.append("\n")
        elif node.kind is BlockKind.VERBATIM:
            parts.append(node.text or "")
    return "".join(parts)
