from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Protocol

from .model import Block, Document
from .syntax import Syntax
from .utils import IdGenerator

if TYPE_CHECKING:
    from .macro import MacroDescriptor
    from ..transform.macro import MacroTransformationContext


class Macro(Protocol):
    """
    Executable behaviour behind a macro id.

    ``priority`` orders execution inside a transformation pass: lower values
    run first.
    """

    priority: int
    descriptor: MacroDescriptor

    def supports_inline(self) -> bool:
        pass

    def execute(
        self,
        parameters: dict[str, str],
        content: str | None,
        context: MacroTransformationContext,
    ) -> list[Block]:
        pass


class MacroLookup(Protocol):
    """
    Read side of a macro registry. A syntax-specific registration shadows
    the registration made for all syntaxes under the same id.
    """

    def exists(self, macro_id: str, syntax: Syntax | None = None) -> bool:
        pass

    def resolve(self, macro_id: str, syntax: Syntax | None = None) -> Macro:
        pass

    def macro_ids(self, syntax: Syntax | None = None) -> Iterable[str]:
        pass

    def snapshot(self) -> MacroLookup:
        """Registrations as of now, unaffected by later changes."""
        pass


class ParserStrategy(Protocol):
    """
    Turn source text of one syntax into a Document.
    """

    syntax: Syntax

    def parse(self, text: str, id_generator: IdGenerator | None = None) -> Document:
        pass


class Renderer(Protocol):
    """
    Serialize a block tree; renderers never modify the tree.
    """

    def render(self, block: Block) -> str:
        pass
