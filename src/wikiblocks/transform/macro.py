"""Expansion of the macros of a document, in place."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..core.errors import MacroExecutionError, TreeStructureError
from ..core.macro import prepare_parameters
from ..core.model import Block, BlockKind, Document
from ..core.ports import Macro, MacroLookup, ParserStrategy
from ..core.syntax import Syntax

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECURSIONS = 1000
DEFAULT_MAX_EXECUTIONS = 10000


@dataclass
class MacroFailure:
    macro_id: str
    location: tuple[int, ...]  # child indexes from the document root
    message: str
    description: str | None = None


@dataclass
class Truncation:
    macro_id: str
    location: tuple[int, ...]
    reason: str  # "recursion" | "executions"


@dataclass
class TransformationResult:
    executed: int = 0
    failures: list[MacroFailure] = field(default_factory=list)
    truncated: list[Truncation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class MacroTransformationContext:
    """What a macro can see of the pass that executes it."""

    document: Document
    syntax: Syntax
    macros: MacroLookup
    parser: ParserStrategy | None = None
    current_macro_block: Block | None = None
    inline: bool = False

    def parse_content(self, content: str, inline: bool | None = None) -> list[Block]:
        """
        Parse wiki content (typically the macro's own content) into blocks.

        In inline mode a lone paragraph is unwrapped so the blocks can sit
        inside the surrounding paragraph.
        """
        if self.parser is None:
            raise MacroExecutionError("No parser is available to parse the macro content")
        blocks = self.parser.parse(content, self.document.id_generator).children
        if inline is None:
            inline = self.inline
        if inline:
            blocks = _unwrap_paragraph(blocks)
        return blocks


def _unwrap_paragraph(blocks: list[Block]) -> list[Block]:
    if len(blocks) == 1 and blocks[0].kind is BlockKind.PARAGRAPH:
        return blocks[0].children
    return blocks


def _nesting_depth(block: Block) -> int:
    return sum(1 for ancestor in block.ancestors() if ancestor.kind is BlockKind.MACRO_MARKER)


class MacroTransformation:
    """
    Execute every registered macro of a document until none is left.

    One macro runs per round: the one with the lowest priority value,
    document order breaking ties. The tree is scanned again after each
    execution since a macro may emit new macros. Expansion stops below
    ``max_recursions`` nested markers (the macro stays unexpanded) and
    after ``max_executions`` executions in total.
    """

    def __init__(
        self,
        macros: MacroLookup,
        parser: ParserStrategy | None = None,
        max_recursions: int = DEFAULT_MAX_RECURSIONS,
        max_executions: int = DEFAULT_MAX_EXECUTIONS,
    ):
        self.macros = macros
        self.parser = parser
        self.max_recursions = max_recursions
        self.max_executions = max_executions

    def transform(self, document: Document, syntax: Syntax) -> TransformationResult:
        result = TransformationResult()
        truncated: set[int] = set()

        while True:
            # Registrations made from now on only count for the next round
            macros = self.macros.snapshot()
            found = self._next_macro(document, syntax, macros, result, truncated)
            if found is None:
                break
            block, macro = found
            if result.executed >= self.max_executions:
                self._truncate_all(document, syntax, macros, result, truncated)
                break
            self._execute(block, macro, document, syntax, macros, result)

        logger.debug(
            "Macro transformation done: %d executed, %d failed, %d truncated",
            result.executed, len(result.failures), len(result.truncated),
        )
        return result

    def _eligible(
        self,
        document: Document,
        syntax: Syntax,
        macros: MacroLookup,
    ) -> list[Block]:
        return [
            block
            for block in document.find_by_type(BlockKind.MACRO)
            if macros.exists(block.macro.id, syntax)
        ]

    def _next_macro(
        self,
        document: Document,
        syntax: Syntax,
        macros: MacroLookup,
        result: TransformationResult,
        truncated: set[int],
    ) -> tuple[Block, Macro] | None:
        best: tuple[Block, Macro] | None = None
        for block in self._eligible(document, syntax, macros):
            if id(block) in truncated:
                continue
            if _nesting_depth(block) >= self.max_recursions:
                truncated.add(id(block))
                result.truncated.append(Truncation(block.macro.id, block.path, "recursion"))
                logger.info(
                    "Macro [%s] left unexpanded: more than %d nested macros",
                    block.macro.id, self.max_recursions,
                )
                continue
            macro = macros.resolve(block.macro.id, syntax)
            if best is None or macro.priority < best[1].priority:
                best = (block, macro)
        return best

    def _truncate_all(
        self,
        document: Document,
        syntax: Syntax,
        macros: MacroLookup,
        result: TransformationResult,
        truncated: set[int],
    ) -> None:
        logger.info("Macro expansion stopped after %d executions", result.executed)
        for block in self._eligible(document, syntax, macros):
            if id(block) not in truncated:
                truncated.add(id(block))
                result.truncated.append(Truncation(block.macro.id, block.path, "executions"))

    def _execute(
        self,
        block: Block,
        macro: Macro,
        document: Document,
        syntax: Syntax,
        macros: MacroLookup,
        result: TransformationResult,
    ) -> None:
        call = block.macro
        location = block.path
        context = MacroTransformationContext(
            document=document,
            syntax=syntax,
            macros=macros,
            parser=self.parser,
            current_macro_block=block,
            inline=call.inline,
        )
        result.executed += 1

        try:
            if call.inline and not macro.supports_inline():
                raise MacroExecutionError(
                    f"The [{call.id}] macro is a standalone macro and it cannot be used inline"
                )
            parameters = prepare_parameters(macro.descriptor, call.parameters, call.content)
            new_blocks = list(macro.execute(parameters, call.content, context))
        except TreeStructureError:
            raise
        except MacroExecutionError as e:
            new_blocks = self._fail(call.id, location, e.message, e.description, result)
        except Exception as e:
            logger.debug("Macro [%s] raised", call.id, exc_info=True)
            new_blocks = self._fail(
                call.id, location, f"Failed to execute the [{call.id}] macro", str(e) or None, result
            )
        else:
            if call.inline:
                new_blocks = _unwrap_paragraph(new_blocks)

        marker = Block(BlockKind.MACRO_MARKER, new_blocks, macro=call.copy())
        block.parent.replace_child([marker], block)

    def _fail(
        self,
        macro_id: str,
        location: tuple[int, ...],
        message: str,
        description: str | None,
        result: TransformationResult,
    ) -> list[Block]:
        logger.warning("Macro [%s] at %s failed: %s", macro_id, location, message)
        result.failures.append(MacroFailure(macro_id, location, message, description))
        parameters = {"description": description} if description else {}
        return [Block(BlockKind.ERROR, parameters=parameters, text=message)]
