"""Runtime wiring helper for CLI applications."""

import logging
from dataclasses import dataclass
from pathlib import Path

from .adapters.events_renderer import EventsRenderer
from .adapters.macro_registry import MacroRegistry
from .adapters.reference_parser import ReferenceParser
from .adapters.xwiki_parser import XWikiParser
from .adapters.xwiki_renderer import XWikiRenderer
from .adapters.yaml_macros import register_wiki_macros
from .config import WikiBlocksConfig, load_config
from .core.errors import SyntaxParseError
from .core.model import Document
from .core.ports import Renderer
from .core.syntax import EVENTS_1_0, XWIKI_2_0, Syntax
from .transform.macro import MacroTransformation, TransformationResult

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Container for all wired components."""
    registry: MacroRegistry
    references: ReferenceParser
    parser: XWikiParser
    transformation: MacroTransformation
    renderers: dict[str, Renderer]
    config: WikiBlocksConfig

    def renderer(self, syntax: Syntax) -> Renderer:
        try:
            return self.renderers[syntax.id]
        except KeyError:
            raise SyntaxParseError(f"No renderer for syntax [{syntax}]") from None

    def render_text(
        self, text: str, syntax: Syntax, transform: bool = True
    ) -> tuple[Document, TransformationResult | None]:
        """Parse ``text`` and run the macro transformation on the result."""
        document = self.parser.parse(text)
        result = None
        if transform:
            result = self.transformation.transform(document, syntax)
        return document, result


def build_runtime(
    config_path: Path | None = None,
    base_path: Path | None = None,
    registry: MacroRegistry | None = None,
) -> Runtime:
    """Build and wire all components."""
    # Load configuration
    config = load_config(config_path=config_path, base_path=base_path)

    if config.rendering.syntax != XWIKI_2_0:
        raise SyntaxParseError(f"No parser for syntax [{config.rendering.syntax}]")

    if registry is None:
        registry = MacroRegistry()
    for path in config.macros.definitions:
        register_wiki_macros(registry, path)

    references = ReferenceParser()
    parser = XWikiParser(references)
    transformation = MacroTransformation(
        registry,
        parser,
        max_recursions=config.macros.max_recursions,
        max_executions=config.macros.max_executions,
    )
    logger.debug("Runtime ready with %d macro registrations", len(registry))

    return Runtime(
        registry=registry,
        references=references,
        parser=parser,
        transformation=transformation,
        renderers={
            XWIKI_2_0.id: XWikiRenderer(),
            EVENTS_1_0.id: EventsRenderer(),
        },
        config=config,
    )
