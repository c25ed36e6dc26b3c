"""Exception types raised by wikiblocks."""


class WikiBlocksError(Exception):
    """Base class for every error raised by the library."""


class TreeStructureError(WikiBlocksError, ValueError):
    """A tree operation was asked to break the block tree invariants."""


class ReferenceParseError(WikiBlocksError, ValueError):
    """A link or image reference could not be parsed."""


class SyntaxParseError(WikiBlocksError, ValueError):
    """A syntax id or a macro definition file could not be read."""


class MacroLookupError(WikiBlocksError, LookupError):
    """No macro is registered under the requested id."""


class MacroExecutionError(WikiBlocksError):
    """A macro failed to produce its blocks."""

    def __init__(self, message: str, description: str | None = None):
        super().__init__(message)
        self.message = message
        self.description = description


class ConfigError(WikiBlocksError):
    """The configuration file holds an invalid value."""
