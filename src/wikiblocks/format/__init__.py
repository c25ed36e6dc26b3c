"""Text formatting utilities for wikiblocks."""

from .escape import ESCAPE_CHAR, EscapeState, combines, escape, unescape

__all__ = [
    "ESCAPE_CHAR",
    "EscapeState",
    "combines",
    "escape",
    "unescape",
]
