"""Syntax identifiers such as ``xwiki/2.0``."""

from dataclasses import dataclass

from .errors import SyntaxParseError


@dataclass(frozen=True)
class Syntax:
    type: str  # e.g. "xwiki"
    version: str  # e.g. "2.0"

    @property
    def id(self) -> str:
        return f"{self.type}/{self.version}"

    def __str__(self) -> str:
        return self.id

    @classmethod
    def parse(cls, syntax_id: str) -> "Syntax":
        """Parse ``type/version``.

        Raises:
            SyntaxParseError: if the id doesn't have exactly two non-empty parts
        """
        parts = syntax_id.strip().split("/")
        if len(parts) != 2 or not all(parts):
            raise SyntaxParseError(
                f"Invalid syntax id [{syntax_id}], expected <type>/<version>"
            )
        return cls(type=parts[0].lower(), version=parts[1])


XWIKI_2_0 = Syntax("xwiki", "2.0")
EVENTS_1_0 = Syntax("events", "1.0")
