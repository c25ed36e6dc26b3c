from __future__ import annotations

from dataclasses import dataclass
from typing import Union

WIKI_SEPARATOR = ":"
SPACE_SEPARATOR = "."
ANCHOR_SEPARATOR = "#"
QUERY_SEPARATOR = "?"
INTERWIKI_SEPARATOR = "@"


@dataclass(frozen=True)
class DocumentReference:
    """A page inside a wiki; every missing part is resolved by the caller."""

    wiki: str | None = None
    space: str | None = None
    page: str | None = None  # None means the space home page
    anchor: str | None = None
    query_string: str | None = None

    @property
    def document_name(self) -> str:
        out = ""
        if self.wiki is not None:
            out += self.wiki + WIKI_SEPARATOR
        if self.space is not None:
            out += self.space + SPACE_SEPARATOR
        if self.page is not None:
            out += self.page
        return out

    def __str__(self) -> str:
        return _with_modifiers(self.document_name, self.anchor, self.query_string)


@dataclass(frozen=True)
class URIReference:
    scheme: str  # "mailto", "attach", "image", "http", ...
    path: str  # everything after "<scheme>:"

    def __str__(self) -> str:
        return f"{self.scheme}:{self.path}"


@dataclass(frozen=True)
class InterWikiReference:
    alias: str
    path: str = ""
    anchor: str | None = None
    query_string: str | None = None

    def __str__(self) -> str:
        return (
            _with_modifiers(self.path, self.anchor, self.query_string)
            + INTERWIKI_SEPARATOR
            + self.alias
        )


Reference = Union[DocumentReference, URIReference, InterWikiReference]


def _with_modifiers(core: str, anchor: str | None, query_string: str | None) -> str:
    if anchor is not None:
        core += ANCHOR_SEPARATOR + anchor
    if query_string is not None:
        core += QUERY_SEPARATOR + query_string
    return core


def serialize_reference(reference: Reference) -> str:
    """Textual form of a reference, as accepted by the reference parser."""
    return str(reference)


def parse_document_name(name: str) -> tuple[str | None, str | None, str | None]:
    """
    Split ``wiki:space.page`` into its three parts.

    The *last* ``:`` separates the wiki and the *last* ``.`` separates the
    space, so ``a:b:c.d.e`` is wiki ``a:b``, space ``c.d``, page ``e``.
    Empty parts come back as None.
    """
    wiki = None
    rest = name
    index = rest.rfind(WIKI_SEPARATOR)
    if index != -1:
        wiki = rest[:index]
        rest = rest[index + 1:]

    space = None
    index = rest.rfind(SPACE_SEPARATOR)
    if index != -1:
        space = rest[:index]
        rest = rest[index + 1:]

    return (wiki or None, space or None, rest or None)


def split_attachment(reference: URIReference) -> tuple[DocumentReference | None, str]:
    """
    Split an ``attach:`` path into the owning document and the file name.

    ``Space.Page@photo.png`` gives ``(DocumentReference(space="Space",
    page="Page"), "photo.png")``; a bare file name has no document.
    """
    path = reference.path
    index = path.find(INTERWIKI_SEPARATOR)
    if index == -1:
        return (None, path)
    wiki, space, page = parse_document_name(path[:index])
    return (DocumentReference(wiki=wiki, space=space, page=page), path[index + 1:])
