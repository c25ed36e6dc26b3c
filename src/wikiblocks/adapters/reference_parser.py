import re
from urllib.parse import urlsplit

from ..core.errors import ReferenceParseError
from ..core.reference import (
    ANCHOR_SEPARATOR,
    INTERWIKI_SEPARATOR,
    QUERY_SEPARATOR,
    DocumentReference,
    InterWikiReference,
    Reference,
    URIReference,
    parse_document_name,
)

URL_SCHEME_RE = re.compile(r"[a-zA-Z0-9+.-]*://")
URI_PREFIXES = ("mailto", "image", "attach")
# Characters that can't appear unencoded anywhere in a URI
INVALID_URI_CHARS_RE = re.compile(r'[\s"<>\\^`{|}]')


def _cut_after(content: str, separator: str) -> tuple[str, str | None]:
    """Split on the *last* separator: (before, after) or (content, None)."""
    index = content.rfind(separator)
    if index == -1:
        return content, None
    return content[:index], content[index + len(separator):].strip()


class ReferenceParser:
    """
    Parse the target part of links and images.

    ``[[label>>wiki:Space.Page#anchor?x=1]]`` hands ``wiki:Space.Page#anchor?x=1``
    to ``parse``. Parsing works from the right: interwiki alias (last ``@``),
    then query string (last ``?``), then anchor (last ``#``); what remains is
    the document name. URIs and URLs are taken whole and never decomposed.
    """

    def parse(self, raw: str) -> Reference:
        content = raw.strip()

        uri = self._parse_uri(content)
        if uri is not None:
            return uri

        # Order matters: the query string may hold "." or ":" which must not
        # be read as space/wiki separators, and "@" is therefore forbidden in it.
        content, alias = _cut_after(content, INTERWIKI_SEPARATOR)
        content, query_string = _cut_after(content, QUERY_SEPARATOR)
        content, anchor = _cut_after(content, ANCHOR_SEPARATOR)
        content = content.strip()

        if alias is not None:
            if not alias:
                raise ReferenceParseError(f"Missing interwiki alias in [{raw}]")
            return InterWikiReference(
                alias=alias,
                path=content,
                anchor=anchor or None,
                query_string=query_string or None,
            )

        wiki, space, page = parse_document_name(content)
        return DocumentReference(
            wiki=wiki,
            space=space,
            page=page,
            anchor=anchor or None,
            query_string=query_string or None,
        )

    def parse_image(self, location: str) -> Reference:
        """
        Parse an image location: a URL, or an attachment optionally prefixed
        by the owning document (``Space.Page@photo.png``).
        """
        location = location.strip()
        if URL_SCHEME_RE.match(location):
            return self._parse_url(location)
        if location.startswith("image:"):
            location = location[len("image:"):]
        if not location:
            raise ReferenceParseError("Invalid image location []")
        if INVALID_URI_CHARS_RE.search(location):
            raise ReferenceParseError(f"Invalid image location [{location}]")
        return URIReference(scheme="attach", path=location)

    def _parse_uri(self, content: str) -> URIReference | None:
        index = content.find(":")
        if index > -1 and content[:index] in URI_PREFIXES:
            path = content[index + 1:]
            if not path or INVALID_URI_CHARS_RE.search(path):
                raise ReferenceParseError(f"Invalid URI [{content}]")
            return URIReference(scheme=content[:index], path=path)
        if URL_SCHEME_RE.match(content):
            return self._parse_url(content)
        return None

    def _parse_url(self, content: str) -> URIReference:
        try:
            parts = urlsplit(content)
        except ValueError as e:
            raise ReferenceParseError(f"Invalid URL format [{content}]") from e
        if (
            not parts.scheme
            or (not parts.netloc and parts.scheme != "file")
            or INVALID_URI_CHARS_RE.search(content)
        ):
            raise ReferenceParseError(f"Invalid URL format [{content}]")
        scheme, _, path = content.partition(":")
        return URIReference(scheme=scheme, path=path)


_default = ReferenceParser()


def parse_reference(raw: str) -> Reference:
    return _default.parse(raw)


def parse_image_reference(location: str) -> Reference:
    return _default.parse_image(location)
