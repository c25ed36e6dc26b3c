"""Utility functions for wikiblocks."""

import re
import unicodedata


def slugify(text: str) -> str:
    """
    Convert text to an ASCII, id-safe slug.

    - Lowercase
    - Unicode normalize (NFKD), drop combining marks and non-ASCII
    - Remove punctuation except spaces and hyphens
    - Convert whitespace to single `-`
    - Collapse multiple `-` to single, strip leading/trailing `-`

    Examples:
        >>> slugify("Parallel transport")
        'parallel-transport'
        >>> slugify("Riemann–Christoffel symbols")
        'riemann-christoffel-symbols'
    """
    text = text.lower()

    # En dash, em dash and minus sign
    text = text.replace('–', '-').replace('—', '-').replace('−', '-')

    text = unicodedata.normalize('NFKD', text)
    text = ''.join(c for c in text if not unicodedata.combining(c))
    text = text.encode('ascii', 'ignore').decode('ascii')

    text = re.sub(r'[^\w\s-]', '', text)
    text = re.sub(r'\s+', '-', text)
    text = re.sub(r'-+', '-', text)

    return text.strip('-')


class IdGenerator:
    """
    Hand out ids that are unique for the lifetime of one document.

    Ids are built from a prefix and a text, e.g. ``("H", "My heading")``
    gives ``Hmy-heading``, then ``Hmy-heading-1`` the next time.
    """

    def __init__(self, used: set[str] | None = None):
        self._used = set(used or ())

    def generate_unique_id(self, prefix: str = "I", text: str = "") -> str:
        if not prefix or not prefix[0].isalpha():
            raise ValueError(f"Id prefix must start with a letter, got [{prefix}]")
        base = prefix + slugify(text)
        candidate = base
        counter = 0
        while candidate in self._used:
            counter += 1
            candidate = f"{base}-{counter}"
        self._used.add(candidate)
        return candidate

    def reset(self) -> None:
        self._used.clear()

    def copy(self) -> "IdGenerator":
        return IdGenerator(self._used)
