"""Tests for slugify and the id generator."""

import pytest

from wikiblocks.core.utils import IdGenerator, slugify


def test_slugify_basic():
    """Test basic slugification."""
    assert slugify("Parallel transport") == "parallel-transport"
    assert slugify("Hello, World!") == "hello-world"


def test_slugify_unicode():
    """Accents are folded and dashes normalized."""
    assert slugify("Riemann–Christoffel symbols") == "riemann-christoffel-symbols"
    assert slugify("Café crème") == "cafe-creme"


def test_slugify_empty():
    assert slugify("") == ""
    assert slugify("   ") == ""


def test_generate_unique_id():
    """Repeated texts get a numeric suffix."""
    ids = IdGenerator()

    assert ids.generate_unique_id("H", "My heading") == "Hmy-heading"
    assert ids.generate_unique_id("H", "My heading") == "Hmy-heading-1"
    assert ids.generate_unique_id("H", "My heading") == "Hmy-heading-2"
    assert ids.generate_unique_id("I", "My heading") == "Imy-heading"


def test_generate_unique_id_invalid_prefix():
    """Ids must start with a letter."""
    with pytest.raises(ValueError):
        IdGenerator().generate_unique_id("1", "text")
    with pytest.raises(ValueError):
        IdGenerator().generate_unique_id("", "text")


def test_reset_and_copy():
    ids = IdGenerator()
    ids.generate_unique_id("H", "a")

    copy = ids.copy()
    ids.reset()

    assert ids.generate_unique_id("H", "a") == "Ha"
    assert copy.generate_unique_id("H", "a") == "Ha-1"
