"""Tests for the block tree."""

import pytest

from wikiblocks.core.errors import TreeStructureError
from wikiblocks.core.model import (
    BOLD,
    Block,
    BlockKind,
    Document,
    paragraph,
    plain_text,
    space,
    text_blocks,
    word,
)


def test_add_child_sets_parent():
    """Children always point back at their container."""
    p = paragraph()
    w = word("hello")
    p.add_child(w)

    assert w.parent is p
    assert p.children == [w]
    assert w.index_in_parent == 0


def test_add_child_moves_block():
    """Adding a block that has a parent moves it."""
    first = paragraph([word("a")])
    second = paragraph()
    w = first.children[0]

    second.add_child(w)

    assert first.children == []
    assert second.children[0] is w
    assert w.parent is second


def test_children_is_a_copy():
    """Mutating the returned list doesn't touch the tree."""
    p = paragraph([word("a")])
    p.children.append(word("b"))
    assert len(p.children) == 1


def test_insert_before_and_after():
    """Insertion keeps sibling order."""
    a, b, c = word("a"), word("b"), word("c")
    p = paragraph([b])

    p.insert_before(a, b)
    p.insert_after(c, b)

    assert [w.text for w in p.children] == ["a", "b", "c"]


def test_insert_next_to_non_child_fails():
    """The sibling must be a direct child."""
    p = paragraph([word("a")])
    with pytest.raises(TreeStructureError):
        p.insert_after(word("b"), word("a"))


def test_replace_child_with_nothing():
    """Replacing X by nothing in [A, X, B] gives [A, B] and detaches X."""
    a, x, b = word("a"), word("x"), word("b")
    p = paragraph([a, x, b])

    p.replace_child([], x)

    assert p.children == [a, b]
    assert p.children[0] is a and p.children[1] is b
    assert x.parent is None


def test_replace_child_with_several():
    """New blocks take the old block's position, in order."""
    a, x, b = word("a"), word("x"), word("b")
    p = paragraph([a, x, b])
    new = [word("1"), space(), word("2")]

    p.replace_child(new, x)

    assert [c.kind for c in p.children] == [
        BlockKind.WORD, BlockKind.WORD, BlockKind.SPACE, BlockKind.WORD, BlockKind.WORD,
    ]
    assert all(c.parent is p for c in p.children)


def test_replace_child_with_own_children():
    """A container can be replaced by its own children (unwrap)."""
    inner = Block(BlockKind.FORMAT, [word("a"), word("b")], style=BOLD)
    p = paragraph([word("x"), inner])

    p.replace_child(inner.children, inner)

    assert [w.text for w in p.children] == ["x", "a", "b"]
    assert inner.children == []
    assert inner.parent is None


def test_replace_non_child_fails():
    p = paragraph([word("a")])
    with pytest.raises(TreeStructureError):
        p.replace_child([word("b")], word("a"))


def test_cycle_is_refused():
    """A block can't be inserted below itself."""
    outer = paragraph()
    inner = Block(BlockKind.FORMAT, style=BOLD)
    outer.add_child(inner)

    with pytest.raises(TreeStructureError):
        inner.add_child(outer)
    with pytest.raises(TreeStructureError):
        outer.add_child(outer)
    assert outer.parent is None


def test_path_and_root():
    w = word("deep")
    document = Document([paragraph([word("a"), Block(BlockKind.FORMAT, [w], style=BOLD)])])

    assert w.path == (0, 1, 0)
    assert w.root is document


def test_find_by_type():
    """Descendants are found in document order."""
    document = Document([
        paragraph([word("a"), space(), Block(BlockKind.FORMAT, [word("b")], style=BOLD)]),
        paragraph([word("c")]),
    ])

    words = document.find_by_type(BlockKind.WORD)
    direct = document.find_by_type(BlockKind.PARAGRAPH, recursive=False)
    custom = document.find_by_type(lambda b: b.text == "c")

    assert [w.text for w in words] == ["a", "b", "c"]
    assert len(direct) == 2
    assert custom[0].text == "c"


def test_find_previous_by_type():
    """Previous siblings first, then the parent, then upward."""
    heading = Block(BlockKind.HEADING, [word("Title")], level=1)
    target = word("x")
    document = Document([heading, paragraph([word("a"), space(), target])])

    assert target.find_previous_by_type(BlockKind.WORD).text == "a"
    assert target.find_previous_by_type(BlockKind.PARAGRAPH) is target.parent
    assert target.find_previous_by_type(BlockKind.HEADING) is heading
    assert target.find_previous_by_type(BlockKind.HEADING, recursive=False) is None
    assert document.find_previous_by_type(BlockKind.HEADING) is None


def test_find_next_by_type():
    first = word("a")
    document = Document([paragraph([first]), paragraph([word("b")])])

    found = first.find_next_by_type(BlockKind.PARAGRAPH)

    assert found is document.children[1]


def test_clone_is_equal_and_isolated():
    """A clone compares equal but shares no node with the original."""
    document = Document([paragraph([word("a"), space(), word("b")], id="p1")])

    copy = document.clone()

    assert copy == document
    assert copy is not document
    assert copy.children[0] is not document.children[0]

    copy.children[0].add_child(word("c"))
    copy.children[0].set_parameter("id", "p2")
    assert plain_text(document) == "a b"
    assert document.children[0].get_parameter("id") == "p1"


def test_clone_of_clone():
    p = paragraph([word("a")])
    assert p.clone().clone() == p


def test_clone_with_filter_unwraps_empty_results():
    """An empty filter result replaces the node by its cloned children."""
    p = paragraph([
        word("a"),
        Block(BlockKind.FORMAT, [word("b"), word("c")], style=BOLD),
    ])

    def drop_format(block):
        return [] if block.kind is BlockKind.FORMAT else [block]

    copy = p.clone(drop_format)

    assert [c.text for c in copy.children] == ["a", "b", "c"]
    assert all(c.parent is copy for c in copy.children)
    # the original is untouched
    assert p.children[1].kind is BlockKind.FORMAT


def test_clone_copies_id_generator():
    document = Document()
    document.id_generator.generate_unique_id("H", "Title")

    copy = document.clone()

    assert copy.id_generator.generate_unique_id("H", "Title") == "Htitle-1"
    assert document.id_generator.generate_unique_id("H", "Other") == "Hother"


def test_equality_is_structural():
    assert paragraph([word("a")]) == paragraph([word("a")])
    assert paragraph([word("a")]) != paragraph([word("b")])
    assert Document() != paragraph()
    assert hash(paragraph([word("a")])) == hash(paragraph([word("a")]))


def test_text_blocks():
    """Plain text is split into words, spaces, symbols and newlines."""
    blocks = text_blocks("Hello, world\nok")

    assert [b.kind for b in blocks] == [
        BlockKind.WORD,
        BlockKind.SPECIAL_SYMBOL,
        BlockKind.SPACE,
        BlockKind.WORD,
        BlockKind.NEWLINE,
        BlockKind.WORD,
    ]
    assert blocks[1].text == ","


def test_descendants_handle_deep_trees():
    """Traversal doesn't recurse, so very deep trees are fine."""
    root = paragraph()
    current = root
    for _ in range(2000):
        child = Block(BlockKind.FORMAT, style=BOLD)
        current.add_child(child)
        current = child
    current.add_child(word("bottom"))

    assert root.find_by_type(BlockKind.WORD)[0].text == "bottom"


def test_replace_child_refuses_duplicates():
    """A block can only take one position."""
    a, x = word("a"), word("x")
    p = paragraph([x])

    with pytest.raises(TreeStructureError):
        p.replace_child([a, a], x)
    assert p.children == [x]
    assert x.parent is p and a.parent is None
