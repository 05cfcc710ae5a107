import pytest

from oberonc.ast import ASTNode
from oberonc.ops import Op


def test_children_fill_slots_in_order():
    parent = ASTNode("parent", 1, 3)
    a = ASTNode("a", 2)
    b = ASTNode("b", 2)
    parent.add_child(a)
    parent.add_child(b)
    assert parent[0] is a
    assert parent[1] is b
    assert parent[2] is None
    assert len(parent) == 3


def test_out_of_range_index_gives_none():
    parent = ASTNode("parent", 1, 1)
    parent.add_child(ASTNode("a", 2))
    assert parent[1] is None
    assert parent[-1] is None


def test_non_integer_index_rejected():
    with pytest.raises(TypeError):
        ASTNode("parent", 1, 1)["x"]


def test_overfilling_raises():
    parent = ASTNode("parent", 1, 1)
    parent.add_child(ASTNode("a", 2))
    with pytest.raises(IndexError):
        parent.add_child(ASTNode("b", 2))


def test_leaf_node_has_no_slots():
    leaf = ASTNode("x", 4)
    assert len(leaf) == 0
    assert list(leaf) == []
    with pytest.raises(IndexError):
        leaf.add_child(ASTNode("y", 4))


def test_add_leaf_inherits_fileinfo():
    info = ("prog.mod", 7)
    parent = ASTNode("parent", 1, 1, fileinfo=info)
    leaf = parent.add_leaf("x", 9)
    assert parent[0] is leaf
    assert leaf.name == "x"
    assert leaf.nodetype == 9
    assert leaf.fileinfo == info
    assert len(leaf) == 0


def test_add_children_of_appends_after_filled_slots():
    parent = ASTNode("parent", 1, 2)
    first = parent.add_child(ASTNode("first", 2))
    other = ASTNode("other", 3, 2)
    c1 = other.add_child(ASTNode("c1", 2))
    c2 = other.add_child(ASTNode("c2", 2))
    parent.add_children_of(other)
    assert len(parent) == 4
    assert list(parent) == [first, c1, c2, None]


def test_add_children_of_copies_empty_slots():
    parent = ASTNode("parent", 1, 0)
    other = ASTNode("other", 3, 2)
    child = other.add_child(ASTNode("c", 2))
    parent.add_children_of(other)
    assert list(parent) == [child, None]
    with pytest.raises(IndexError):
        parent.add_child(ASTNode("d", 2))


def test_iteration_matches_indexing():
    parent = ASTNode("parent", 1, 3)
    for name in "abc":
        parent.add_leaf(name, 2)
    assert [child.name for child in parent] == [parent[i].name for i in range(3)]


def test_op_and_kind_properties():
    node = ASTNode("sum", Op.PLUS | 12)
    assert node.op == Op.PLUS
    assert node.kind == 12