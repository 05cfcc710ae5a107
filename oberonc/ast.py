"""Syntax tree nodes with a fixed number of child slots."""

from .ops import get_op, get_type


class ASTNode:
    """A named tree node whose children fill a fixed-size list of slots."""

    def __init__(self, name, nodetype, size=0, fileinfo=None, type=None):
        self.name = name
        self.nodetype = nodetype
        self.fileinfo = fileinfo
        self.type = type
        self._slots = [None] * size
        self._next = 0

    @property
    def size(self):
        """Number of child slots."""
        return len(self._slots)

    @property
    def op(self):
        """Operator field of the node type."""
        return get_op(self.nodetype)

    @property
    def kind(self):
        """Node-kind field of the node type."""
        return get_type(self.nodetype)

    def add_child(self, child):
        """Place ``child`` in the next free slot."""
        if self._next >= len(self._slots):
            raise IndexError(f"node {self.name!r} has no free child slot")
        self._slots[self._next] = child
        self._next += 1
        return child

    def add_leaf(self, name, nodetype):
        """Create a childless node and add it as the next child."""
        return self.add_child(ASTNode(name, nodetype, 0, self.fileinfo))

    def add_children_of(self, node):
        """Grow by ``node``'s size and append each of its slots in order."""
        self._slots.extend([None] * node.size)
        for child in node:
            self.add_child(child)

    def __getitem__(self, index):
        if not isinstance(index, int):
            raise TypeError("child index must be an integer")
        if 0 <= index < len(self._slots):
            return self._slots[index]
        return None

    def __len__(self):
        return len(self._slots)

    def __iter__(self):
        return iter(self._slots)

    def __repr__(self):
        return f"ASTNode({self.name!r}, {self.nodetype:#x}, size={self.size})"