"""Operator codes, syntax tree nodes, constant folding and SPARC code generation for a teaching subset of Oberon."""

__version__ = "0.1.0"

__all__ = [
    "ast",
    "codegen",
    "evaluate",
    "machine",
    "ops",
]