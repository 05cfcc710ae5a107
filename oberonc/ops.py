"""Operator codes and node-type bit fields used throughout the compiler."""

from enum import IntEnum

READONLY = 0x80000000
EXPORTABLE = 0x40000000

VARTYPE = 1
CONSTTYPE = 2
TYPETYPE = 3
PROCTYPE = 4
MODULETYPE = 5

TYPE_ERROR = 0x00000005

OP_MASK = 0x00000F80
KIND_MASK = 0x0000007F


class Op(IntEnum):
    """Operator and basic-type codes, stored in bits 7..11 of a node type."""

    MULTIPLY = 0x01 << 7
    SLASH = 0x02 << 7
    DIVIDE = 0x03 << 7
    MOD = 0x04 << 7
    AND = 0x05 << 7

    PLUS = 0x06 << 7
    MINUS = 0x07 << 7
    OR = 0x08 << 7

    EQU = 0x09 << 7
    NEQ = 0x0A << 7
    LT = 0x0B << 7
    GT = 0x0C << 7
    LTE = 0x0D << 7
    GTE = 0x0E << 7
    IN = 0x0F << 7
    IS = 0x10 << 7

    INTEGER = 0x11 << 7
    REAL = 0x12 << 7
    BOOLEAN = 0x13 << 7
    CHAR = 0x14 << 7

    TILDE = 0x15 << 7


_SYMBOLS = {
    Op.EQU: "=",
    Op.PLUS: "+",
    Op.MINUS: "-",
    Op.MULTIPLY: "*",
    Op.SLASH: "/",
    Op.NEQ: "#",
    Op.DIVIDE: "DIV",
    Op.MOD: "MOD",
    Op.LT: "<",
    Op.GT: ">",
    Op.LTE: "<=",
    Op.GTE: ">=",
    Op.IN: "IN",
    Op.IS: "IS",
    Op.TILDE: "~",
    Op.AND: "&",
    Op.OR: "OR",
}

_RELATIONS = frozenset({Op.EQU, Op.NEQ, Op.LT, Op.GT, Op.LTE, Op.GTE})
_ADD_OPS = frozenset({Op.PLUS, Op.MINUS, Op.OR})
_MUL_OPS = frozenset({Op.MULTIPLY, Op.SLASH, Op.DIVIDE, Op.MOD, Op.AND})


def get_op(nodetype):
    """Return the operator field of a node type (an ``Op`` where it names one)."""
    value = nodetype & OP_MASK
    try:
        return Op(value)
    except ValueError:
        return value


def get_type(nodetype):
    """Return the node-kind field (the low seven bits) of a node type."""
    return nodetype & KIND_MASK


def op_symbol(op):
    """Return the source spelling of an operator, as shown in diagnostics."""
    operator = Op(get_op(op))
    try:
        return _SYMBOLS[operator]
    except KeyError:
        raise ValueError(f"{operator.name} is not an operator with a spelling") from None


def is_relation(op):
    """True for the comparison operators = # < > <= >=."""
    return get_op(op) in _RELATIONS


def is_add_op(op):
    """True for the additive operators + - OR."""
    return get_op(op) in _ADD_OPS


def is_mul_op(op):
    """True for the multiplicative operators * / DIV MOD &."""
    return get_op(op) in _MUL_OPS


def is_readonly(flags):
    """True if the read-only bit is set."""
    return bool(flags & READONLY)


def is_exportable(flags):
    """True if the exportable bit is set."""
    return bool(flags & EXPORTABLE)