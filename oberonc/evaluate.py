"""Constant folding of binary operators on integer, real and boolean values."""

import math

from .ops import Op


def _wrap32(value):
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def _trunc_div(a, b):
    if b == 0:
        raise ZeroDivisionError("integer division by zero")
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _trunc_mod(a, b):
    return a - b * _trunc_div(a, b)


def _real_div(a, b):
    if b != 0:
        return a / b
    if a == 0 or math.isnan(a):
        return math.nan
    return math.copysign(math.inf, a) * math.copysign(1.0, b)


_INT_OPS = {
    Op.MULTIPLY: lambda a, b: a * b,
    Op.PLUS: lambda a, b: a + b,
    Op.MINUS: lambda a, b: a - b,
    Op.SLASH: _trunc_div,
    Op.DIVIDE: _trunc_div,
    Op.MOD: _trunc_mod,
    Op.LT: lambda a, b: int(a < b),
    Op.GT: lambda a, b: int(a > b),
    Op.LTE: lambda a, b: int(a <= b),
    Op.GTE: lambda a, b: int(a >= b),
    Op.EQU: lambda a, b: int(a == b),
    Op.NEQ: lambda a, b: int(a != b),
}

_REAL_OPS = {
    Op.MULTIPLY: lambda a, b: a * b,
    Op.PLUS: lambda a, b: a + b,
    Op.MINUS: lambda a, b: a - b,
    Op.SLASH: _real_div,
    Op.LT: lambda a, b: float(a < b),
    Op.GT: lambda a, b: float(a > b),
    Op.LTE: lambda a, b: float(a <= b),
    Op.GTE: lambda a, b: float(a >= b),
    Op.EQU: lambda a, b: float(a == b),
    Op.NEQ: lambda a, b: float(a != b),
}

_BOOL_OPS = {
    Op.OR: lambda a, b: a or b,
    Op.AND: lambda a, b: a and b,
    Op.EQU: lambda a, b: a == b,
    Op.NEQ: lambda a, b: a != b,
}


def evaluate_int(a, op, b):
    """Fold two 32-bit integers; relations give 1 or 0, other operators -1."""
    fold = _INT_OPS.get(op)
    if fold is None:
        return -1
    return _wrap32(fold(_wrap32(a), _wrap32(b)))


def evaluate_real(a, op, b):
    """Fold two reals; relations give 1.0 or 0.0, other operators -1.0."""
    fold = _REAL_OPS.get(op)
    if fold is None:
        return -1.0
    return fold(float(a), float(b))


def evaluate_bool(a, op, b):
    """Fold two booleans; operators other than OR & = # give False."""
    fold = _BOOL_OPS.get(op)
    if fold is None:
        return False
    return bool(fold(bool(a), bool(b)))


def evaluate(a, op, b):
    """Fold two constant values by their types, or return None if they do not mix."""
    a_bool, b_bool = isinstance(a, bool), isinstance(b, bool)
    if a_bool or b_bool:
        return evaluate_bool(a, op, b) if a_bool and b_bool else None
    if not all(isinstance(x, (int, float)) for x in (a, b)):
        return None
    if isinstance(a, float) or isinstance(b, float):
        return evaluate_real(a, op, b)
    return evaluate_int(a, op, b)