"""Integer fixed point helpers."""

from __future__ import annotations

from enum import Enum

__all__ = ["Rounding", "mul_div", "ceil_div"]


class Rounding(str, Enum):
    FLOOR = "floor"
    CEIL = "ceil"


def ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def mul_div(x: int, y: int, denominator: int, rounding: Rounding = Rounding.FLOOR) -> int:
    """Compute ``x * y / denominator`` on integers with explicit rounding."""

    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    product = x * y
    if rounding is Rounding.CEIL:
        return ceil_div(product, denominator)
    return product // denominator
