"""Checked fixed-width integer helpers.

Python ints never wrap, so width limits are enforced explicitly: any value
leaving [0, U128_MAX] or [0, U256_MAX] raises ArithmeticOverflow instead of
being truncated.
"""

from ..errors import ArithmeticOverflow, InvalidAmount

U128_MAX = (1 << 128) - 1
U256_MAX = (1 << 256) - 1

BPS_DENOMINATOR = 10_000


def require_int(value, name: str = "amount") -> int:
    """Reject bools, floats and negatives; return the value as int."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidAmount(f"{name} must be non-negative, got {value}")
    return value


def check_u128(value: int, name: str = "value") -> int:
    if value < 0 or value > U128_MAX:
        raise ArithmeticOverflow(f"{name} out of u128 range: {value}")
    return value


def check_u256(value: int, name: str = "value") -> int:
    if value < 0 or value > U256_MAX:
        raise ArithmeticOverflow(f"{name} out of u256 range: {value}")
    return value


def add_u256(a: int, b: int) -> int:
    return check_u256(a + b, "sum")


def sub_u256(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflow(f"underflow: {a} - {b}")
    return a - b


def mul_u256(a: int, b: int) -> int:
    return check_u256(a * b, "product")


def ceil_div(n: int, d: int) -> int:
    """ceil(n / d) for non-negative n and positive d."""
    if d <= 0:
        raise ArithmeticOverflow(f"non-positive divisor: {d}")
    return -((-n) // d)


def mul_div_down(a: int, b: int, d: int) -> int:
    """floor(a * b / d), with the product checked against u256."""
    if d <= 0:
        raise ArithmeticOverflow(f"non-positive divisor: {d}")
    return mul_u256(a, b) // d


def mul_div_up(a: int, b: int, d: int) -> int:
    """ceil(a * b / d), with the product checked against u256."""
    return ceil_div(mul_u256(a, b), d)


def apply_bps(amount: int, bps: int) -> int:
    """floor(amount * bps / 10000)."""
    return mul_div_down(amount, bps, BPS_DENOMINATOR)
