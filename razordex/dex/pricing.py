"""
Razor DEX Pricing Engine

Pure, integer-only functions shared by the swap engine and the router:
  - Proportional quoting for liquidity deposits
  - Geometric-mean liquidity (integer square root)
  - Exact-in / exact-out amount formulas net of the swap fee
  - Canonical ordering of asset types
  - Overflow-aware u128 multiply / add with u256 widening
  - UQ64.64 fixed point for the price accumulators

Nothing here touches pool state; every function is deterministic.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from ..constants import BPS_DENOMINATOR, PRICE_RESOLUTION, U64_MAX, U128_MAX, U256_MAX
from ..exceptions import (
    ArithmeticOverflow,
    InsufficientAmount,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientOutputAmount,
    InvalidFee,
    PairOrderError,
)

if TYPE_CHECKING:
    from .assets import AssetType

EQUAL = 0
SMALLER = 1
GREATER = 2


# ---------------------------------------------------------------------------
# Width checks
# ---------------------------------------------------------------------------

def _check_width(value: int, limit: int) -> int:
    if value < 0 or value > limit:
        raise ArithmeticOverflow(f"value {value} out of range (max {limit})")
    return value


def check_u64(value: int) -> int:
    return _check_width(value, U64_MAX)


def check_u128(value: int) -> int:
    return _check_width(value, U128_MAX)


def _check_fee(fee_bps: int) -> None:
    if fee_bps < 0 or fee_bps >= BPS_DENOMINATOR:
        raise InvalidFee(f"fee {fee_bps} bps outside [0, {BPS_DENOMINATOR})")


# ---------------------------------------------------------------------------
# Overflow-aware arithmetic
# ---------------------------------------------------------------------------

def is_overflow_mul(a: int, b: int) -> bool:
    """True when a * b does not fit in u128."""
    return a != 0 and b > U128_MAX // a


def is_overflow_add(a: int, b: int) -> bool:
    return b > U128_MAX - a


def safe_mul(a: int, b: int) -> int:
    """
    Multiply two u128 values.

    The common path stays within u128; only when that overflows is the product
    recomputed at u256 width. A product beyond u256 is an error.
    """
    check_u128(a)
    check_u128(b)
    if not is_overflow_mul(a, b):
        return a * b
    return _check_width(a * b, U256_MAX)


def safe_add(a: int, b: int) -> int:
    """Add two values, widening from u128 to u256 on overflow."""
    _check_width(a, U256_MAX)
    _check_width(b, U256_MAX)
    if a <= U128_MAX and b <= U128_MAX and not is_overflow_add(a, b):
        return a + b
    return _check_width(a + b, U256_MAX)


def wrapping_add_u128(a: int, b: int) -> int:
    """u128 addition modulo 2**128 (accumulators only)."""
    return (a + b) & U128_MAX


# ---------------------------------------------------------------------------
# UQ64.64 fixed point
# ---------------------------------------------------------------------------

def encode_uq64(y: int) -> int:
    """Encode a u64 as a UQ64.64."""
    return check_u64(y) << PRICE_RESOLUTION


def uq_div(x: int, y: int) -> int:
    """Divide a UQ64.64 by a u64, returning a UQ64.64."""
    if y == 0:
        raise ArithmeticOverflow("division by zero")
    return x // y


# ---------------------------------------------------------------------------
# Square roots
# ---------------------------------------------------------------------------

def sqrt(x: int, y: int) -> int:
    """floor(sqrt(x * y)) for u64 inputs, exact over the full range."""
    return math.isqrt(check_u64(x) * check_u64(y))


def sqrt_single(y: int) -> int:
    """floor(sqrt(y)) for a u128 value such as a stored reserve product."""
    return math.isqrt(check_u128(y))


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

def quote(amount_x: int, reserve_x: int, reserve_y: int) -> int:
    """Scale `amount_x` by the current reserve ratio."""
    if amount_x <= 0:
        raise InsufficientAmount("quote amount must be positive")
    if reserve_x <= 0 or reserve_y <= 0:
        raise InsufficientLiquidity("quote on empty reserves")
    return amount_x * reserve_y // reserve_x


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int) -> int:
    """
    Output amount for an exact input, net of `fee_bps`.

        in_fee = amount_in * (10000 - fee)
        out    = in_fee * reserve_out / (reserve_in * 10000 + in_fee)
    """
    if amount_in <= 0:
        raise InsufficientInputAmount("input amount must be positive")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity("pool has no liquidity")
    _check_fee(fee_bps)

    amount_in_with_fee = amount_in * (BPS_DENOMINATOR - fee_bps)
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * BPS_DENOMINATOR + amount_in_with_fee
    return numerator // denominator


def get_amount_in(amount_out: int, reserve_in: int, reserve_out: int, fee_bps: int) -> int:
    """
    Input amount required for an exact output, rounded up so the trader never
    under-pays.
    """
    if amount_out <= 0:
        raise InsufficientOutputAmount("output amount must be positive")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity("pool has no liquidity")
    if amount_out >= reserve_out:
        raise InsufficientLiquidity(
            f"output {amount_out} not below reserve {reserve_out}"
        )
    _check_fee(fee_bps)

    numerator = reserve_in * amount_out * BPS_DENOMINATOR
    denominator = (reserve_out - amount_out) * (BPS_DENOMINATOR - fee_bps)
    return numerator // denominator + 1


# ---------------------------------------------------------------------------
# Canonical ordering
# ---------------------------------------------------------------------------

def compare_bytes(left: bytes, right: bytes) -> int:
    """Byte-wise comparison; a strict prefix sorts first."""
    for a, b in zip(left, right):
        if a < b:
            return SMALLER
        if a > b:
            return GREATER
    if len(left) < len(right):
        return SMALLER
    if len(left) > len(right):
        return GREATER
    return EQUAL


def compare_types(a: "AssetType", b: "AssetType") -> int:
    return compare_bytes(a.type_bytes, b.type_bytes)


def canonical_order(a: "AssetType", b: "AssetType") -> bool:
    """True when `a` sorts strictly before `b`."""
    return compare_types(a, b) == SMALLER


def assert_canonical(a: "AssetType", b: "AssetType") -> None:
    if not canonical_order(a, b):
        raise PairOrderError(f"{a} must sort before {b}")


def sort_types(a: "AssetType", b: "AssetType") -> tuple:
    """Return the pair in canonical order. Identical types are rejected."""
    order = compare_types(a, b)
    if order == EQUAL:
        raise PairOrderError(f"identical asset types {a}")
    return (a, b) if order == SMALLER else (b, a)
