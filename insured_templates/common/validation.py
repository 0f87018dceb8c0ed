# insured_templates/common/validation.py
"""
Shared bounds checks and checked integer arithmetic.

Python integers never overflow, so every amount is held to the signed
128-bit range explicitly: a result outside it is an Overflow (above) or
Underflow (below), never a silently larger number. Every check raises a
typed TemplateError and returns the validated value so calls can be chained.
"""
from __future__ import annotations

from typing import Any, Sized, Type

from insured_templates.errors import (
    DivisionByZero,
    InvalidInput,
    InvalidPaginationParams,
    Overflow,
    TemplateError,
    ThresholdTooLow,
    Underflow,
)

I128_MIN = -(2 ** 127)
I128_MAX = 2 ** 127 - 1
U32_MAX = 2 ** 32 - 1

BPS_DENOMINATOR = 10_000
MAX_BPS = 10_000
DAYS_PER_YEAR = 365
SECONDS_PER_DAY = 86_400

MAX_PAGE_SIZE = 1_000

# Simple majority is not enough for template approval.
MIN_VOTING_THRESHOLD_PCT = 50


def require_int(value: Any, what: str, error: Type[TemplateError] = InvalidInput) -> int:
    # bool is an int subclass; a flag is never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise error(f"{what} must be an integer, got {type(value).__name__}")
    return value


def validate_in_bounds(
    value: Any,
    lo: int,
    hi: int,
    what: str,
    error: Type[TemplateError] = InvalidInput,
) -> int:
    v = require_int(value, what, error)
    if v < lo or v > hi:
        raise error(f"{what}={v} outside [{lo}, {hi}]")
    return v


def validate_min_max(lo: int, hi: int, what: str, error: Type[TemplateError] = InvalidInput) -> None:
    if lo > hi:
        raise error(f"{what}: min {lo} greater than max {hi}")


def validate_positive_amount(value: Any, what: str) -> int:
    return validate_in_bounds(value, 1, I128_MAX, what)


def validate_non_negative_amount(value: Any, what: str) -> int:
    return validate_in_bounds(value, 0, I128_MAX, what)


def validate_u32(value: Any, what: str) -> int:
    return validate_in_bounds(value, 0, U32_MAX, what)


def validate_basis_points(value: Any, what: str) -> int:
    return validate_in_bounds(value, 0, MAX_BPS, what)


def validate_voting_threshold(threshold_pct: Any, min_threshold_bps: int) -> int:
    """
    Threshold for a governance proposal, in whole percent.

    Must be 1..100 (InvalidInput), strictly above a simple majority and at
    least the configured minimum (ThresholdTooLow).
    """
    pct = validate_in_bounds(threshold_pct, 1, 100, "threshold_pct")
    if pct <= MIN_VOTING_THRESHOLD_PCT:
        raise ThresholdTooLow(f"threshold {pct}% must exceed {MIN_VOTING_THRESHOLD_PCT}%")
    if pct * 100 < min_threshold_bps:
        raise ThresholdTooLow(f"threshold {pct}% below configured minimum {min_threshold_bps} bps")
    return pct


def validate_string_length(
    value: Any,
    min_len: int,
    max_len: int,
    what: str,
    error: Type[TemplateError] = InvalidInput,
) -> str:
    if not isinstance(value, str):
        raise error(f"{what} must be a string")
    n = len(value)
    if n < min_len:
        raise error(f"{what} shorter than {min_len} characters")
    if n > max_len:
        raise error(f"{what} longer than {max_len} characters")
    return value


def validate_collection_length(
    items: Sized,
    min_len: int,
    max_len: int,
    what: str,
    error: Type[TemplateError] = InvalidInput,
) -> None:
    n = len(items)
    if n < min_len or n > max_len:
        raise error(f"{what} must hold {min_len}..{max_len} entries, got {n}")


def validate_pagination(start: Any, limit: Any) -> None:
    if isinstance(start, bool) or not isinstance(start, int) or start < 0:
        raise InvalidPaginationParams(f"start must be a non-negative integer, got {start!r}")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0 or limit > MAX_PAGE_SIZE:
        raise InvalidPaginationParams(f"limit must be 1..{MAX_PAGE_SIZE}, got {limit!r}")


# ---------------------------------------------------------------------------
# Checked arithmetic
# ---------------------------------------------------------------------------

def _checked(result: int) -> int:
    if result > I128_MAX:
        raise Overflow(f"result exceeds {I128_MAX}")
    if result < I128_MIN:
        raise Underflow(f"result below {I128_MIN}")
    return result


def safe_add(a: int, b: int) -> int:
    return _checked(a + b)


def safe_sub(a: int, b: int) -> int:
    return _checked(a - b)


def safe_mul(a: int, b: int) -> int:
    return _checked(a * b)


def safe_div(a: int, b: int) -> int:
    """Floor division; the only overflowing case is I128_MIN // -1."""
    if b == 0:
        raise DivisionByZero(f"{a} / 0")
    return _checked(a // b)


def calculate_basis_points(amount: int, bps: int) -> int:
    """`bps` basis points of `amount`, multiplying before dividing."""
    validate_basis_points(bps, "bps")
    if bps == 0:
        return 0
    return safe_div(safe_mul(amount, bps), BPS_DENOMINATOR)
