# -----------------------------------------------------------------------------
#  digit_based.py
#  Decimal-digit predicate factories
# -----------------------------------------------------------------------------

from __future__ import annotations

from seqclass.registry import predicate
from seqclass.utility import InvalidRuleError, is_int

CATEGORY = "Digit-based"


def _check_digit(digit) -> None:
    if not is_int(digit) or not 0 <= digit <= 9:
        raise InvalidRuleError(f"digit must be an integer 0-9, got {digit!r}")


@predicate(
    name="contains_digit",
    category=CATEGORY,
    description="Decimal representation contains `digit` (e.g. 13 contains 3).",
)
def contains_digit(n: int, digit: int) -> bool:
    _check_digit(digit)
    return str(digit) in str(n)


@predicate(
    name="ends_with",
    category=CATEGORY,
    description="Last decimal digit equals `digit`.",
)
def ends_with(n: int, digit: int) -> bool:
    _check_digit(digit)
    return n % 10 == digit


@predicate(
    name="digit_sum_divisible",
    category=CATEGORY,
    description="Sum of decimal digits is a multiple of `divisor`.",
)
def digit_sum_divisible(n: int, divisor: int) -> bool:
    if not is_int(divisor) or divisor <= 0:
        raise InvalidRuleError(f"divisor must be a positive integer, got {divisor!r}")
    return sum(map(int, str(n))) % divisor == 0


@predicate(
    name="palindrome",
    category=CATEGORY,
    description="Decimal representation reads the same in both directions.",
)
def palindrome(n: int) -> bool:
    s = str(n)
    return s == s[::-1]
