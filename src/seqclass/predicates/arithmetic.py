# -----------------------------------------------------------------------------
#  arithmetic.py
#  Arithmetic predicate factories
# -----------------------------------------------------------------------------

from __future__ import annotations

import gmpy2
from sympy import isprime

from seqclass.registry import predicate
from seqclass.utility import InvalidRuleError, is_int

CATEGORY = "Arithmetic"


@predicate(
    name="divisible",
    category=CATEGORY,
    description="Position is a multiple of `divisor` (0 is a multiple of every divisor).",
)
def divisible(n: int, divisor: int) -> bool:
    if not is_int(divisor) or divisor <= 0:
        raise InvalidRuleError(f"divisor must be a positive integer, got {divisor!r}")
    return n % divisor == 0


@predicate(
    name="prime",
    category=CATEGORY,
    description="Position is a prime number.",
)
def prime(n: int) -> bool:
    return bool(isprime(n))


@predicate(
    name="square",
    category=CATEGORY,
    description="Position is a perfect square (0 and 1 included).",
)
def square(n: int) -> bool:
    return bool(gmpy2.is_square(n))


@predicate(
    name="fibonacci",
    category=CATEGORY,
    description="Position is a Fibonacci number (5n²±4 is a perfect square).",
)
def fibonacci(n: int) -> bool:
    # closed-form test, no iteration over smaller terms
    m = 5 * gmpy2.mpz(n) * n
    return bool(gmpy2.is_square(m + 4) or gmpy2.is_square(m - 4))


@predicate(
    name="power_of",
    category=CATEGORY,
    description="Position is an exact power base**k with k ≥ 0 (base ≥ 2).",
)
def power_of(n: int, base: int) -> bool:
    if not is_int(base) or base < 2:
        raise InvalidRuleError(f"base must be an integer ≥ 2, got {base!r}")
    if n < 1:
        return False
    while n % base == 0:
        n //= base
    return n == 1
