# src/seqclass/expreval.py
"""
Parsing of user-typed positions and counts.

Accepts plain literals (42, 1_000_000, 1 000 000, 0xFF) and a safe subset of
integer expressions (10**9, 2**64-1, 3*10**6, 1e9). Anything else is rejected
without evaluating names, calls or attributes.
"""
from __future__ import annotations

import ast
import operator as op
import re

from seqclass.runtime import CFG
from seqclass.utility import UserInputError, dec_digits

_THIN_SPACES = ("\u2009", "\u202F", "\u00A0")  # thin, narrow no-break, no-break
_SEP_CLASS = r"[ ,._\u00A0\u2009\u202F]"      # spaces/commas/dots/underscores & NBSP variants
_GROUPED_RE = re.compile(rf"^[+-]?\d{{1,3}}(?:{_SEP_CLASS}\d{{3}})+$")

# ---- allowed operators (safe subset) ----
_ALLOWED_BINOPS = {
    ast.Add:      op.add,
    ast.Sub:      op.sub,
    ast.Mult:     op.mul,
    ast.FloorDiv: op.floordiv,
    ast.Mod:      op.mod,
    ast.LShift:   op.lshift,
    ast.RShift:   op.rshift,
    ast.BitAnd:   op.and_,
    ast.BitXor:   op.xor,
    ast.BitOr:    op.or_,
}
_ALLOWED_UNARYOPS = {
    ast.UAdd: op.pos,
    ast.USub: op.neg,
}

_MAX_NODES = 256  # sanity guard

_SCI_NOTATION_TOKEN = re.compile(
    r"""
    (?<![\w.])          # not immediately after a word char or dot
    (\d+)               # mantissa (digits)
    [eE]
    (\+?\d+)            # non-negative exponent
    (?![\w.])           # not immediately before a word char or dot
    """,
    re.VERBOSE,
)


class _IntExprError(Exception):
    pass


def _max_digits() -> int:
    return int(CFG("BEHAVIOUR.MAX_DIGITS", 100_000))


def _too_many_digits(limit: int) -> UserInputError:
    return UserInputError(
        f"number has more than {limit} decimal digits. "
        "Increase BEHAVIOUR.MAX_DIGITS in the profile or pass a smaller value."
    )


def _would_exceed_digit_limit_for_pow(base: int, exp: int, limit: int) -> bool:
    """
    Cheap lower bound on the decimal digits of base**exp:
    digits(base**exp) >= digits(2**exp) ~= exp * log10(2) + 1 for |base| >= 2.
    """
    if exp <= 0 or abs(base) <= 1:
        return False
    return 1 + (exp * 30103) // 100000 > limit


def _would_exceed_digit_limit_for_shift(value: int, shift: int, limit: int) -> bool:
    """digits(value << shift) >= (bit_length + shift - 1) * log10(2) + 1 for value != 0."""
    if value == 0:
        return False
    return 1 + ((abs(value).bit_length() + shift - 1) * 30103) // 100000 > limit


def _rewrite_scientific_notation(expr: str) -> str:
    """1e9 → (1)*10**(9); negative exponents are left alone and fail later."""
    return _SCI_NOTATION_TOKEN.sub(lambda m: f"({m.group(1)})*10**({int(m.group(2))})", expr)


def _eval_int_expr(expr: str) -> int:
    """
    Evaluate a *safe* integer expression.

    Allowed: integers (incl. underscores), parentheses,
             + - * // % **, << >>, & ^ |, unary +/-.
    Disallowed: names, calls, attributes, subscripts, floats.
    """
    expr = _rewrite_scientific_notation(expr)
    limit = _max_digits()

    try:
        tree = ast.parse(expr, mode="eval")
    except SyntaxError as e:
        raise _IntExprError("invalid integer expression") from e

    if sum(1 for _ in ast.walk(tree)) > _MAX_NODES:
        raise _IntExprError("expression too large")

    def _eval(node) -> int:
        if isinstance(node, ast.Constant):
            val = node.value
            if isinstance(val, bool) or not isinstance(val, int):
                raise _IntExprError("only integer literals are allowed")
            return val

        if isinstance(node, ast.UnaryOp) and type(node.op) in _ALLOWED_UNARYOPS:
            return _ALLOWED_UNARYOPS[type(node.op)](_eval(node.operand))

        if isinstance(node, ast.BinOp):
            op_type = type(node.op)
            left = _eval(node.left)
            right = _eval(node.right)

            if op_type is ast.Pow:
                if right < 0:
                    raise UserInputError("negative exponents are not allowed in integer expressions")
                if _would_exceed_digit_limit_for_pow(left, right, limit):
                    raise _too_many_digits(limit)
                return pow(left, right)

            if op_type in (ast.LShift, ast.RShift) and right < 0:
                raise _IntExprError("negative shift count")
            if op_type is ast.LShift and _would_exceed_digit_limit_for_shift(left, right, limit):
                raise _too_many_digits(limit)

            if op_type in (ast.FloorDiv, ast.Mod) and right == 0:
                raise _IntExprError("division by zero")

            if op_type in _ALLOWED_BINOPS:
                return _ALLOWED_BINOPS[op_type](left, right)

        raise _IntExprError(f"unsupported syntax: {type(node).__name__}")

    value = _eval(tree.body)

    if dec_digits(value) > limit:
        raise _too_many_digits(limit)
    return value


def _parse_int_literal(text: str) -> int | None:
    """Accepts: 42  -7  1_000_000  0xFF  0b1010  123.456.789  123 456 789
       Rejects: 3.14  1,23  12.34.56  0xG1"""
    if text is None:
        return None

    s = text.strip()
    if not s:
        return None

    for ch in _THIN_SPACES:
        s = s.replace(ch, " ")

    if s.lower().startswith(("0x", "0b", "0o")):
        try:
            return int(s.replace("_", ""), 0)
        except ValueError:
            return None

    if re.fullmatch(r"[+-]?\d[\d_]*", s):
        try:
            return int(s.replace("_", ""))
        except ValueError:
            return None

    if _GROUPED_RE.match(s):
        return int(re.sub(_SEP_CLASS, "", s))

    return None


# ---- public entry point ----
def parse_int_or_expr(s: str) -> int | None:
    """Literal first, then the safe expression evaluator; None if neither applies."""
    n = _parse_int_literal(s)
    if n is not None:
        return n
    try:
        return _eval_int_expr(s)
    except _IntExprError:
        return None
