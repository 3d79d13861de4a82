# src/seqclass/fmt.py
from __future__ import annotations

import re

from colorama import Fore, Style

from seqclass.registry import Rule
from seqclass.utility import dec_digits

# Single source of truth for ANSI stripping
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def abbr_int_fast(n: int, head: int = 10, tail: int = 10, threshold: int = 35, ellipsis: str = "…") -> str:
    """Abbreviate very large ints as first<head>…last<tail> without str(n)."""
    if not isinstance(n, int):
        return str(n)
    if n == 0:
        return "0"

    sign = "-" if n < 0 else ""
    a = -n if n < 0 else n

    d = dec_digits(a)
    if d <= threshold or head + tail >= d:
        return sign + str(a)

    first = a // 10 ** (d - head)
    last = a % 10 ** tail
    return f"{sign}{first}{ellipsis}{last:0{tail}d}"


def strip_ansi(s: str | None) -> str:
    """Return s with ANSI escape sequences removed."""
    return "" if s is None else ANSI_RE.sub("", s)


def visible_len(s: str | None) -> int:
    """Printable length (without ANSI)."""
    return len(strip_ansi(s))


def colorize_value(text: str, matched: bool) -> str:
    """Labels bright green, fallback decimals dim."""
    if matched:
        return f"{Fore.GREEN}{Style.BRIGHT}{text}{Style.RESET_ALL}"
    return f"{Style.DIM}{text}{Style.RESET_ALL}"


def format_rule(rule: Rule, width: int = 12) -> str:
    return f"{Fore.GREEN}{rule.label:<{width}}{Style.RESET_ALL} ← {rule.describe()}"


def format_position(n: int) -> str:
    return abbr_int_fast(n, 12, 12, 40)
