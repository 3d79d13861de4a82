# src/seqclass/display.py
"""
Rendering of windows, traces and listings.

Nothing here writes to an ambient stream on its own: window output goes to
the sink passed in (an OutputManager or anything with write()), listings and
debug traces go to stdout/stderr from the CLI layer only.
"""
from __future__ import annotations

import sys
import time
from collections.abc import Iterable

from colorama import Fore, Style

from seqclass import __version__
from seqclass.classify import explain
from seqclass.config import list_profiles_with_descriptions, read_current_profile
from seqclass.fmt import colorize_value, format_position, format_rule, visible_len
from seqclass.progress import Progress
from seqclass.registry import PredicateIndex, RuleSet
from seqclass.runtime import CFG
from seqclass.runtime import current as _rt_current
from seqclass.utility import clear_screen, flatten_dotted, get_terminal_width


def _screen_header() -> str:
    return (f"{Fore.YELLOW}{Style.BRIGHT}"
            f"Sequence Classifier v{__version__} — label positions by composable rules"
            f"{Style.RESET_ALL}")


# ---------- windows -------------------------------------------------------------

def render_window(values: Iterable[str], sink, *, color: bool | None = None, progress: Progress | None = None) -> int:
    """
    Write each value of `values` on its own line into `sink`; return the count.

    Values are pulled one at a time, so unbounded streams render until the
    caller interrupts them.
    """
    if color is None:
        color = bool(CFG("DISPLAY.COLOR_LABELS", True))
    n = 0
    for value in values:
        if color:
            sink.write(colorize_value(value, not value.isdigit()))
        else:
            sink.write(value)
        n += 1
        if progress is not None:
            progress.update(n)
    if progress is not None:
        progress.done()
    return n


def print_trace(rule_set: RuleSet, start: int, count: int, *, file=None) -> None:
    """Per-position, per-rule evaluation trace with timings (debug mode, stderr)."""
    out = file or sys.stderr
    for pos in range(start, start + count):
        t0 = time.perf_counter()
        result = explain(rule_set, pos)
        dt = (time.perf_counter() - t0) * 1000.0
        hits = set(result.matched)
        marks = []
        for rule in rule_set:
            ok = rule.label in hits
            stat = f"{Fore.GREEN}{Style.BRIGHT}OK{Style.RESET_ALL}" if ok else f"{Style.DIM}NO{Style.RESET_ALL}"
            marks.append(f"{rule.label}:{stat}")
        tm = f"{Style.DIM}[{dt:6.3f} ms]{Style.RESET_ALL}"
        line = f"{tm} {format_position(pos):>12}  {'  '.join(marks)}  → {result.text}"
        if visible_len(line) > get_terminal_width():
            line = f"{tm} {format_position(pos)} → {result.text}"
        print(line, file=out)


# ---------- listings ------------------------------------------------------------

def show_rule_set(rule_set: RuleSet, *, title: str = "Active rules", file=None) -> None:
    out = file or sys.stdout
    print(f"{Fore.CYAN}{title} ({len(rule_set)}), concatenated in this order:{Style.RESET_ALL}", file=out)
    if not len(rule_set):
        print("  (none — every position shows its number)", file=out)
        return
    width = max(len(r.label) for r in rule_set) + 2
    for i, rule in enumerate(rule_set, 1):
        print(f"  {i:>2}. {format_rule(rule, width)}", file=out)


def show_predicate_list(index: PredicateIndex, *, file=None) -> None:
    out = file or sys.stdout
    groups: dict[str, list[str]] = {}
    for name in index.funcs:
        groups.setdefault(index.categories.get(name) or "General", []).append(name)

    print(f"{Fore.YELLOW}Available predicates: {len(index.funcs)}{Style.RESET_ALL}", file=out)
    for cat in sorted(groups, key=str.lower):
        print(f"{Fore.CYAN}{cat}:{Style.RESET_ALL}", file=out)
        for name in sorted(groups[cat], key=str.lower):
            params = index.params_of(name)
            sig = f"({', '.join(params)})" if params else ""
            desc = index.descriptions.get(name, "")
            left = f"  {Fore.GREEN}{name}{sig}{Style.RESET_ALL}"
            print(f"{left} — {desc}" if desc else left, file=out)
        print(file=out)


def print_profiles_with_descriptions() -> None:
    pairs = list_profiles_with_descriptions()
    if not pairs:
        print("\nAvailable profiles: (none)")
        return

    current = read_current_profile()
    lines = []
    for name, desc in pairs:
        mark = "🡆" if current and name == current else " "
        lines.append(f"{mark} {name:16} — {desc}")
    print("\nAvailable profiles:\n  " + "\n  ".join(lines))


def show_effective_settings() -> None:
    rt = _rt_current()
    print(f"{Fore.CYAN}Effective settings (profile: {rt.profile_name}):{Style.RESET_ALL}")
    for k, v in sorted(flatten_dotted(rt.settings).items(), key=lambda kv: kv[0].lower()):
        print(f"  {k:.<40} {v!r}")
    print(f"  {'runtime.debug':.<40} {rt.debug!r}")
    print(f"  {'runtime.overlay':.<40} {rt.overlay!r}")


def show_intro_help(rule_set: RuleSet) -> None:
    lines = [
        "",
        f"{Fore.GREEN}Welcome to SeqClass{Style.RESET_ALL}",
        f"{'-'*78}",
        "Every position gets the labels of all matching rules, joined in rule order,",
        "or its own number when nothing matches. Any position can be classified",
        "directly, however large: 10**100 costs as much as 1.",
        "",
        f"{Fore.MAGENTA + Style.BRIGHT}Usage in interactive mode:{Style.RESET_ALL}",
        " • <position>         classify one position, e.g. 15 or 10**9",
        " • <offset> <count>   skip <offset> values of 1, 2, 3, ... and show <count>,",
        "                      e.g. 200 5 shows positions 201 to 205",
        " • <offset> inf       stream until Ctrl-C",
        "",
        " • Commands:",
        "   rules               show the active rules",
        "   s                   show effective settings",
        "   p                   list available profiles",
        "   debug on|off|status per-rule trace for each position",
        "   overlay on|off|status  use the sequential overlay evaluator",
        "   hist                history of requested windows",
        "   h or help           this screen",
        "   q or quit           leave",
        "",
        " • Enter a profile name to switch to that profile.",
        "",
    ]
    clear_screen()
    print(_screen_header())
    print("\n".join(lines))
    show_rule_set(rule_set)
