# src/seqclass/cli.py

"""
Sequence Classifier - label integer positions by composable rules

Description:
    Classifies positions of the integer sequence 0, 1, 2, ... with an ordered
    set of rules (FizzBuzz and friends). Any position, however large, is
    classified directly; windows are streamed lazily, one line per position.

usage: see seqclass -h
"""

from __future__ import annotations

import argparse
import faulthandler
import os
import platform
import sys
import textwrap
import threading
import time
import traceback
from importlib.resources import files as pkg_files
from typing import NamedTuple

from colorama import Fore, Style
from colorama import init as colorama_init

import seqclass.config as CONFIG
from seqclass import __version__ as _ver
from seqclass.display import (
    print_profiles_with_descriptions,
    print_trace,
    render_window,
    show_effective_settings,
    show_intro_help,
    show_predicate_list,
    show_rule_set,
)
from seqclass.expreval import parse_int_or_expr
from seqclass.fmt import format_position
from seqclass.output_manager import OutputManager
from seqclass.overlay import OverlayEvaluator
from seqclass.progress import Progress
from seqclass.registry import PredicateIndex, RuleSet, discover, discover_with_report
from seqclass.runtime import APPLY, CFG, ensure_runtime_deps
from seqclass.runtime import current as _rt_current
from seqclass.sequence import produce
from seqclass.utility import (
    SeqClassError,
    UserInputError,
    clear_screen,
    flatten_dotted,
    typename,
    validate_output_setting,
)
from seqclass.workspace import ensure_workspace_seeded, seed_workspace, workspace_dir

COMMANDS = {"init", "list", "where", "profiles", "active", "rules", "run"}
_UNBOUNDED = {"inf", "infinite", "∞", "forever"}
_TRACE_LIMIT = 200            # debug traces are capped per window
_OVERLAY_WARN_AT = 10_000_000
_PROGRESS_MIN = 10_000


# In memory session history
class HistoryItem(NamedTuple):
    start: int
    count: int | None
    profile: str | None
    timestamp: float


_HISTORY: list[HistoryItem] = []


def add_to_history(start: int, count: int | None, profile: str | None = None) -> None:
    _HISTORY.append(HistoryItem(start=start, count=count, profile=profile, timestamp=time.time()))


def get_history() -> list[HistoryItem]:
    return list(_HISTORY)


def _install_loud_error_handlers(debug: bool) -> None:
    if not debug:
        return
    faulthandler.enable()

    def _excepthook(exc_type, exc, tb):
        sys.stderr.write("\n[UNCAUGHT EXCEPTION]\n")
        traceback.print_exception(exc_type, exc, tb, file=sys.stderr)
        sys.stderr.flush()
    sys.excepthook = _excepthook

    def _thread_excepthook(args):
        sys.stderr.write("\n[UNCAUGHT THREAD EXCEPTION]\n")
        traceback.print_exception(args.exc_type, args.exc_value, args.exc_traceback, file=sys.stderr)
        sys.stderr.flush()
    threading.excepthook = _thread_excepthook


def _print_user_error(msg: str) -> None:
    """Uniform, one-line friendly error."""
    prefix = f"{Fore.RED}Error:{Style.RESET_ALL}"
    if not (msg.startswith("Invalid input:") or msg.startswith("Error:")):
        msg = f"{prefix} {msg}"
    print(msg, file=sys.stderr)


# ---- input parsing ----

def _parse_position(text: str, what: str = "offset") -> int:
    n = parse_int_or_expr(text)
    if n is None:
        raise UserInputError(f"Invalid input: '{text}' is not an integer or integer expression.")
    if n < 0:
        raise UserInputError(f"Invalid input: {what} must be non-negative, got {n}.")
    return n


def _parse_count(text: str) -> int | None:
    """Integer count, or None for an unbounded window."""
    if text.strip().lower() in _UNBOUNDED:
        return None
    return _parse_position(text, "count")


def _resolve_inputs(items: list[str]) -> tuple[str | None, int | None, int | None]:
    """Return (profile_or_command, offset, count) from the positionals.

    Rules:
      - a leading non-numeric item is a profile name or command
      - OFFSET COUNT skips OFFSET values of 1, 2, 3, ... and shows COUNT ("inf" = unbounded)
      - a single number N shows position N itself (offset N-1, count 1)
    """
    if not items:
        return None, None, None

    head: str | None = None
    rest = list(items)
    if parse_int_or_expr(rest[0]) is None:
        head = rest.pop(0)

    _MAX_NUMBERS = 2
    if len(rest) > _MAX_NUMBERS:
        raise UserInputError(f"Invalid input: expected at most an offset and a count, got {' '.join(rest)}")
    if not rest:
        return head, None, None

    if len(rest) == _MAX_NUMBERS:
        return head, _parse_position(rest[0]), _parse_count(rest[1])

    position = _parse_position(rest[0], "position")
    if position == 0:
        raise UserInputError("Invalid input: windows cover 1, 2, 3, ...; use '0 10' for the first ten values.")
    return head, position - 1, 1


def _rules_for(settings, index: PredicateIndex, cli_rules: list[str] | None) -> RuleSet:
    """--rule options replace the profile's rules entirely."""
    if cli_rules:
        return CONFIG.rules_from_entries([CONFIG.parse_rule_option(r) for r in cli_rules], index)
    return CONFIG.rules_from_settings(settings, index)


# ---- argparse ----
def _build_parser() -> argparse.ArgumentParser:

    epilog = textwrap.dedent("""\
    commands:
      init
          Create workspace folders and copy packaged sample profiles if missing.

      init overwrite
          Meant for developers. Requires environment variable SEQCLASS_DEV=1.
          Replaces the packaged profiles in the workspace.

      list        List all available predicates for [[RULES]] entries.
      profiles    List profiles with their descriptions.
      active      Show the remembered profile.
      rules       Show the rules of the selected profile (or --rule options).
      run         Render the profile WINDOW: skip START values, show COUNT.
      where       Show the workspace and package paths.

    windows:
      OFFSET COUNT skips the first OFFSET values of 1, 2, 3, ... and shows the
      next COUNT; a single number shows that position.

    examples:
      seqclass 15                     -> FizzBuzz
      seqclass 200 5                  -> Fizz 202 203 Fizz Buzz   (positions 201..205)
      seqclass 10**12 3               -> positions 10^12+1 .. 10^12+3
      seqclass fizzbuzzbazz 100 6
      seqclass 0 20 --rule 2:Even --rule prime:Prime
    """)

    p = argparse.ArgumentParser(
        description="Sequence Classifier — label integer positions by composable rules",
        usage=(
            "seqclass [[profile|command] [offset|position] [count|inf]] [--rule SPEC]... [--overlay]\n"
            "                [--output OUTPUT] [--quiet] [--no-color] [--debug]\n"
            "       seqclass -h | --help\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    p.add_argument("items", nargs="*", metavar="[[profile|command] offset [count]]",
                   help="optional profile name or command, then an offset and a count, or a single position")
    p.add_argument("--profile", default=None, help="Profile to use for commands (default: last used)")
    p.add_argument("--rule", action="append", metavar="SPEC",
                   help="DIVISOR:LABEL or PREDICATE[,key=value]:LABEL; repeatable, replaces profile rules")
    p.add_argument("--overlay", action="store_true",
                   help="Use the sequential overlay evaluator (divisor rules only, slow for large starts)")
    p.add_argument("--output", default=None, help="Write results to a file or directory/ (also prints unless --quiet)")
    p.add_argument("--quiet", action="store_true", help="Do not print results to the screen")
    p.add_argument("--no-color", action="store_true", help="Plain output without ANSI colours")
    p.add_argument("--debug", action="store_true", help="Show per-rule traces, discovery and profile details")
    p.add_argument("--version", action="version", version=f"seqclass {_ver}")

    return p


def main(argv=None) -> int:
    """Thin wrapper: catch friendly errors, hide tracebacks unless debug."""
    try:
        return _main_impl(argv)
    except (UserInputError, SeqClassError) as e:
        _print_user_error(str(e))
        return 2
    except KeyboardInterrupt:
        print("\nAborted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        debug = "--debug" in (argv if argv is not None else sys.argv)
        if debug:
            raise
        print(f"Unexpected error: {e.__class__.__name__}: {e}", file=sys.stderr)
        print("Run with --debug for a full traceback.", file=sys.stderr)
        return 1


def _configure_text_streams() -> None:
    if os.environ.get("PYTHONIOENCODING"):
        return
    # Only touch redirected output (pipes/files), leave TTY as-is
    if sys.stdout.isatty() or not hasattr(sys.stdout, "reconfigure"):
        return
    enc = (sys.stdout.encoding or "").lower()
    if platform.system() == "Windows" or enc in ("", "ascii", "us-ascii"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")


def _debug_discovery(index: PredicateIndex, rep) -> None:
    print(f"[debug] discovered predicates: {len(index.funcs)}", file=sys.stderr)
    for name, cnt in rep.ws_loaded:
        print(f"[discovery] {Fore.GREEN}ws OK{Style.RESET_ALL} {name}: {cnt} predicate(s)", file=sys.stderr)
    for name, err in rep.ws_failed:
        print(f"[discovery] {Fore.RED}ws FAIL{Style.RESET_ALL} {name}: {err}", file=sys.stderr)
    for name, err in rep.pkg_failed:
        print(f"[discovery] {Fore.RED}pkg FAIL{Style.RESET_ALL} {name}: {err}", file=sys.stderr)
    if rep.skipped_duplicates:
        print(f"[discovery] {Fore.YELLOW}SKIP{Style.RESET_ALL} {len(rep.skipped_duplicates)} "
              "duplicate predicate name(s) skipped.", file=sys.stderr)


def _debug_profile(profile_name: str, selected) -> None:
    print(f"[debug] active profile: {profile_name}", file=sys.stderr)
    src_path = getattr(selected, "_source", None)
    if src_path:
        print(f"[debug] profile file: {src_path}", file=sys.stderr)
    print("[debug] profile keys (runtime value/type):", file=sys.stderr)
    flat = flatten_dotted(_rt_current().settings)
    for k in sorted(flat, key=str.lower):
        v = CFG(k, None)
        print(f"        {k:.<40} {v!r} ({typename(v)})", file=sys.stderr)
    print(f"        {'RULES':.<40} {len(selected.rules)} entr{'y' if len(selected.rules) == 1 else 'ies'}",
          file=sys.stderr)
    print(file=sys.stderr)


def _select_profile_name(explicit: str | None) -> str:
    """
    Precedence:
      1) explicit profile (positional or --profile)
      2) last used (from workspace)
      3) 'default'
    """
    if explicit:
        return explicit
    last = CONFIG.read_current_profile()
    if last and CONFIG.has_profile(last):
        return last
    return "default"


def _load_profile(name: str, *, debug: bool):
    if not CONFIG.has_profile(name):
        raise UserInputError(
            f"Unknown profile '{name}'. Available: {', '.join(CONFIG.list_all_profiles()) or '(none)'}"
        )
    selected = CONFIG.load_settings(name)
    APPLY(selected)
    rt = _rt_current()
    rt.debug = rt.debug or debug

    limit = int(CFG("BEHAVIOUR.MAX_DIGITS", 100_000))
    if not os.environ.get("PYTHONINTMAXSTRDIGITS"):
        sys.set_int_max_str_digits(max(limit, 640))

    if debug:
        _debug_profile(name, selected)
    return selected


def run_window(rule_set: RuleSet, start: int, count: int | None, om: OutputManager,
               *, color: bool) -> int:
    """Stream positions start+1 .. start+count into `om`; debug and overlay follow the runtime flags."""
    rt = _rt_current()
    factory = OverlayEvaluator if rt.overlay else None

    if rt.overlay and start >= _OVERLAY_WARN_AT:
        print(f"{Fore.YELLOW}[overlay]{Style.RESET_ALL} sequential evaluator: generating "
              f"{format_position(start)} positions before the first result.", file=sys.stderr)

    stream = produce(rule_set, start, count, evaluator=factory)

    if rt.debug and count:
        print_trace(rule_set, stream.position, min(count, _TRACE_LIMIT))

    progress = None
    if om.quiet and om.target and count and count >= _PROGRESS_MIN:
        progress = Progress(count)

    return render_window(stream, om, color=color, progress=progress)


def _run_command(cmd: str, args, items: list[str], index: PredicateIndex) -> int:
    _TWO_ARGS = 2
    if cmd != "init" and len(items) > 1:
        raise UserInputError(f"Invalid input: command '{cmd}' takes no arguments.")
    if cmd == "init":
        if len(items) == _TWO_ARGS and items[1] == "overwrite":
            if os.environ.get("SEQCLASS_DEV") != "1":
                print("Refusing to overwrite: set SEQCLASS_DEV=1 to enable developer overwrite.")
                return 2
            ws, copied = seed_workspace(overwrite=True)
            print(f"Workspace ready at: {ws} (overwrote existing files)")
            print(f"Copied -> profiles: {copied.get('profiles', 0)}")
            return 0
        ws, _, copied = ensure_workspace_seeded()
        print(f"Workspace ready at: {ws}")
        print(f"Copied -> profiles: {copied.get('profiles', 0)}")
        return 0

    if cmd == "list":
        show_predicate_list(index)
        return 0
    if cmd == "profiles":
        print_profiles_with_descriptions()
        return 0
    if cmd == "active":
        print(f"Active profile: {CONFIG.read_current_profile() or 'default'}")
        return 0
    if cmd == "where":
        print(f"Workspace: {workspace_dir()}")
        print(f"Package:   {pkg_files('seqclass')}")
        return 0

    profile_name = _select_profile_name(args.profile)
    selected = _load_profile(profile_name, debug=args.debug)
    rule_set = _rules_for(selected, index, args.rule)

    if cmd == "rules":
        show_rule_set(rule_set, title=f"Rules of '{profile_name}'")
        return 0

    # run: the profile's configured window
    start = int(CFG("WINDOW.START", 0))
    raw_count = CFG("WINDOW.COUNT", 100)
    count = None if str(raw_count).lower() in _UNBOUNDED else int(raw_count)
    if args.overlay:
        _rt_current().overlay = True
    return _one_shot(rule_set, start, count, args)


def _make_output_manager(args, start: int, count: int | None) -> OutputManager:
    # CLI --output overrides profile OUTPUT_FILE; re-read each time so profile switches apply
    cli_target = validate_output_setting(args.output)
    target = cli_target if cli_target is not None else validate_output_setting(CFG("OUTPUT.OUTPUT_FILE", None))
    # per-window files are named after the positions shown, not the offset
    return OutputManager(output_file=target, quiet=args.quiet, start=start + 1, count=count)


def _use_color(args) -> bool:
    return (not args.no_color) and sys.stdout.isatty() and bool(CFG("DISPLAY.COLOR_LABELS", True))


def _one_shot(rule_set: RuleSet, start: int, count: int | None, args) -> int:
    try:
        om = _make_output_manager(args, start, count)
    except ValueError as e:
        print(f"Fatal error in output setting: {e}", file=sys.stderr)
        return 1
    with om:
        run_window(rule_set, start, count, om, color=_use_color(args))
    return 0


# ---- main ----
def _main_impl(argv=None) -> int:

    colorama_init(autoreset=True)
    _configure_text_streams()

    parser = _build_parser()
    args = parser.parse_args(argv)
    rt = _rt_current()
    rt.debug = bool(args.debug)
    rt.overlay = bool(args.overlay)

    _install_loud_error_handlers(args.debug)

    if not ensure_runtime_deps(strict=True):
        return 1

    # first-run workspace seed, silently
    ensure_workspace_seeded()

    if args.debug:
        index, rep = discover_with_report(workspace_dir())
        _debug_discovery(index, rep)
    else:
        index = discover(workspace_dir())

    if args.items and args.items[0] in COMMANDS:
        return _run_command(args.items[0], args, args.items, index)

    head, start, count = _resolve_inputs(args.items)

    # explicit profile (positional) must exist
    if head and not CONFIG.has_profile(head):
        print(f"Unknown profile or command: '{head}'")
        print("Available profiles:", ", ".join(CONFIG.list_all_profiles()))
        print("Commands:", ", ".join(sorted(COMMANDS)))
        return 2

    profile_name = _select_profile_name(head or args.profile)
    selected = _load_profile(profile_name, debug=args.debug)
    if args.overlay:
        rt.overlay = True          # flag beats the profile's EVALUATOR
    rule_set = _rules_for(selected, index, args.rule)

    # --- one-shot window path ---
    if start is not None:
        return _one_shot(rule_set, start, count, args)

    if head:
        CONFIG.write_current_profile(profile_name)

    return _repl(profile_name, rule_set, index, args)


def _toggle(cmd: str, parts: list[str], attr: str, label: str) -> None:
    rt = _rt_current()
    if len(parts) == 1 or parts[1] == "status":
        print(f"{label} is currently {'ON' if getattr(rt, attr) else 'OFF'}.")
    elif parts[1] in ("on", "off"):
        setattr(rt, attr, parts[1] == "on")
        print(f"{label} {'enabled' if parts[1] == 'on' else 'disabled'} for this session.")
    else:
        print(f"Usage: {cmd.upper()} [on|off|status]")


def _repl(profile_name: str, rule_set: RuleSet, index: PredicateIndex, args) -> int:
    if not _rt_current().debug:
        clear_screen()
    print(f"{Fore.YELLOW}{Style.BRIGHT}Sequence Classifier v{_ver} — label positions by composable rules{Style.RESET_ALL}")
    show_rule_set(rule_set)

    current_profile = profile_name
    while True:
        try:
            prompt = f"\nProfile: {current_profile} — Enter position, offset count, command or profile (h=Help, q=Quit): "
            user_input = input(prompt).strip()
            low = user_input.lower()

            if low in {"", "q", "quit", "exit"}:
                break
            if low in {"h", "help"}:
                show_intro_help(rule_set)
                continue
            if low in {"p", "profiles"}:
                print_profiles_with_descriptions()
                continue
            if low == "rules":
                show_rule_set(rule_set)
                continue
            if low == "s":
                show_effective_settings()
                continue
            if low in {"hist", "history"}:
                hist = get_history()
                if not hist:
                    print("History is empty.")
                for item in hist:
                    ts = time.strftime("%H:%M:%S", time.localtime(item.timestamp))
                    cnt = "inf" if item.count is None else item.count
                    print(f"{ts}  offset={format_position(item.start):<15} count={cnt!s:<8} profile={item.profile or '-'}")
                continue

            parts = low.split()
            if parts[0] == "debug":
                _toggle("debug", parts, "debug", "Debug")
                continue
            if parts[0] == "overlay":
                _toggle("overlay", parts, "overlay", "Overlay evaluator")
                continue

            # window?
            try:
                _, start, count = _resolve_inputs(user_input.split())
            except UserInputError as e:
                print(f"{Fore.RED}{e}{Style.RESET_ALL}", file=sys.stderr)
                continue

            if start is not None:
                try:
                    _one_shot(rule_set, start, count, args)
                    add_to_history(start, count, current_profile)
                except KeyboardInterrupt:
                    print("\n(stopped)")
                except SeqClassError as e:
                    _print_user_error(str(e))
                continue

            # profile switch
            if CONFIG.has_profile(user_input):
                try:
                    selected = _load_profile(user_input, debug=_rt_current().debug)
                    rule_set = _rules_for(selected, index, args.rule)
                except (UserInputError, SeqClassError) as e:
                    print(f"{Fore.RED}Failed to load profile {Style.RESET_ALL}'{user_input}': {e}", file=sys.stderr)
                    continue
                CONFIG.write_current_profile(user_input)
                current_profile = user_input
                print(f"Applied profile: {current_profile}")
                show_rule_set(rule_set)
                continue

            print(f"{Fore.RED}Invalid input: {Style.RESET_ALL}'{user_input}'. Type H for help.")
        except (EOFError, KeyboardInterrupt):
            print()
            break
        except Exception as e:
            if _rt_current().debug:
                traceback.print_exc()
            else:
                _print_user_error(f"{e.__class__.__name__}: {e}")
            continue
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
