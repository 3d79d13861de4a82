# tests/test_config.py
"""
Tests for profiles, rule entries, predicate discovery, input parsing and output files.
"""

from __future__ import annotations

import io

import pytest

import seqclass.config as CONFIG
from seqclass import classify, window
from seqclass.expreval import parse_int_or_expr
from seqclass.output_manager import OutputManager, _choose_split_output_path
from seqclass.progress import Progress
from seqclass.runtime import APPLY, CFG
from seqclass.runtime import current as rt_current
from seqclass.utility import InvalidRuleError, UserInputError, validate_output_setting
from seqclass.workspace import ensure_workspace_seeded, seed_workspace, workspace_dir

# ---------- workspace ---------------------------------------------------------


def test_workspace_follows_env(tmp_path):
    assert workspace_dir() == (tmp_path / "ws").resolve()


def test_seeding_copies_packaged_profiles_once():
    root, seeded, copied = ensure_workspace_seeded()
    assert seeded
    assert copied["profiles"] >= 4
    assert (root / "profiles" / "default.toml").is_file()
    assert (root / "predicates").is_dir()

    _, seeded_again, _ = ensure_workspace_seeded()
    assert not seeded_again


def test_seeding_keeps_user_edits_unless_overwrite():
    root, _, _ = ensure_workspace_seeded()
    path = root / "profiles" / "default.toml"
    path.write_text('[PROFILE]\nname = "default"\ndescription = "mine"\n', encoding="utf-8")

    ensure_workspace_seeded()
    assert "mine" in path.read_text(encoding="utf-8")

    seed_workspace(overwrite=True)
    assert "mine" not in path.read_text(encoding="utf-8")


# ---------- profiles ----------------------------------------------------------


def test_packaged_profiles_listed():
    names = CONFIG.list_all_profiles()
    for name in ("default", "fizzbuzzbazz", "fizzbuzz_digits", "primes"):
        assert name in names
    descs = dict(CONFIG.list_profiles_with_descriptions())
    assert "FizzBuzz" in descs["default"]


def test_load_default_profile():
    ensure_workspace_seeded()
    settings = CONFIG.load_settings("default")
    assert settings.name == "default"
    assert settings.rules == [{"divisor": 3, "label": "Fizz"}, {"divisor": 5, "label": "Buzz"}]
    assert "PROFILE" not in settings.data
    assert "RULES" not in settings.data

    APPLY(settings)
    assert CFG("WINDOW.START") == 0
    assert CFG("WINDOW.COUNT") == 100
    assert CFG("NOPE.NOPE", "x") == "x"
    assert rt_current().overlay is False


def test_profile_evaluator_sets_overlay_flag():
    root, _, _ = ensure_workspace_seeded()
    (root / "profiles" / "ov.toml").write_text(
        '[[RULES]]\ndivisor = 2\nlabel = "Even"\n\n[BEHAVIOUR]\nEVALUATOR = "overlay"\n',
        encoding="utf-8",
    )
    settings = CONFIG.load_settings("ov")
    assert settings.name == "ov"
    assert settings.description == "(no description)"
    APPLY(settings)
    assert rt_current().overlay is True


def test_missing_profile():
    ensure_workspace_seeded()
    assert not CONFIG.has_profile("nope")
    with pytest.raises(FileNotFoundError):
        CONFIG.load_settings("nope")


def test_broken_toml_is_a_user_error():
    root, _, _ = ensure_workspace_seeded()
    (root / "profiles" / "broken.toml").write_text("[WINDOW\nSTART = 1\n", encoding="utf-8")
    with pytest.raises(UserInputError):
        CONFIG.load_settings("broken")
    descs = dict(CONFIG.list_profiles_with_descriptions())
    assert descs["broken"] == "(unreadable profile)"


def test_rules_must_be_array_of_tables():
    root, _, _ = ensure_workspace_seeded()
    (root / "profiles" / "flat.toml").write_text('RULES = [1, 2]\n', encoding="utf-8")
    with pytest.raises(UserInputError):
        CONFIG.load_settings("flat")


def test_current_profile_roundtrip():
    ensure_workspace_seeded()
    assert CONFIG.read_current_profile() is None
    CONFIG.write_current_profile("primes.toml")
    assert CONFIG.read_current_profile() == "primes"


# ---------- rule entries ------------------------------------------------------


@pytest.mark.parametrize(
    "name,expected",
    [
        ("default", ["Fizz", "7", "8", "Fizz", "Buzz", "11", "Fizz", "13", "14", "FizzBuzz"]),
        ("fizzbuzzbazz", ["Fizz", "Bazz", "8", "Fizz", "Buzz", "11", "Fizz", "13", "Bazz", "FizzBuzz"]),
        ("fizzbuzz_digits", ["Fizz", "7", "8", "Fizz", "Buzz", "11", "Fizz", "Fuzz", "14", "FizzBuzzBizz"]),
        ("primes", ["6", "Prime", "Fib", "Square", "10", "Prime", "12", "PrimeFib", "14", "15"]),
    ],
    ids=["default", "fizzbuzzbazz", "fizzbuzz_digits", "primes"],
)
def test_profile_rules_classify(index, name, expected):
    ensure_workspace_seeded()
    rs = CONFIG.rules_from_settings(CONFIG.load_settings(name), index)
    assert window(rs, 5, 10) == expected


def test_divisor_entry_without_index():
    rs = CONFIG.rules_from_entries([{"divisor": 4, "label": "Four"}])
    assert classify(rs, 8) == "Four"
    assert rs.is_periodic


@pytest.mark.parametrize(
    "entry",
    [
        {"divisor": 3},
        {"divisor": 0, "label": "Zero"},
        {"divisor": "3", "label": "Str"},
        {"divisor": 3, "label": "X", "digit": 1},
        {"predicate": "no_such_thing", "label": "X"},
        {"predicate": "contains_digit", "label": "X"},
        {"predicate": "prime", "label": "X", "base": 2},
    ],
    ids=["no-label", "zero", "string-divisor", "extra-key", "unknown", "missing-param", "unexpected-param"],
)
def test_bad_rule_entries(index, entry):
    with pytest.raises(InvalidRuleError):
        CONFIG.rule_from_entry(entry, index)


BAD_PARAMS = [
    ("digit_sum_divisible", {"divisor": 0}),
    ("digit_sum_divisible", {"divisor": -9}),
    ("ends_with", {"digit": "3"}),
    ("ends_with", {"digit": 10}),
    ("contains_digit", {"digit": 1.0}),
    ("power_of", {"base": 1}),
    ("divisible", {"divisor": 0}),
]


@pytest.mark.parametrize("name,params", BAD_PARAMS, ids=[f"{n}-{next(iter(p.values()))!r}" for n, p in BAD_PARAMS])
def test_bad_parameter_values_fail_at_build(index, name, params):
    with pytest.raises(InvalidRuleError):
        index.build(name, "X", **params)


def test_predicate_entry_needs_index():
    with pytest.raises(InvalidRuleError):
        CONFIG.rule_from_entry({"predicate": "prime", "label": "P"})


def test_divisible_predicate_is_periodic(index):
    rule = CONFIG.rule_from_entry({"predicate": "divisible", "divisor": 7, "label": "Bazz"}, index)
    assert rule.divisor == 7
    assert rule.describe() == "divisible by 7"


PARSE_CASES = [
    ("3:Fizz", {"divisor": 3, "label": "Fizz"}),
    ("prime:Prime", {"predicate": "prime", "label": "Prime"}),
    ("contains_digit,digit=3:Fuzz", {"predicate": "contains_digit", "digit": 3, "label": "Fuzz"}),
    (" 15 : FizzBuzz ", {"divisor": 15, "label": "FizzBuzz"}),
]


@pytest.mark.parametrize("text,expected", PARSE_CASES, ids=[c[0].strip() for c in PARSE_CASES])
def test_parse_rule_option(text, expected):
    assert CONFIG.parse_rule_option(text) == expected


@pytest.mark.parametrize("text", ["", "3", ":Fizz", "3:", "contains_digit,digit:X"], ids=repr)
def test_parse_rule_option_rejects(text):
    with pytest.raises(UserInputError):
        CONFIG.parse_rule_option(text)


# ---------- discovery ---------------------------------------------------------


def test_discovery_finds_packaged_predicates(index):
    for name in ("divisible", "prime", "square", "fibonacci", "power_of",
                 "contains_digit", "ends_with", "digit_sum_divisible", "palindrome"):
        assert name in index, name
    assert index.params_of("contains_digit") == ["digit"]
    assert index.params_of("prime") == []
    assert index.categories["prime"] == "Arithmetic"


def test_workspace_predicates_override_packaged():
    from seqclass.registry import discover_with_report

    root, _, _ = ensure_workspace_seeded()
    (root / "predicates" / "mine.py").write_text(
        "from seqclass.registry import predicate\n\n"
        "@predicate(name='prime', category='Mine', description='only seven')\n"
        "def seven(n):\n"
        "    return n == 7\n\n"
        "@predicate(name='lucky', description='ends in 7')\n"
        "def lucky(n):\n"
        "    return n % 10 == 7\n",
        encoding="utf-8",
    )
    (root / "predicates" / "broken.py").write_text("raise RuntimeError('nope')\n", encoding="utf-8")

    idx, rep = discover_with_report(workspace_dir())
    assert "lucky" in idx
    assert idx.categories["prime"] == "Mine"
    assert ("mine.py", 2) in rep.ws_loaded
    assert [name for name, _ in rep.ws_failed] == ["broken.py"]
    assert any(name == "prime" for name, _, _ in rep.skipped_duplicates)

    rs = CONFIG.rules_from_entries([{"predicate": "prime", "label": "P"}], idx)
    assert window(rs, 4, 3) == ["5", "6", "P"]


def test_workspace_divisible_override_is_used():
    from seqclass.registry import discover

    root, _, _ = ensure_workspace_seeded()
    (root / "predicates" / "odd_div.py").write_text(
        "from seqclass.registry import predicate\n\n"
        "@predicate(name='divisible', description='divisible and odd')\n"
        "def divisible_odd(n, divisor):\n"
        "    return n % divisor == 0 and n % 2 == 1\n",
        encoding="utf-8",
    )
    idx = discover(workspace_dir())
    rule = idx.build("divisible", "D", divisor=3)
    assert rule.divisor is None
    assert [rule.matches(n) for n in (3, 6, 9)] == [True, False, True]


PREDICATE_CASES = [
    ("prime", {}, [2, 3, 97, 2**61 - 1], [0, 1, 4, 91]),
    ("square", {}, [0, 1, 49, 10**40], [2, 50]),
    ("fibonacci", {}, [0, 1, 2, 144, 6765], [4, 100]),
    ("power_of", {"base": 2}, [1, 2, 1024], [0, 6, 1000]),
    ("contains_digit", {"digit": 3}, [3, 13, 301], [0, 12]),
    ("ends_with", {"digit": 0}, [0, 10, 1230], [1, 101]),
    ("digit_sum_divisible", {"divisor": 9}, [0, 18, 999], [10, 91]),
    ("palindrome", {}, [0, 7, 121, 12321], [10, 123]),
]


@pytest.mark.parametrize("name,params,yes,no", PREDICATE_CASES, ids=[c[0] for c in PREDICATE_CASES])
def test_packaged_predicates(index, name, params, yes, no):
    rule = index.build(name, "L", **params)
    assert all(rule.matches(n) for n in yes), name
    assert not any(rule.matches(n) for n in no), name


# ---------- input parsing -----------------------------------------------------


PARSE_INT_CASES = [
    ("42", 42),
    ("1_000_000", 1_000_000),
    ("1 000 000", 1_000_000),
    ("1.000.000", 1_000_000),
    ("0xFF", 255),
    ("10**9", 10**9),
    ("2**64-1", 2**64 - 1),
    ("1e6", 10**6),
    ("3*(4+5)", 27),
    ("-7", -7),
    ("1<<10", 1024),
]


@pytest.mark.parametrize("text,expected", PARSE_INT_CASES, ids=[c[0] for c in PARSE_INT_CASES])
def test_parse_int_or_expr(text, expected):
    assert parse_int_or_expr(text) == expected


@pytest.mark.parametrize("text", ["inf", "3.14", "abc", "__import__('os')", "1/2", "", "7//0", "1<<-1"], ids=repr)
def test_parse_int_or_expr_rejects(text):
    assert parse_int_or_expr(text) is None


def test_parse_int_or_expr_digit_guard():
    with pytest.raises(UserInputError):
        parse_int_or_expr("10**10**9")


# ---------- output files ------------------------------------------------------


def test_validate_output_setting():
    assert validate_output_setting("") == ""
    assert validate_output_setting("out/") == "out/"
    assert validate_output_setting("runs.txt") == "runs.txt"
    with pytest.raises(ValueError):
        validate_output_setting("notes.md")
    with pytest.raises(ValueError):
        validate_output_setting("pyproject.toml")


def test_split_output_names(tmp_path):
    assert _choose_split_output_path(str(tmp_path), 200, 5).endswith("200-204.txt")
    assert _choose_split_output_path(str(tmp_path), 7, None).endswith("7-inf.txt")
    long_name = _choose_split_output_path(str(tmp_path), 10**300, 3)
    assert "digits=301" in long_name


def test_split_mode_writes_one_file_per_window(capsys):
    for _ in range(2):
        with OutputManager(output_file="out/", quiet=True, start=200, count=5) as om:
            for v in window(CONFIG.rules_from_entries([{"divisor": 3, "label": "fizz"}]), 199, 5):
                om.write(v)
    path = workspace_dir() / "out" / "200-204.txt"
    assert path.read_text(encoding="utf-8").split() == ["200", "fizz", "202", "203", "fizz"]
    assert capsys.readouterr().out == ""


def test_single_mode_appends_and_strips_ansi(capsys):
    for run in ("a", "b"):
        with OutputManager(output_file="logs/runs.txt", start=1, count=1) as om:
            om.write(f"\x1b[32m{run}\x1b[0m")
    text = (workspace_dir() / "logs" / "runs.txt").read_text(encoding="utf-8")
    assert text == "a\n\nb\n\n"
    assert "\x1b[32ma" in capsys.readouterr().out


def test_parse_int_or_expr_shift_guard():
    with pytest.raises(UserInputError):
        parse_int_or_expr("1<<10**12")
    assert parse_int_or_expr("5>>1") == 2


# ---------- progress ----------------------------------------------------------


def test_progress_bar_draws_and_clears():
    buf = io.StringIO()
    bar = Progress(4, stream=buf)
    bar.update(4, "writing")
    assert "100%" in buf.getvalue()
    assert "writing" in buf.getvalue()
    bar.done()
    assert buf.getvalue().endswith("\r")

    quiet = io.StringIO()
    off = Progress(4, enabled=False, stream=quiet)
    off.update(2)
    off.done()
    assert quiet.getvalue() == ""
