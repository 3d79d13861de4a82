from __future__ import annotations

import tomllib as toml
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from seqclass.registry import PredicateIndex, Rule, RuleSet, divisible_by
from seqclass.utility import InvalidRuleError, UserInputError, is_int
from seqclass.workspace import ensure_workspace_seeded, workspace_dir


@dataclass
class Settings:
    """
    Wrap the full TOML dict (without the [PROFILE] section).
    .as_dict() feeds runtime.apply().

    Fields:
      - name:        resolved profile name (FILE.stem if not provided in [PROFILE])
      - description: one-line description from [PROFILE] or "(no description)"
      - rules:       raw [[RULES]] entries, in file order
    """
    data: dict[str, Any]
    name: str
    description: str
    rules: list[dict[str, Any]]
    _source: Path | None = None

    def as_dict(self) -> dict[str, Any]:
        return self.data


# --- Paths -----------------------------------------------------------------

def _profiles_dir() -> Path:
    return workspace_dir() / "profiles"


def _profile_path(name: str) -> Path:
    return _profiles_dir() / f"{name}.toml"


# --- I/O -------------------------------------------------------------------

def _load_toml(path: Path) -> dict[str, object]:
    try:
        with path.open("rb") as f:
            return toml.load(f)
    except toml.TOMLDecodeError as e:
        lineno = getattr(e, "lineno", None)
        colno = getattr(e, "colno", None)
        msg = getattr(e, "msg", str(e))
        where = []
        if lineno is not None:
            where.append(f"line {lineno}")
        if colno is not None:
            where.append(f"column {colno}")
        loc = f" (at {', '.join(where)})" if where else ""
        # No traceback chaining
        raise UserInputError(f"reading {path.name}: {msg}{loc}.") from None


# --- Metadata handling -----------------------------------------------------

def _sanitize_oneline(s: str) -> str:
    return " ".join(str(s).split()) or "(no description)"


def _split_profile_data(raw: dict[str, Any], fallback_name: str) -> tuple[dict[str, Any], str, str]:
    """
    Extract [PROFILE] meta (name, description) and return:
      (settings_without_profile, resolved_name, resolved_description)
    """
    meta = raw.get("PROFILE") or {}
    data = {k: v for k, v in raw.items() if k != "PROFILE"}

    name = str(meta.get("name") or fallback_name)
    description = _sanitize_oneline(str(meta.get("description") or ""))

    return data, name, description


# --- Public API ------------------------------------------------------------

def list_all_profiles() -> list[str]:
    """Return the list of available profile *names* (filename stems)."""
    ensure_workspace_seeded()
    pdir = _profiles_dir()
    if not pdir.exists():
        return []
    return sorted(p.stem for p in pdir.glob("*.toml"))


def list_profiles_with_descriptions() -> list[tuple[str, str]]:
    """
    Return [(name, description), ...] for all profiles.
    Profiles lacking [PROFILE] get "(no description)".
    """
    items: list[tuple[str, str]] = []
    for p in _profiles_dir().glob("*.toml"):
        try:
            _, nm, desc = _split_profile_data(_load_toml(p), p.stem)
            items.append((nm, desc))
        except UserInputError:
            # best-effort listing; a broken file still shows up by name
            items.append((p.stem, "(unreadable profile)"))
    return sorted(items, key=lambda t: t[0].lower())


def has_profile(name: str) -> bool:
    return _profile_path(name).exists()


def load_settings(name: str | None) -> Settings:
    """
    Load a profile by name (default 'default'), strip the [PROFILE] metadata,
    pull out [[RULES]] and return Settings(...).
    """
    if not name:
        name = "default"

    path = _profile_path(name)
    if not path.exists():
        raise FileNotFoundError(f"Profile '{name}' not found at {path}")

    data, resolved_name, description = _split_profile_data(_load_toml(path), path.stem)

    rules = data.pop("RULES", []) or []
    if not isinstance(rules, list) or not all(isinstance(r, dict) for r in rules):
        raise UserInputError(f"reading {path.name}: RULES must be an array of tables ([[RULES]]).")

    return Settings(
        data=data,
        name=resolved_name,
        description=description,
        rules=rules,
        _source=path,
    )


def _current_profile_path() -> Path:
    p = _profiles_dir()
    p.mkdir(parents=True, exist_ok=True)
    return p / ".current"


def read_current_profile() -> str | None:
    try:
        s = _current_profile_path().read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return s[:-5] if s.lower().endswith(".toml") else (s or None)


def write_current_profile(name: str) -> None:
    nm = (name or "").strip()
    if nm.lower().endswith(".toml"):
        nm = nm[:-5]
    _current_profile_path().write_text(nm, encoding="utf-8")


# --- Rules -----------------------------------------------------------------

def rule_from_entry(entry: dict[str, Any], index: PredicateIndex | None = None) -> Rule:
    """
    One configuration entry → Rule.

      {divisor = 3, label = "Fizz"}
      {predicate = "contains_digit", digit = 3, label = "Fizz"}
    """
    params = dict(entry)
    label = params.pop("label", None)
    if label is None:
        raise InvalidRuleError(f"rule entry without label: {entry!r}")

    if "predicate" in params:
        name = params.pop("predicate")
        if index is None:
            raise InvalidRuleError(f"predicate rule {label!r} needs a predicate index")
        return index.build(str(name), label, **params)

    divisor = params.pop("divisor", None)
    if params:
        raise InvalidRuleError(f"unexpected keys in rule {label!r}: {', '.join(sorted(params))}")
    if not is_int(divisor):
        raise InvalidRuleError(f"rule {label!r} needs an integer divisor > 0, got {divisor!r}")
    return divisible_by(divisor, label)


def rules_from_entries(entries: list[dict[str, Any]], index: PredicateIndex | None = None) -> RuleSet:
    return RuleSet(tuple(rule_from_entry(e, index) for e in entries))


def rules_from_settings(settings: Settings, index: PredicateIndex | None = None) -> RuleSet:
    return rules_from_entries(settings.rules, index)


def parse_rule_option(text: str) -> dict[str, Any]:
    """
    Parse a --rule value into a configuration entry.

      "3:Fizz"                 → {divisor: 3, label: "Fizz"}
      "prime:Prime"            → {predicate: "prime", label: "Prime"}
      "contains_digit,digit=3:Fizz"
                               → {predicate: "contains_digit", digit: 3, label: "Fizz"}
    """
    head, sep, label = (text or "").partition(":")
    head, label = head.strip(), label.strip()
    if not sep or not head or not label:
        raise UserInputError(f"invalid rule '{text}'. Use DIVISOR:LABEL or PREDICATE[,key=value]:LABEL.")

    if head.isdigit():
        return {"divisor": int(head), "label": label}

    name, *pairs = head.split(",")
    entry: dict[str, Any] = {"predicate": name, "label": label}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise UserInputError(f"invalid predicate argument '{pair}' in rule '{text}'.")
        entry[key] = int(value) if value.lstrip("-").isdigit() else value
    return entry
