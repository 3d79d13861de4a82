# src/seqclass/registry.py
"""
Rule model and predicate registry.

A Rule pairs a pure predicate (position -> bool) with a non-empty label.
A RuleSet is an ordered, immutable, duplicate-label-free tuple of rules;
registration order fixes the label concatenation order and nothing else.

Named predicate factories are plain functions tagged with @predicate. They
are discovered from the user workspace first and then from the packaged
seqclass.predicates modules, so a workspace file can override a packaged
name.
"""
from __future__ import annotations

import inspect
import sys
from collections import OrderedDict
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from functools import partial
from importlib import import_module
from importlib.resources import as_file
from importlib.resources import files as pkg_files
from importlib.util import module_from_spec, spec_from_file_location
from pathlib import Path
from typing import Any

from seqclass.utility import (
    DuplicateLabelError,
    InvalidArgumentError,
    InvalidRuleError,
    is_int,
    typename,
)

Predicate = Callable[[int], bool]
_PACKAGED_DIVISIBLE = "seqclass.predicates.arithmetic"


# ---------- Rule model ----------------------------------------------------------

@dataclass(frozen=True)
class Rule:
    predicate: Predicate
    label: str
    divisor: int | None = None          # set for "divisible by N" rules only
    name: str | None = None             # registry name of the predicate factory
    params: tuple[tuple[str, Any], ...] = ()

    def matches(self, position: int) -> bool:
        return bool(self.predicate(position))

    def describe(self) -> str:
        if self.divisor is not None:
            return f"divisible by {self.divisor}"
        if self.name:
            args = ", ".join(f"{k}={v!r}" for k, v in self.params)
            return f"{self.name}({args})" if args else self.name
        return getattr(self.predicate, "__name__", "predicate")


def make_rule(predicate: Predicate, label: str, *, divisor: int | None = None,
              name: str | None = None, params: dict[str, Any] | None = None) -> Rule:
    """Validate and build a Rule. An empty label would read as "no match"."""
    if not isinstance(label, str):
        raise InvalidRuleError(f"rule label must be a string, got {typename(label)}")
    if not label:
        raise InvalidRuleError("rule label must not be empty")
    if not callable(predicate):
        raise InvalidRuleError(f"rule predicate for {label!r} is not callable")
    return Rule(
        predicate=predicate,
        label=label,
        divisor=divisor,
        name=name,
        params=tuple(sorted((params or {}).items())),
    )


def _divides(n: int, divisor: int) -> bool:
    return n % divisor == 0


def divisible_by(divisor: int, label: str) -> Rule:
    """The classic rule: label every multiple of divisor (0 included)."""
    if not is_int(divisor) or divisor <= 0:
        raise InvalidRuleError(f"divisor must be a positive integer, got {divisor!r}")
    return make_rule(partial(_divides, divisor=divisor), label,
                     divisor=divisor, name="divisible", params={"divisor": divisor})


@dataclass(frozen=True)
class RuleSet:
    """
    Ordered immutable collection of rules with unique labels.

    Derive new sets with append()/remove(); there are no mutators.
    """
    rules: tuple[Rule, ...] = ()

    def __post_init__(self):
        items = tuple(self.rules)
        seen: set[str] = set()
        for r in items:
            if not isinstance(r, Rule):
                raise InvalidRuleError(f"expected Rule, got {typename(r)}")
            if r.label in seen:
                raise DuplicateLabelError(f"duplicate rule label: {r.label!r}")
            seen.add(r.label)
        object.__setattr__(self, "rules", items)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[int, str]]) -> RuleSet:
        """Build from ordered (divisor, label) pairs."""
        return cls(tuple(divisible_by(d, lbl) for d, lbl in pairs))

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(r.label for r in self.rules)

    @property
    def is_periodic(self) -> bool:
        """True when every rule is a divisibility rule (overlay-compatible)."""
        return all(r.divisor is not None for r in self.rules)

    def append(self, rule: Rule) -> RuleSet:
        return RuleSet((*self.rules, rule))

    def remove(self, label: str) -> RuleSet:
        if label not in self.labels:
            raise InvalidArgumentError(f"no rule labelled {label!r}")
        return RuleSet(tuple(r for r in self.rules if r.label != label))

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __getitem__(self, i):
        return self.rules[i]

    def __repr__(self) -> str:
        body = ", ".join(f"{r.label!r}: {r.describe()}" for r in self.rules)
        return f"RuleSet({body})"


def fizzbuzz() -> RuleSet:
    return RuleSet.from_pairs([(3, "Fizz"), (5, "Buzz")])


# ---------- Decorator (only tags the function; no side effects) ----------

def predicate(*, name: str, category: str = "General", description: str = ""):
    def deco(fn: Callable[..., bool]):
        fn.__is_predicate__ = True
        fn.predicate_name = name
        fn.category = category
        fn.description = description
        return fn
    return deco


def _is_predicate(obj) -> bool:
    return callable(obj) and getattr(obj, "__is_predicate__", False)


def _collect_from_module(mod) -> list[Callable[..., bool]]:
    return [o for _, o in inspect.getmembers(mod) if _is_predicate(o)]


def _import_module_from_file(path: Path, name_hint: str):
    spec = spec_from_file_location(name_hint, path)
    if not spec or not spec.loader:
        raise ImportError(f"Cannot import {path}")
    mod = module_from_spec(spec)
    sys.modules[name_hint] = mod
    spec.loader.exec_module(mod)
    return mod


# --------------------- Discovery → Index ----------------------

@dataclass
class PredicateIndex:
    funcs: dict[str, Callable[..., bool]]      # name -> factory
    categories: dict[str, str]                 # name -> category
    descriptions: dict[str, str]               # name -> short description

    def __contains__(self, name: str) -> bool:
        return name in self.funcs

    def params_of(self, name: str) -> list[str]:
        """Keyword parameters a factory expects after the position."""
        sig = inspect.signature(self.funcs[name])
        return list(sig.parameters)[1:]

    def build(self, name: str, label: str, **params: Any) -> Rule:
        """Bind params to the named factory and wrap it as a Rule."""
        fn = self.funcs.get(name)
        if fn is None:
            raise InvalidRuleError(f"unknown predicate {name!r}")
        try:
            inspect.signature(fn).bind(0, **params)
        except TypeError as e:
            raise InvalidRuleError(f"predicate {name!r}: {e}") from None
        if name == "divisible" and fn.__module__ == _PACKAGED_DIVISIBLE:
            return divisible_by(params.get("divisor"), label)
        bound = partial(fn, **params) if params else fn
        try:
            bound(0)    # bad parameter values fail here, not on the first classify
        except InvalidRuleError:
            raise
        except (ArithmeticError, TypeError, ValueError) as e:
            raise InvalidRuleError(f"predicate {name!r}: {e}") from None
        return make_rule(bound, label, name=name, params=params)


@dataclass
class DiscoveryReport:
    ws_loaded: list[tuple[str, int]] = field(default_factory=list)         # (filename.py, count)
    ws_failed: list[tuple[str, str]] = field(default_factory=list)         # (filename.py, error)
    pkg_loaded: list[tuple[str, int]] = field(default_factory=list)        # (module.name, count)
    pkg_failed: list[tuple[str, str]] = field(default_factory=list)        # (module.name, error)
    skipped_duplicates: list[tuple[str, str, str]] = field(default_factory=list)  # (name, skipped, kept)


def discover_with_report(workspace: Path | None = None) -> tuple[PredicateIndex, DiscoveryReport]:
    """Discover predicate factories; workspace overrides package by name."""
    report = DiscoveryReport()
    funcs: OrderedDict[str, Callable[..., bool]] = OrderedDict()
    cats: dict[str, str] = {}
    desc: dict[str, str] = {}
    source_of: dict[str, str] = {}

    def _add_from_module(mod, source_name: str) -> int:
        found = 0
        for fn in _collect_from_module(mod):
            name = fn.predicate_name
            if name in funcs:
                report.skipped_duplicates.append((name, source_name, source_of[name]))
                continue
            funcs[name] = fn
            cats[name] = getattr(fn, "category", "General")
            desc[name] = getattr(fn, "description", "")
            source_of[name] = source_name
            found += 1
        return found

    # 1) Workspace (*.py)
    if workspace:
        ws_dir = workspace / "predicates"
        if ws_dir.is_dir():
            for file in sorted(ws_dir.glob("*.py")):
                if file.name == "__init__.py":
                    continue
                try:
                    mod = _import_module_from_file(file, f"_sc_user_pred_{file.stem}")
                    report.ws_loaded.append((file.name, _add_from_module(mod, f"ws:{file.name}")))
                except Exception as e:  # a broken user file must not break discovery
                    report.ws_failed.append((file.name, f"{type(e).__name__}: {e}"))

    # 2) Packaged (seqclass.predicates.*)
    pkg_dir = pkg_files("seqclass") / "predicates"
    with as_file(pkg_dir) as real:
        for file in sorted(Path(real).glob("*.py")):
            if file.name == "__init__.py":
                continue
            modname = f"seqclass.predicates.{file.stem}"
            try:
                mod = import_module(modname)
                report.pkg_loaded.append((modname, _add_from_module(mod, f"pkg:{modname}")))
            except Exception as e:
                report.pkg_failed.append((modname, f"{type(e).__name__}: {e}"))

    return PredicateIndex(funcs=funcs, categories=cats, descriptions=desc), report


def discover(workspace: Path | None = None) -> PredicateIndex:
    idx, _ = discover_with_report(workspace)
    return idx
