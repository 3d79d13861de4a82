# runtime.py
from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
from importlib.util import find_spec
from typing import Any

from colorama import Fore, Style


def _as_plain_dict(settings: Any) -> dict[str, Any]:
    """Settings object, plain dict or module → dict of its sections."""
    as_dict = getattr(settings, "as_dict", None)
    if callable(as_dict):
        return dict(as_dict())
    if isinstance(settings, dict):
        return dict(settings)
    return {k: getattr(settings, k) for k in dir(settings) if k.isupper()}


@dataclass
class Runtime:
    profile_name: str = "default"
    settings: dict[str, Any] = field(default_factory=dict)
    debug: bool = False
    overlay: bool = False    # sequential overlay evaluator instead of direct

    def apply(self, settings: Any) -> None:
        self.profile_name = getattr(settings, "name", None) or "default"
        self.settings = _as_plain_dict(settings)
        self._sync_flags()

    def _sync_flags(self) -> None:
        debug = self.get("BEHAVIOUR.DEBUG")
        if isinstance(debug, bool):
            self.debug = debug
        evaluator = self.get("BEHAVIOUR.EVALUATOR")
        if isinstance(evaluator, str):
            self.overlay = evaluator.strip().lower() == "overlay"

    def get(self, key: str, default: Any = None) -> Any:
        """Dotted lookup into the profile sections, e.g. 'WINDOW.COUNT'."""
        if not key:
            return default
        node: Any = self.settings
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node


# --- Context management ---

_current_runtime: ContextVar[Runtime | None] = ContextVar("seqclass_runtime", default=None)


def current() -> Runtime:
    rt = _current_runtime.get()
    if rt is None:
        rt = Runtime()
        _current_runtime.set(rt)
    return rt


def reset() -> Runtime:
    """Install a fresh Runtime (used by tests and profile reloads)."""
    rt = Runtime()
    _current_runtime.set(rt)
    return rt


def APPLY(settings: Any) -> None:
    current().apply(settings)


def CFG(key: str, default: Any = None) -> Any:
    return current().get(key, default)


# ---- Dependency check --------------------------------------------------------

_PREDICATE_DEPS = ("sympy", "gmpy2")


def ensure_runtime_deps(strict: bool = True) -> bool:
    """Report predicate-library packages that cannot be found; False if any is missing and strict."""
    missing = [name for name in _PREDICATE_DEPS if find_spec(name) is None]
    if missing:
        names = " ".join(missing)
        print(f"{Fore.RED}{Style.BRIGHT}\nMissing dependencies:{Style.RESET_ALL} {', '.join(missing)}"
              f"\nInstall with: {Fore.YELLOW}pip install {names}{Style.RESET_ALL}")
        return not strict
    return True
