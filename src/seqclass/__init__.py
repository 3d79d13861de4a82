from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Version
try:
    __version__ = _pkg_version("seqclass")
except PackageNotFoundError:
    __version__ = "0+unknown"

# Public API re-exports
from .classify import Classification, DirectEvaluator, classify, explain
from .overlay import OverlayEvaluator, overlay_stream
from .registry import Rule, RuleSet, discover, divisible_by, fizzbuzz, make_rule, predicate
from .sequence import ClassificationStream, produce, window
from .utility import (
    DuplicateLabelError,
    InvalidArgumentError,
    InvalidPositionError,
    InvalidRuleError,
    SeqClassError,
)

__all__ = [
    "Classification",
    "ClassificationStream",
    "DirectEvaluator",
    "DuplicateLabelError",
    "InvalidArgumentError",
    "InvalidPositionError",
    "InvalidRuleError",
    "OverlayEvaluator",
    "Rule",
    "RuleSet",
    "SeqClassError",
    "__version__",
    "classify",
    "discover",
    "divisible_by",
    "explain",
    "fizzbuzz",
    "make_rule",
    "overlay_stream",
    "predicate",
    "produce",
    "window",
]
