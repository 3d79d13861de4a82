"""
Direct evaluation of a single position against a rule set.

Every predicate is evaluated exactly once, independently of the others and
of any other position, so classifying 10**9 costs the same as classifying 1.
The decimal fallback is implicit and never takes part in a concatenation.
"""
from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from itertools import count

from seqclass.registry import RuleSet
from seqclass.utility import check_position


# ---------- Data models -------------------------------------------------------

@dataclass(frozen=True)
class Classification:
    position: int
    text: str
    matched: tuple[str, ...]     # labels in registration order

    @property
    def fallback(self) -> bool:
        return not self.matched


# ---------- Main API ----------------------------------------------------------

def _matched_labels(rule_set: RuleSet, position: int) -> tuple[str, ...]:
    # evaluate all predicates first; order of evaluation does not decide matches
    return tuple(r.label for r in rule_set if r.matches(position))


def classify(rule_set: RuleSet, position: int) -> str:
    """
    Return the concatenated labels of all rules matching `position`, in
    registration order, or str(position) when none match.

    Position 0 is a multiple of every divisor, so divisibility rules all
    match it: classify(fizzbuzz(), 0) == "FizzBuzz".
    """
    check_position(position)
    labels = _matched_labels(rule_set, position)
    return "".join(labels) if labels else str(position)


def explain(rule_set: RuleSet, position: int) -> Classification:
    """Same evaluation as classify(), keeping which labels matched."""
    check_position(position)
    labels = _matched_labels(rule_set, position)
    return Classification(
        position=position,
        text="".join(labels) if labels else str(position),
        matched=labels,
    )


class DirectEvaluator:
    """Random-access evaluator: any position, in any order, in O(|rules|)."""

    random_access = True

    def __init__(self, rule_set: RuleSet):
        self.rule_set = rule_set

    def classify(self, position: int) -> str:
        return classify(self.rule_set, position)

    def iter_from(self, start: int = 0) -> Iterator[str]:
        check_position(start)
        return (classify(self.rule_set, p) for p in count(start))

    def __repr__(self) -> str:
        return f"DirectEvaluator({self.rule_set!r})"
