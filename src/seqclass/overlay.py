"""
Overlay evaluation: merged cyclic label patterns laid over the positions.

For a divisor N the pattern is the infinite cycle ["", ..., "", label] of
length N, so its labelled element falls on N, 2N, ... of the sequence
1, 2, 3, .... The cycles of all rules are concatenated index-wise (the
empty string is the identity) and the merged element replaces the decimal
string of the position whenever it is non-empty.

The merged pattern has no random access: reaching position P means
generating and discarding the P-1 elements before it. Use
seqclass.classify.DirectEvaluator for large offsets or out-of-order lookups;
this evaluator exists as an independent oracle for cross-checks.
"""
from __future__ import annotations

from collections.abc import Iterator
from itertools import count, cycle, islice

from seqclass.registry import Rule, RuleSet
from seqclass.utility import InvalidPositionError, InvalidRuleError, check_position


def _label_cycle(rule: Rule) -> Iterator[str]:
    return cycle([""] * (rule.divisor - 1) + [rule.label])


def _merged_pattern(rule_set: RuleSet) -> Iterator[str]:
    cycles = [_label_cycle(r) for r in rule_set]
    if not cycles:
        return cycle([""])
    return ("".join(parts) for parts in zip(*cycles))


def overlay_stream(rule_set: RuleSet) -> Iterator[str]:
    """Infinite classifications for positions 1, 2, 3, ... (sequential only)."""
    if not rule_set.is_periodic:
        odd = [r.label for r in rule_set if r.divisor is None]
        raise InvalidRuleError(
            f"overlay evaluation needs divisibility rules only; not periodic: {', '.join(odd)}"
        )
    return (word or str(p) for p, word in zip(count(1), _merged_pattern(rule_set)))


class OverlayEvaluator:
    """
    Sequential evaluator over merged cyclic patterns.

    Not random access: classify(P) and iter_from(P) generate and discard
    every element for positions 1..P-1 first, so cost grows linearly with P.
    The patterns begin at position 1; position 0 is rejected.
    """

    random_access = False

    def __init__(self, rule_set: RuleSet):
        overlay_stream(rule_set)   # validate eagerly; the generator is discarded
        self.rule_set = rule_set

    def iter_from(self, start: int = 1) -> Iterator[str]:
        check_position(start)
        if start == 0:
            raise InvalidPositionError("overlay patterns start at position 1")
        return islice(overlay_stream(self.rule_set), start - 1, None)

    def classify(self, position: int) -> str:
        return next(self.iter_from(position))

    def __repr__(self) -> str:
        return f"OverlayEvaluator({self.rule_set!r})"
