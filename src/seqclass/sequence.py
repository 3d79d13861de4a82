"""
Lazy, pull-based streams of classifications.

A stream walks the sequence 1, 2, 3, ... and `start` is an offset into it:
produce(rs, 0) begins at 1, produce(rs, 200) begins at 201. Position 0 is
not part of any stream; classify() still accepts it directly.

produce() hands out a fresh ClassificationStream per call. A stream is a
single cursor: it evaluates one position per next() and never runs ahead of
the consumer. Streams share only the read-only RuleSet, so independent
streams may be consumed from different threads without locking.
"""
from __future__ import annotations

from collections.abc import Callable, Iterator
from itertools import islice
from typing import Any

from seqclass.classify import DirectEvaluator
from seqclass.registry import RuleSet
from seqclass.utility import check_count, check_position

EvaluatorFactory = Callable[[RuleSet], Any]


class ClassificationStream:
    """
    Iterator over classifications of start, start+1, ...

    With a random-access evaluator each value is computed from its position
    alone, and skip() only moves the counter. With a sequential evaluator the
    underlying pattern is opened on the first pull and skip() has to advance
    it element by element.
    """

    def __init__(self, evaluator, start: int, count: int | None):
        self._evaluator = evaluator
        self._position = start
        self._remaining = count
        self._pattern: Iterator[str] | None = None

    @property
    def position(self) -> int:
        """Next position this stream will produce."""
        return self._position

    @property
    def remaining(self) -> int | None:
        """Values left to produce, None when unbounded."""
        return self._remaining

    def __iter__(self) -> ClassificationStream:
        return self

    def __next__(self) -> str:
        if self._remaining == 0:
            raise StopIteration
        if self._evaluator.random_access:
            value = self._evaluator.classify(self._position)
        else:
            if self._pattern is None:
                self._pattern = self._evaluator.iter_from(self._position)
            value = next(self._pattern)
        self._position += 1
        if self._remaining is not None:
            self._remaining -= 1
        return value

    def take(self, n: int) -> list[str]:
        """Pull at most n values."""
        check_count(n, "take")
        return list(islice(self, n))

    def skip(self, n: int) -> ClassificationStream:
        """Drop the next n positions without keeping their results."""
        check_count(n, "skip")
        if self._remaining is not None:
            n = min(n, self._remaining)
        if not self._evaluator.random_access and self._pattern is not None:
            # consume n elements of the already-open pattern
            next(islice(self._pattern, n, n), None)
        self._position += n
        if self._remaining is not None:
            self._remaining -= n
        return self

    def __repr__(self) -> str:
        left = "∞" if self._remaining is None else self._remaining
        return f"<ClassificationStream position={self._position} remaining={left}>"


def produce(rule_set: RuleSet, start: int = 0, count: int | None = None,
            *, evaluator: EvaluatorFactory | None = None) -> ClassificationStream:
    """
    Lazy classifications for positions start+1, start+2, ...

    `start` counts the stream elements to leave out, so element i of
    produce(rs, 0) is the classification of i+1.

    count=None yields an infinite stream, count=0 an empty one. Invalid
    arguments raise here, before anything is produced.
    """
    check_position(start)
    if count is not None:
        check_count(count)
    factory = evaluator or DirectEvaluator
    return ClassificationStream(factory(rule_set), start + 1, count)


def window(rule_set: RuleSet, start: int, count: int, **kw) -> list[str]:
    """Eager list of `count` classifications after the first `start` ones."""
    return list(produce(rule_set, start, count, **kw))
