"""Named validation predicates and ordered specification sets.

A specification evaluates one value and yields zero or more error events.
Sets evaluate every member so the outcome never depends on ordering.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Iterator, TypeVar

from core.types import ErrorEvent

T = TypeVar("T")


@dataclass(frozen=True)
class Specification(Generic[T]):
    """One named rule over a record or a batch.

    Attributes:
        name: Rule name, used as the error type.
        description: Human-readable rule summary.
        check: Callable returning error events for a failing value.
    """

    name: str
    description: str
    check: Callable[[T], Iterable[ErrorEvent]]

    def evaluate(self, value: T) -> list[ErrorEvent]:
        """Evaluate the rule and return every error it reports."""
        return list(self.check(value))


def predicate_spec(
    name: str,
    description: str,
    predicate: Callable[[T], bool],
) -> Specification[T]:
    """Build a specification from a boolean predicate.

    Args:
        name: Rule name.
        description: Message reported when the predicate is false.
        predicate: Returns True for passing values.

    Returns:
        Specification yielding one error on failure.
    """

    def _check(value: T) -> Iterable[ErrorEvent]:
        if predicate(value):
            return ()
        return (ErrorEvent(type=name, message=description),)

    return Specification(name=name, description=description, check=_check)


class SpecificationSet(Generic[T]):
    """Ordered, immutable collection of specifications."""

    def __init__(self, specifications: Iterable[Specification[T]] = ()) -> None:
        self._specifications = tuple(specifications)

    def __iter__(self) -> Iterator[Specification[T]]:
        return iter(self._specifications)

    def __len__(self) -> int:
        return len(self._specifications)

    def with_specification(self, specification: Specification[T]) -> "SpecificationSet[T]":
        """Return a new set with one more specification appended."""
        return SpecificationSet(self._specifications + (specification,))

    def evaluate(self, value: T) -> list[ErrorEvent]:
        """Evaluate all specifications and concatenate their errors.

        Args:
            value: Record or batch under validation.

        Returns:
            Errors in specification order, empty when all pass.
        """
        errors: list[ErrorEvent] = []
        for specification in self._specifications:
            errors.extend(specification.evaluate(value))
        return errors
