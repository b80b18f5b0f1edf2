"""Fixed-size windowing over lazy record sequences."""

from __future__ import annotations

from typing import Iterable, Iterator, TypeVar

from core.errors import ConduitConfigError

T = TypeVar("T")


def iter_windows(records: Iterable[T], window_size: int) -> Iterator[list[T]]:
    """Chunk a record sequence into windows of at most ``window_size``.

    Args:
        records: Source sequence, consumed lazily in order.
        window_size: Maximum records per window.

    Returns:
        Iterator over non-empty windows in arrival order.

    Raises:
        ConduitConfigError: If the window size is below one.
    """
    if window_size < 1:
        raise ConduitConfigError(
            f"Invalid processing window size {window_size}: must be at least 1."
        )
    return _chunk(records, window_size)


def _chunk(records: Iterable[T], window_size: int) -> Iterator[list[T]]:
    window: list[T] = []
    for record in records:
        window.append(record)
        if len(window) == window_size:
            yield window
            window = []
    if window:
        yield window
