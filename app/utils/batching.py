"""Batch cursor for bounded "id in set" store queries.

Store backends limit how many bind parameters a single ``IN (...)`` clause
may carry, so every set-valued lookup goes through these helpers.
"""

from typing import Callable, Iterable, Iterator, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_BATCH_SIZE = 500


def chunked(items: Iterable[T], size: int = DEFAULT_BATCH_SIZE) -> Iterator[List[T]]:
    """Yield consecutive slices of at most ``size`` items.

    Args:
        items: Items to split (consumed once, order preserved)
        size: Maximum slice length, must be at least 1

    Raises:
        ValueError: If size is less than 1

    Example:
        >>> list(chunked([1, 2, 3, 4, 5], 2))
        [[1, 2], [3, 4], [5]]
    """
    if size < 1:
        raise ValueError(f"Batch size must be at least 1, got: {size}")

    batch: List[T] = []
    for item in items:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


def batched_lookup(
    ids: Iterable[T],
    lookup: Callable[[Sequence[T]], Iterable[R]],
    size: int = DEFAULT_BATCH_SIZE,
) -> List[R]:
    """Run ``lookup`` once per chunk of ``ids`` and concatenate the results.

    Ids are de-duplicated and sorted first, so the same input set always
    produces the same sequence of queries.

    Args:
        ids: Identifiers to look up
        lookup: Function taking one chunk and returning matching rows
        size: Maximum ids per call

    Returns:
        Concatenated rows from every chunk (empty if ids is empty)
    """
    unique_ids = sorted(set(ids), key=str)
    results: List[R] = []
    for batch in chunked(unique_ids, size):
        results.extend(lookup(batch))
    return results
