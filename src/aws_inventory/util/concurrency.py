from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def parallel_map_ordered(
    func: Callable[[T], R],
    items: Sequence[T] | Iterable[T],
    max_workers: int,
) -> List[R]:
    """
    Execute func over items in a thread pool and return results preserving the
    input order. The first exception (in input order) is propagated and work
    that has not started yet is cancelled.
    """
    batch = list(items)
    if max_workers <= 1 or len(batch) <= 1:
        return [func(item) for item in batch]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(batch))) as executor:
        futures: List[Future[R]] = [executor.submit(func, item) for item in batch]
        try:
            return [fut.result() for fut in futures]
        except BaseException:
            for fut in futures:
                fut.cancel()
            raise
