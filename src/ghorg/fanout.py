"""Bounded fan-out over independent API lookups."""
from __future__ import annotations

import concurrent.futures
import logging
import threading
from typing import Callable, Dict, Hashable, Iterable, Iterator, Optional, Tuple, TypeVar

from .github.errors import NotFoundError

T = TypeVar('T')
R = TypeVar('R')

logger = logging.getLogger("ghorg.fanout")


def fan_out(
    func: Callable[[T], R],
    items: Iterable[T],
    concurrency: int = 1,
    on_missing: Optional[Callable[[T, NotFoundError], None]] = None,
) -> Iterator[Tuple[T, R]]:
    """Run ``func`` over ``items`` with at most ``concurrency`` calls in flight.

    Yields ``(item, result)`` as calls complete; merging is left to the caller,
    on the caller's thread. An item whose call raises ``NotFoundError`` is
    reported through ``on_missing`` (or logged) and skipped. Any other error
    cancels the items not yet started and is re-raised once the running ones
    have finished.
    """
    def missing(item: T, e: NotFoundError) -> None:
        if on_missing is not None:
            on_missing(item, e)
        else:
            logger.warning("Skipping %s: %s", item, e)

    if concurrency <= 1:
        for item in items:
            try:
                result = func(item)
            except NotFoundError as e:
                missing(item, e)
                continue
            yield item, result
        return

    executor = concurrent.futures.ThreadPoolExecutor(max_workers=concurrency)
    try:
        futures = {executor.submit(func, item): item for item in items}
        for fut in concurrent.futures.as_completed(futures):
            item = futures[fut]
            try:
                result = fut.result()
            except NotFoundError as e:
                missing(item, e)
                continue
            yield item, result
    except BaseException:
        executor.shutdown(wait=True, cancel_futures=True)
        raise
    executor.shutdown(wait=True)


class KeyedLocks:
    """One lock per key, so lookups of the same key run one at a time.

    A caller that finds the key busy waits for the first lookup to finish and
    can then read its memoized answer instead of asking the API again.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    def __call__(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock
