"""Hierarchical progress reporting rendered as nested tqdm bars."""
from __future__ import annotations

import logging
import sys
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from tqdm import tqdm

from .log import VERBOSE

logger = logging.getLogger("ghorg.progress")


class ProgressItem:
    """A unit-counting tracker for one piece of work.

    ``completed``/``total`` are kept even when rendering is disabled.
    """

    def __init__(
        self,
        label: str,
        total: int = 0,
        position: int = 0,
        enabled: bool = False,
        on_finish: Optional[Callable[["ProgressItem"], None]] = None,
    ) -> None:
        self.label = label
        self.total = total
        self.completed = 0
        self.finished = False
        self._lock = threading.Lock()
        self._on_finish = on_finish
        self._bar = tqdm(
            total=total or None,
            desc=label,
            position=position,
            leave=False,
            unit="unit",
            file=sys.stderr,
            disable=not enabled,
        )

    def add_work(self, n: int) -> None:
        with self._lock:
            self.total += n
            self._bar.total = self.total
            self._bar.refresh()

    def complete_work(self, n: int = 1) -> None:
        with self._lock:
            self.completed += n
            self._bar.update(n)

    def finish(self) -> None:
        with self._lock:
            if self.finished:
                return
            self.finished = True
            self._bar.close()
        if self._on_finish is not None:
            self._on_finish(self)


class ProgressTracker:
    """Stack of named groups; items opened inside a group nest under it."""

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        # one stack per thread; fan-out workers start at the top level
        self._local = threading.local()
        # open items only; each one drops out when finished
        self.items: List[ProgressItem] = []
        self._items_lock = threading.Lock()

    @property
    def _stack(self) -> List[str]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = self._local.stack = []
        return stack

    @property
    def depth(self) -> int:
        return len(self._stack)

    @contextmanager
    def new_group(self, label: str) -> Iterator["ProgressTracker"]:
        self._stack.append(label)
        try:
            yield self
        finally:
            self._stack.pop()

    def new_item(self, label: str, total: int = 0) -> ProgressItem:
        desc = " / ".join(self._stack + [label])
        item = ProgressItem(
            desc, total=total, position=self.depth, enabled=self.enabled, on_finish=self._release
        )
        with self._items_lock:
            self.items.append(item)
        return item

    def _release(self, item: ProgressItem) -> None:
        with self._items_lock:
            if item in self.items:
                self.items.remove(item)

    def finish(self) -> None:
        with self._items_lock:
            pending = list(self.items)
        for item in pending:
            item.finish()

    def _log(self, level: int, label: str, message: str, *args: object) -> None:
        if not logger.isEnabledFor(level):
            return
        text = f"{label}: {message % args if args else message}"
        if self.enabled:
            # keep bars intact
            with tqdm.external_write_mode(file=sys.stderr):
                logger.log(level, "%s", text)
        else:
            logger.log(level, "%s", text)

    def verbose(self, label: str, message: str, *args: object) -> None:
        self._log(VERBOSE, label, message, *args)

    def info(self, label: str, message: str, *args: object) -> None:
        self._log(logging.INFO, label, message, *args)

    def warn(self, label: str, message: str, *args: object) -> None:
        self._log(logging.WARNING, label, message, *args)
