"""
Bounded, cancellable thread-pool execution for I/O-bound import tasks.

Tasks are submitted lazily, never more than ``max_workers`` at a time, so
setting the stop event stops new work from being issued while tasks already
running are allowed to finish.
"""
import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def default_worker_count() -> int:
    """I/O-bound default: min(32, CPU count + 4)."""
    cpu_count = os.cpu_count() or 4
    return min(32, cpu_count + 4)


def run_cancellable(
    func: Callable[[T], None],
    items: List[T],
    max_workers: Optional[int] = None,
    stop_event: Optional[threading.Event] = None,
    on_done: Optional[Callable[[T], None]] = None
) -> List[T]:
    """
    Apply ``func`` to every item until ``stop_event`` is set.

    Args:
        func: Function run for each item. It is expected to handle its own
              recoverable failures; any exception it raises stops the run and
              is re-raised once running tasks finish.
        items: Items to process, submitted in order
        max_workers: Worker threads. If None, uses ``default_worker_count()``.
                     With 1 worker items run sequentially in the calling thread.
        stop_event: When set, no further items are started
        on_done: Optional callback invoked after each item completes

    Returns:
        Items that were never started because the run was stopped.
    """
    stop_event = stop_event or threading.Event()
    if max_workers is None:
        max_workers = default_worker_count()

    if max_workers <= 1:
        for index, item in enumerate(items):
            if stop_event.is_set():
                return list(items[index:])
            func(item)
            if on_done:
                on_done(item)
        return []

    pending = list(items)
    pending.reverse()
    error: Optional[BaseException] = None

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        in_flight = {}
        while pending or in_flight:
            while pending and len(in_flight) < max_workers and not stop_event.is_set() and error is None:
                item = pending.pop()
                in_flight[executor.submit(func, item)] = item

            if not in_flight:
                break

            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for future in done:
                item = in_flight.pop(future)
                exc = future.exception()
                if exc is not None:
                    logger.error(f"Task for {item} raised {type(exc).__name__}: {exc}")
                    if error is None:
                        error = exc
                    stop_event.set()
                elif on_done:
                    on_done(item)

    if error is not None:
        raise error

    pending.reverse()
    if pending:
        logger.info(f"Stopped before starting {len(pending)} remaining tasks")
    return pending
