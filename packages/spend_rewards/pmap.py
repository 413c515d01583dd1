"""Bounded, order-preserving parallel map over a thread pool.

Used to run independent per-month computations concurrently. At most
``concurrency`` calls are in flight; results come back in input order.

With ``stop_on_error=True`` (default) the first failure propagates and work
that has not started yet is cancelled. With ``stop_on_error=False`` every item
runs and all failures are raised together as an ``ExceptionGroup``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def p_map(
    items: Iterable[InT],
    fn: Callable[[InT], OutT],
    *,
    concurrency: int,
    stop_on_error: bool = True,
) -> list[OutT]:
    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    pending = list(enumerate(items))
    pending.reverse()
    results: dict[int, OutT] = {}
    failures: list[Exception] = []

    with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="spend-rewards") as pool:
        in_flight: dict[Future[OutT], int] = {}

        def _fill() -> None:
            while pending and len(in_flight) < concurrency:
                idx, item = pending.pop()
                in_flight[pool.submit(fn, item)] = idx

        _fill()
        while in_flight:
            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = in_flight.pop(fut)
                exc = fut.exception()
                if exc is None:
                    results[idx] = fut.result()
                    continue
                if stop_on_error:
                    pending.clear()
                    for other in in_flight:
                        other.cancel()
                    raise exc
                if not isinstance(exc, Exception):
                    raise exc
                failures.append(exc)
            _fill()

    if failures:
        raise ExceptionGroup("p_map: one or more calls failed", failures)
    return [results[i] for i in sorted(results)]


__all__ = ["p_map"]
