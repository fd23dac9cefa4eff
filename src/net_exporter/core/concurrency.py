"""
Fan-out / join helper

Runs one thread per item and returns only once every item has finished.
"""

import contextvars
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")


def fan_out(
    func: Callable[[T], None],
    items: Iterable[T],
    thread_name_prefix: str = "fan-out",
) -> List[Tuple[T, Optional[BaseException]]]:
    """
    Call ``func(item)`` for every item concurrently and wait for all of them.

    Each call runs in its own thread with a copy of the caller's context, so
    context variables (the scrape id) are visible to the worker. An exception
    raised by one call never reaches the others; it is returned next to its
    item instead (``None`` means the call succeeded). Results keep the input
    order.
    """
    items = list(items)
    if not items:
        return []

    with ThreadPoolExecutor(
        max_workers=len(items),
        thread_name_prefix=thread_name_prefix,
    ) as executor:
        futures = [
            executor.submit(contextvars.copy_context().run, func, item)
            for item in items
        ]
        wait(futures)

    return [(item, future.exception()) for item, future in zip(items, futures)]
