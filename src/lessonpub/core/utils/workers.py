"""Order-preserving parallel map over independent per-document work"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def map_ordered(fn: Callable[[T], R], items: Iterable[T], workers: int = 1) -> list[R]:
    """Apply fn to every item and return results in input order.

    workers <= 1 runs inline; otherwise a thread pool is used. Both produce
    the same list.
    """
    items = list(items)
    if workers <= 1 or len(items) <= 1:
        return [fn(item) for item in items]
    logger.debug("Mapping %d item(s) across %d worker(s)", len(items), workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(fn, items))
