"""Worker-pool helpers for data-parallel prover work.

Everything handed to these helpers is independent (columns, leaves,
constraints, queries). The transcript never is.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def resolve_workers(num_workers: Optional[int]) -> int:
    """Worker count to use: the configured value, or the CPU count when unset."""
    if num_workers is None:
        return os.cpu_count() or 1
    if num_workers < 1:
        raise ValueError(f"num_workers must be positive, got {num_workers}")
    return num_workers


def parallel_map(fn: Callable[[T], R], items: Sequence[T], num_workers: Optional[int] = None) -> List[R]:
    """Apply fn to every item on a thread pool, preserving order."""
    items = list(items)
    workers = resolve_workers(num_workers)
    if workers == 1 or len(items) <= 1:
        return [fn(item) for item in items]
    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as executor:
        return list(executor.map(fn, items))


def batch_ranges(n: int, num_workers: Optional[int] = None, min_batch: int = 64) -> List[Tuple[int, int]]:
    """Split range(n) into contiguous (start, end) batches, about four per worker."""
    workers = resolve_workers(num_workers)
    batch_size = max(min_batch, n // (workers * 4) if workers > 0 else n)
    return [(i, min(i + batch_size, n)) for i in range(0, n, batch_size)]
