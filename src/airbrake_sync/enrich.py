from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Callable, Sequence, TypeVar

S = TypeVar("S")
R = TypeVar("R")

logger = logging.getLogger(__name__)


def fetch_details(
    stubs: Sequence[S],
    fetch_one: Callable[[S], R],
    *,
    workers: int,
) -> list[R]:
    """
    Run `fetch_one` for every stub on up to `workers` threads.

    `result[i]` always belongs to `stubs[i]`, whatever order the fetches finish
    in. The batch succeeds or fails as a unit: the first exception cancels the
    fetches that have not started yet and is re-raised.
    """
    if workers < 1:
        raise ValueError("workers must be >= 1")
    if not stubs:
        return []

    slots: list[R | None] = [None] * len(stubs)
    executor = ThreadPoolExecutor(
        max_workers=min(workers, len(stubs)), thread_name_prefix="airbrake-detail"
    )
    try:
        futures: dict[Future[R], int] = {
            executor.submit(fetch_one, stub): index for index, stub in enumerate(stubs)
        }
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        for future in done:
            error = future.exception()
            if error is not None:
                logger.debug("detail fetch %d failed; aborting batch", futures[future])
                raise error
        for future, index in futures.items():
            slots[index] = future.result()
    finally:
        executor.shutdown(wait=True, cancel_futures=True)

    return slots  # type: ignore[return-value]
