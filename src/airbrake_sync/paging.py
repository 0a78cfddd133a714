"""Page walks over time-ordered collections.

Airbrake has no server-side date filter, so windowed reads walk pages from the
newest end and stop as soon as a page proves the window is behind them.

Precondition: every collection walked here is ordered by descending recency
(newest first) and the items inside the window form one contiguous run at the
head of the collection. If the server breaks that ordering the result may miss
or include items, but the walk still terminates on an empty page, a page with
any out-of-window item, or `max_pages`.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterator, Sequence, TypeVar

T = TypeVar("T")

FetchPage = Callable[[int], Sequence[T]]

logger = logging.getLogger(__name__)


def in_window(ts: datetime | None, since: datetime, to: datetime) -> bool:
    """True for `since < ts <= to`. Items without a timestamp are outside."""
    if ts is None:
        return False
    return since < ts <= to


def partition(
    items: Sequence[T],
    timestamp_of: Callable[[T], datetime | None],
    since: datetime,
    to: datetime,
) -> tuple[list[T], list[T]]:
    inside: list[T] = []
    outside: list[T] = []
    for item in items:
        (inside if in_window(timestamp_of(item), since, to) else outside).append(item)
    return inside, outside


def collect_window(
    fetch_page: FetchPage[T],
    timestamp_of: Callable[[T], datetime | None],
    *,
    since: datetime,
    to: datetime,
    per_page: int,
    max_pages: int | None = None,
) -> list[T]:
    """
    Return every item with a timestamp in `(since, to]`, walking from page 1.

    The walk ends on an empty page, or on the first page holding fewer than
    `per_page` in-window items: with newest-first ordering, that page already
    reached past `since`, so later pages cannot contain anything in the window.
    `to` is fixed by the caller for the whole walk.
    """
    collected: list[T] = []
    page = 1
    while True:
        if max_pages is not None and page > max_pages:
            logger.warning(
                "Stopped window walk at max_pages=%d; collection may be unordered",
                max_pages,
            )
            break

        batch = fetch_page(page)
        if not batch:
            logger.debug("page %d empty; window walk done", page)
            break

        inside, _ = partition(batch, timestamp_of, since, to)
        collected.extend(inside)
        logger.debug("page %d: %d/%d items in window", page, len(inside), len(batch))

        if len(inside) < per_page:
            break
        page += 1

    return collected


def walk_pages(
    fetch_page: FetchPage[T],
    *,
    per_page: int,
    start_page: int = 1,
    pages: int | None = None,
) -> Iterator[list[T]]:
    """Yield pages from `start_page` until a short page or `pages` pages."""
    count = 0
    while pages is None or count < pages:
        batch = list(fetch_page(start_page + count))
        yield batch
        if len(batch) < per_page:
            break
        count += 1
