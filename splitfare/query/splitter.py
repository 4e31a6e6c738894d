"""Split-ticket search: price every candidate split point of a journey.

For each candidate station S on a journey A -> B, the two tickets A -> S and
S -> B are priced with the original fare parameters.  Splits whose combined
price undercuts the through-ticket are collected and ranked by savings.

Candidates are processed one after another; the two leg lookups of a single
candidate run concurrently.  At most two requests are in flight at any time.
A snapshot of the search state is emitted after every candidate so callers
can render progress.
"""

from __future__ import annotations

import datetime
import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor, wait
from typing import Callable, Iterator, Optional

from splitfare.config import (
    ERR_CANCELLED,
    ERR_NO_DEPARTURE,
    ERR_NO_PRICE,
    ERR_NO_STOPOVERS,
    MAX_CONCURRENT_LEG_FETCHES,
)
from splitfare.models import (
    Journey,
    LegPrice,
    SearchParams,
    SplitOption,
    SplitSearchState,
    Station,
    Stopover,
    format_price,
    journey_departure,
    stopover_departure,
)
from splitfare.query.leg_price import fetch_leg_price
from splitfare.query.stopovers import extract_candidates

logger = logging.getLogger(__name__)

# (from_id, to_id, departure, params) -> LegPrice
LegPriceFetcher = Callable[
    [str, str, Optional[datetime.datetime], SearchParams], LegPrice
]
ProgressCallback = Callable[[SplitSearchState], None]


def _rank(splits: list[SplitOption]) -> None:
    """Sort by savings, highest first; ties keep the order they were found in."""
    splits.sort(key=lambda s: s.savings, reverse=True)


def _evaluate_candidate(
    pool: Executor,
    fetch: LegPriceFetcher,
    candidate: Stopover,
    origin: Station,
    destination: Station,
    departure: datetime.datetime,
    params: SearchParams,
    original_price: int,
) -> Optional[SplitOption]:
    """Price both legs of one split; return the option if it saves money."""
    station = candidate.stop

    if not station.id or not origin.id or not destination.id:
        logger.info("Missing station id at %s, skipping", station.name or "?")
        return None

    second_departure = stopover_departure(candidate) or departure

    try:
        first_future = pool.submit(fetch, origin.id, station.id, departure, params)
        second_future = pool.submit(
            fetch, station.id, destination.id, second_departure, params,
        )
        wait([first_future, second_future])
        first = first_future.result()
        second = second_future.result()
    except Exception:
        logger.warning("Error checking split at %s", station.name, exc_info=True)
        return None

    if first.price is None or second.price is None:
        logger.info(
            "Could not price both legs via %s (first: %s, second: %s)",
            station.name,
            "ok" if first.price is not None else "failed",
            "ok" if second.price is not None else "failed",
        )
        return None

    total_price = first.price + second.price
    savings = original_price - total_price
    logger.info(
        "%s: %s + %s = %s (savings %s)",
        station.name,
        format_price(first.price),
        format_price(second.price),
        format_price(total_price),
        format_price(savings),
    )

    if savings <= 0:
        return None

    return SplitOption(
        split_station=station,
        first_leg_price=first.price,
        second_leg_price=second.price,
        total_price=total_price,
        savings=savings,
        savings_percentage=savings / original_price * 100,
        first_leg_journey=first.journey,
        second_leg_journey=second.journey,
    )


def iter_split_search(
    journey: Journey,
    params: SearchParams,
    *,
    fetch: LegPriceFetcher = fetch_leg_price,
    cancel_event: threading.Event | None = None,
) -> Iterator[SplitSearchState]:
    """Run a split search, yielding a state snapshot after every step.

    The last yielded state is the only one with ``loading=False``.  A journey
    without price, departure or candidate split points yields a single
    error state and triggers no lookups.  Setting *cancel_event* stops the
    search before the next candidate is priced.
    """
    original_price = journey.price.amount if journey.price is not None else None
    if not original_price:
        yield SplitSearchState(error=ERR_NO_PRICE)
        return

    departure = journey_departure(journey)
    if departure is None:
        yield SplitSearchState(original_price=original_price, error=ERR_NO_DEPARTURE)
        return

    candidates = extract_candidates(journey)
    if not candidates:
        logger.info("No stopovers found, cannot check split options")
        yield SplitSearchState(original_price=original_price, error=ERR_NO_STOPOVERS)
        return

    origin, destination = journey.origin, journey.destination
    logger.info(
        "Split search %s -> %s departing %s, original price %s, %d candidates",
        origin.name,
        destination.name,
        departure.isoformat(),
        format_price(original_price),
        len(candidates),
    )

    state = SplitSearchState(
        original_price=original_price,
        loading=True,
        total_stations=len(candidates),
    )
    yield state.snapshot()

    splits: list[SplitOption] = []
    with ThreadPoolExecutor(max_workers=MAX_CONCURRENT_LEG_FETCHES) as pool:
        for checked, candidate in enumerate(candidates, 1):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Split search cancelled after %d candidates", checked - 1)
                yield state.snapshot(loading=False, error=ERR_CANCELLED)
                return

            logger.info(
                "Checking split point %d/%d: %s",
                checked,
                len(candidates),
                candidate.stop.name,
            )
            option = _evaluate_candidate(
                pool, fetch, candidate, origin, destination,
                departure, params, original_price,
            )
            if option is not None:
                splits.append(option)
                _rank(splits)

            state = state.snapshot(checked_stations=checked, splits=list(splits))
            yield state

    logger.info(
        "Split search done: %d checked, %d cheaper options",
        state.checked_stations,
        len(splits),
    )
    if splits:
        logger.info(
            "Best saving: %s at %s",
            format_price(splits[0].savings),
            splits[0].split_station.name,
        )
    yield state.snapshot(loading=False, error=None)


def search_splits(
    journey: Journey,
    params: SearchParams,
    *,
    on_progress: ProgressCallback | None = None,
    fetch: LegPriceFetcher = fetch_leg_price,
    cancel_event: threading.Event | None = None,
) -> SplitSearchState:
    """Run a split search to completion and return its final state.

    *on_progress* receives every state, the final one included.
    """
    final = SplitSearchState()
    for state in iter_split_search(
        journey, params, fetch=fetch, cancel_event=cancel_event,
    ):
        if on_progress is not None:
            on_progress(state)
        final = state
    return final
