"""Candidate split points of a journey."""

from __future__ import annotations

import logging

from splitfare.models import Journey, Stopover

logger = logging.getLogger(__name__)


def extract_candidates(journey: Journey) -> list[Stopover]:
    """Return the stations a journey could be split at, in a fixed order.

    First the intermediate stopovers of every leg (the first and last
    stopover of a leg repeat its origin/destination and are dropped), then
    one synthetic stopover per transfer between consecutive legs: arrival
    from the incoming leg, departure from the outgoing one.
    """
    candidates: list[Stopover] = []

    for leg in journey.legs:
        candidates.extend(leg.stopovers[1:-1])

    for incoming, outgoing in zip(journey.legs, journey.legs[1:]):
        candidates.append(
            Stopover(
                stop=incoming.destination,
                arrival=incoming.arrival,
                planned_arrival=incoming.planned_arrival,
                departure=outgoing.departure,
                planned_departure=outgoing.planned_departure,
            )
        )

    logger.debug(
        "%d candidate split points in a %d-leg journey",
        len(candidates),
        len(journey.legs),
    )
    return candidates
