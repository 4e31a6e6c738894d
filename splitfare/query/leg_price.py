"""Price lookup for one leg of a split journey."""

from __future__ import annotations

import datetime
import logging
from typing import Optional

import requests

from splitfare.config import PRICE_LOOKUP_RESULTS
from splitfare.ingest.db_rest import JourneyQueryError, fetch_journeys
from splitfare.models import LegPrice, SearchParams
from splitfare.query.eligibility import is_journey_fully_eligible

logger = logging.getLogger(__name__)


def fetch_leg_price(
    from_id: str,
    to_id: str,
    departure: Optional[datetime.datetime],
    params: SearchParams,
    *,
    session: requests.Session | None = None,
) -> LegPrice:
    """Return the effective price of the first journey *from_id* -> *to_id*.

    Uses the fare parameters of *params*.  With a Deutschland-Ticket a fully
    eligible journey costs 0, whether or not the API quotes a price.  Never
    raises: every failure (HTTP error, no journeys, no price) yields
    ``LegPrice.missing()``.
    """
    try:
        journeys = fetch_journeys(
            from_id,
            to_id,
            departure,
            params,
            results=PRICE_LOOKUP_RESULTS,
            stopovers=True,
            session=session,
        )
    except JourneyQueryError as exc:
        logger.warning("Price lookup %s -> %s failed: %s", from_id, to_id, exc)
        return LegPrice.missing()
    except Exception:
        logger.exception("Unexpected error in price lookup %s -> %s", from_id, to_id)
        return LegPrice.missing()

    if not journeys:
        logger.info("No journeys found for %s -> %s", from_id, to_id)
        return LegPrice.missing()

    journey = journeys[0]

    if params.deutschland_ticket and is_journey_fully_eligible(journey.legs):
        logger.info("Deutschland-Ticket covers %s -> %s (price 0)", from_id, to_id)
        return LegPrice(price=0, journey=journey)

    amount = journey.price.amount if journey.price is not None else None
    if amount is None:
        logger.info("No price quoted for %s -> %s", from_id, to_id)
        return LegPrice.missing()

    return LegPrice(price=amount, journey=journey)
