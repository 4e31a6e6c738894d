"""Deutschland-Ticket eligibility of journey legs.

The authoritative signal is the ``9G`` remark HAFAS attaches to covered
legs.  Not every upstream journey carries it, so legs without the remark
fall back to a product heuristic (regional / suburban trains and buses).
The heuristic is permissive and can disagree with the remark, e.g. for
long-distance buses.
"""

from __future__ import annotations

from typing import Iterable

from splitfare.config import (
    DEUTSCHLANDTICKET_REMARK_CODE,
    ELIGIBLE_PRODUCT_NAMES,
    ELIGIBLE_PRODUCTS,
)
from splitfare.models import JourneyLeg, Remark


def _has_ticket_remark(leg: JourneyLeg) -> bool:
    return any(
        isinstance(remark, Remark) and remark.code == DEUTSCHLANDTICKET_REMARK_CODE
        for remark in leg.remarks
    )


def is_leg_eligible(leg: JourneyLeg) -> bool:
    """Return True if *leg* can be ridden on a Deutschland-Ticket.

    Walking segments (no ``line``) are always eligible.
    """
    if _has_ticket_remark(leg):
        return True
    if leg.line is None:
        return True
    return (
        leg.line.product in ELIGIBLE_PRODUCTS
        or leg.line.product_name in ELIGIBLE_PRODUCT_NAMES
    )


def is_journey_fully_eligible(legs: Iterable[JourneyLeg]) -> bool:
    """True iff every leg with a line is eligible (walking legs pass)."""
    return all(leg.line is None or is_leg_eligible(leg) for leg in legs)


def effective_leg_price(leg: JourneyLeg, price: int, has_pass: bool) -> int:
    """Price actually paid for *leg*: 0 when the pass covers it."""
    if has_pass and is_leg_eligible(leg):
        return 0
    return price
