"""Core data structures for the split-ticket fare finder."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from typing import Optional, Union

from splitfare.config import DEFAULT_CURRENCY


@dataclass
class Remark:
    """A HAFAS remark (hint, warning, fare annotation)."""
    code: Optional[str] = None
    summary: Optional[str] = None
    text: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[int] = None


# Upstream remarks arrive either as plain strings or as structured objects
RemarkEntry = Union[str, Remark]


@dataclass
class Location:
    latitude: float
    longitude: float


@dataclass
class Station:
    """A stop or station. ``id`` is required to use it as a search endpoint."""
    id: Optional[str]
    name: str
    type: str = "station"
    location: Optional[Location] = None


@dataclass
class Line:
    """Transport product a leg runs on (ICE 599, RE 1, Bus 100, ...)."""
    name: str
    type: str = "line"
    product: Optional[str] = None       # e.g. "nationalExpress", "regional"
    product_name: Optional[str] = None  # e.g. "ICE", "RE", "Bus"


@dataclass
class Stopover:
    """A station passed on a journey with its arrival/departure times there."""
    stop: Station
    arrival: Optional[datetime.datetime] = None
    planned_arrival: Optional[datetime.datetime] = None
    departure: Optional[datetime.datetime] = None
    planned_departure: Optional[datetime.datetime] = None


@dataclass
class JourneyLeg:
    """One uninterrupted ride or walk. No ``line`` means a walking segment."""
    origin: Station
    destination: Station
    departure: Optional[datetime.datetime] = None
    planned_departure: Optional[datetime.datetime] = None
    arrival: Optional[datetime.datetime] = None
    planned_arrival: Optional[datetime.datetime] = None
    line: Optional[Line] = None
    stopovers: list[Stopover] = field(default_factory=list)
    remarks: list[RemarkEntry] = field(default_factory=list)
    trip_id: Optional[str] = None
    walking: bool = False


@dataclass
class Price:
    amount: Optional[int]  # minor units (cents)
    currency: str = DEFAULT_CURRENCY


def format_price(cents: Optional[int], currency: str = DEFAULT_CURRENCY) -> str:
    """Format minor units as ``12.34 EUR``; unknown prices render as ``-``."""
    if cents is None:
        return "-"
    return f"{cents / 100:.2f} {currency}"


@dataclass
class Journey:
    """A complete connection: contiguous legs plus the through-ticket price."""
    legs: list[JourneyLeg]
    price: Optional[Price] = None
    remarks: list[RemarkEntry] = field(default_factory=list)
    refresh_token: Optional[str] = None

    @property
    def origin(self) -> Station:
        return self.legs[0].origin

    @property
    def destination(self) -> Station:
        return self.legs[-1].destination


@dataclass(frozen=True)
class SearchParams:
    """The query that produced a journey.

    Split search re-queries every leg with the same fare parameters (age,
    Deutschland-Ticket, class, loyalty card) so compared prices match.
    """
    origin_id: str
    destination_id: str
    departure: Optional[datetime.datetime] = None
    age: Optional[int] = None
    deutschland_ticket: bool = False
    first_class: bool = False
    loyalty_card: Optional[str] = None


@dataclass(frozen=True)
class LegPrice:
    """Result of a single leg price lookup. ``price is None`` means no data."""
    price: Optional[int]
    journey: Optional[Journey]

    @classmethod
    def missing(cls) -> LegPrice:
        return cls(price=None, journey=None)


@dataclass
class SplitOption:
    """One profitable split at ``split_station``."""
    split_station: Station
    first_leg_price: int
    second_leg_price: int
    total_price: int
    savings: int
    savings_percentage: float
    first_leg_journey: Optional[Journey] = None
    second_leg_journey: Optional[Journey] = None


@dataclass
class SplitSearchState:
    """Snapshot of a running (or finished) split search."""
    original_price: int = 0
    splits: list[SplitOption] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    checked_stations: int = 0
    total_stations: int = 0

    def snapshot(self, **changes) -> SplitSearchState:
        """Return a copy with *changes* applied and its own ``splits`` list."""
        changes.setdefault("splits", list(self.splits))
        return replace(self, **changes)


# ── Timestamp accessors (actual time first, planned as fallback) ──────


def leg_departure(leg: JourneyLeg) -> Optional[datetime.datetime]:
    return leg.departure or leg.planned_departure


def leg_arrival(leg: JourneyLeg) -> Optional[datetime.datetime]:
    return leg.arrival or leg.planned_arrival


def stopover_departure(stopover: Stopover) -> Optional[datetime.datetime]:
    return stopover.departure or stopover.planned_departure


def stopover_arrival(stopover: Stopover) -> Optional[datetime.datetime]:
    return stopover.arrival or stopover.planned_arrival


def journey_departure(journey: Journey) -> Optional[datetime.datetime]:
    """Effective departure of the whole journey (its first leg)."""
    if not journey.legs:
        return None
    return leg_departure(journey.legs[0])


def journey_arrival(journey: Journey) -> Optional[datetime.datetime]:
    if not journey.legs:
        return None
    return leg_arrival(journey.legs[-1])
