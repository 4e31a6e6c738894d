"""Client for the DB journey-planning REST API (``v6.db.transport.rest``).

Builds ``/journeys`` queries from :class:`SearchParams` and parses the
HAFAS-style JSON response into :mod:`splitfare.models` objects.  Timestamps
are ISO 8601 strings with a UTC offset upstream and timezone-aware
``datetime`` objects here.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any, Optional

import requests

from splitfare.config import (
    DB_REST_URL,
    DEFAULT_CURRENCY,
    JOURNEY_SEARCH_RESULTS,
    JOURNEYS_PATH,
    REQUEST_TIMEOUT_S,
)
from splitfare.models import (
    Journey,
    JourneyLeg,
    Line,
    Location,
    Price,
    Remark,
    RemarkEntry,
    SearchParams,
    Station,
    Stopover,
)

logger = logging.getLogger(__name__)


class JourneyQueryError(RuntimeError):
    """The planning API could not answer a journey query."""


# ── Query building ────────────────────────────────────────────────────


def build_journey_query(
    from_id: str,
    to_id: str,
    departure: Optional[datetime.datetime],
    params: SearchParams,
    *,
    results: int = JOURNEY_SEARCH_RESULTS,
    stopovers: bool = True,
) -> dict[str, str]:
    """Return the ``/journeys`` query string parameters.

    Only ``from``, ``to`` and ``departure`` come from the arguments; the fare
    parameters (age, Deutschland-Ticket, class, loyalty card) always come
    from *params*.  Flags are only sent when set.
    """
    query = {
        "from": from_id,
        "to": to_id,
        "results": str(results),
        "stopovers": "true" if stopovers else "false",
        "tickets": "true",
    }
    if departure is not None:
        query["departure"] = departure.isoformat()
    if params.age is not None:
        query["age"] = str(params.age)
    if params.deutschland_ticket:
        query["deutschlandTicketDiscount"] = "true"
    if params.first_class:
        query["firstClass"] = "true"
    if params.loyalty_card:
        query["loyaltyCard"] = params.loyalty_card
    return query


# ── HTTP ──────────────────────────────────────────────────────────────


def fetch_journeys(
    from_id: str,
    to_id: str,
    departure: Optional[datetime.datetime],
    params: SearchParams,
    *,
    results: int = JOURNEY_SEARCH_RESULTS,
    stopovers: bool = True,
    session: requests.Session | None = None,
) -> list[Journey]:
    """Query the planning API and return the parsed journeys.

    Raises :class:`JourneyQueryError` on a non-success status, a network
    failure or a payload that is not a JSON object with a ``journeys``
    list.  Individual journeys that cannot be parsed are skipped with a
    warning.
    """
    query = build_journey_query(
        from_id, to_id, departure, params, results=results, stopovers=stopovers,
    )
    url = f"{DB_REST_URL}{JOURNEYS_PATH}"
    http = session or requests

    try:
        response = http.get(url, params=query, timeout=REQUEST_TIMEOUT_S)
    except requests.RequestException as exc:
        raise JourneyQueryError(
            f"Journey query {from_id} -> {to_id} failed: {exc}"
        ) from exc

    if not response.ok:
        raise JourneyQueryError(
            f"Journey query {from_id} -> {to_id} returned HTTP {response.status_code}"
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise JourneyQueryError(
            f"Journey query {from_id} -> {to_id} returned invalid JSON"
        ) from exc

    raw_journeys = (data.get("journeys") or []) if isinstance(data, dict) else None
    if not isinstance(raw_journeys, list):
        raise JourneyQueryError(
            f"Journey query {from_id} -> {to_id} returned a malformed payload"
        )

    journeys: list[Journey] = []
    for raw in raw_journeys:
        try:
            journeys.append(parse_journey(raw))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed journey %s -> %s: %s", from_id, to_id, exc)

    logger.debug("Journey query %s -> %s: %d journeys", from_id, to_id, len(journeys))
    return journeys


def search_journeys(
    params: SearchParams,
    *,
    results: int = JOURNEY_SEARCH_RESULTS,
    session: requests.Session | None = None,
) -> list[Journey]:
    """Run the user's journey search (with stopovers, so it can be split)."""
    return fetch_journeys(
        params.origin_id,
        params.destination_id,
        params.departure,
        params,
        results=results,
        stopovers=True,
        session=session,
    )


# ── Response parsing ──────────────────────────────────────────────────


def _require_dict(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{what} is not an object: {value!r}")
    return value


def parse_timestamp(value: Optional[str]) -> Optional[datetime.datetime]:
    """Parse an ISO 8601 timestamp; ``None`` or empty yields ``None``."""
    if not value:
        return None
    if not isinstance(value, str):
        raise ValueError(f"timestamp is not a string: {value!r}")
    return datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))


def parse_station(data: Optional[dict[str, Any]]) -> Station:
    if not data:
        return Station(id=None, name="")
    _require_dict(data, "station")
    location = None
    loc = data.get("location")
    if isinstance(loc, dict) and loc.get("latitude") is not None and loc.get("longitude") is not None:
        location = Location(latitude=float(loc["latitude"]), longitude=float(loc["longitude"]))
    return Station(
        id=data.get("id") or None,
        name=data.get("name") or data.get("address") or "",
        type=data.get("type") or "station",
        location=location,
    )


def parse_remarks(raw: Optional[list[Any]]) -> list[RemarkEntry]:
    remarks: list[RemarkEntry] = []
    for item in raw or []:
        if isinstance(item, str):
            remarks.append(item)
        elif isinstance(item, dict):
            remarks.append(
                Remark(
                    code=item.get("code"),
                    summary=item.get("summary"),
                    text=item.get("text"),
                    type=item.get("type"),
                    priority=item.get("priority"),
                )
            )
    return remarks


def parse_line(data: Optional[dict[str, Any]]) -> Optional[Line]:
    if data is None:
        return None
    _require_dict(data, "line")
    return Line(
        name=data.get("name") or "",
        type=data.get("type") or "line",
        product=data.get("product"),
        product_name=data.get("productName"),
    )


def parse_stopover(data: dict[str, Any]) -> Stopover:
    _require_dict(data, "stopover")
    return Stopover(
        stop=parse_station(data.get("stop")),
        arrival=parse_timestamp(data.get("arrival")),
        planned_arrival=parse_timestamp(data.get("plannedArrival")),
        departure=parse_timestamp(data.get("departure")),
        planned_departure=parse_timestamp(data.get("plannedDeparture")),
    )


def parse_leg(data: dict[str, Any]) -> JourneyLeg:
    _require_dict(data, "leg")
    return JourneyLeg(
        origin=parse_station(data.get("origin")),
        destination=parse_station(data.get("destination")),
        departure=parse_timestamp(data.get("departure")),
        planned_departure=parse_timestamp(data.get("plannedDeparture")),
        arrival=parse_timestamp(data.get("arrival")),
        planned_arrival=parse_timestamp(data.get("plannedArrival")),
        line=parse_line(data.get("line")),
        stopovers=[parse_stopover(s) for s in data.get("stopovers") or []],
        remarks=parse_remarks(data.get("remarks")),
        trip_id=data.get("tripId"),
        walking=bool(data.get("walking", False)),
    )


def parse_price(data: Optional[dict[str, Any]]) -> Optional[Price]:
    """Parse a journey price.

    The REST wrapper reports ``amount`` in euros (e.g. ``29.99``); it is
    converted to cents here so all arithmetic stays in integers.
    """
    if not data:
        return None
    if _require_dict(data, "price").get("amount") is None:
        return None
    return Price(
        amount=round(float(data["amount"]) * 100),
        currency=data.get("currency") or DEFAULT_CURRENCY,
    )


def parse_journey(data: dict[str, Any]) -> Journey:
    """Parse one journey object; raises ``ValueError`` if it has no legs."""
    _require_dict(data, "journey")
    legs = [parse_leg(leg) for leg in data.get("legs") or []]
    if not legs:
        raise ValueError("journey has no legs")
    return Journey(
        legs=legs,
        price=parse_price(data.get("price")),
        remarks=parse_remarks(data.get("remarks")),
        refresh_token=data.get("refreshToken"),
    )


# ── Serialization (models -> API-shaped JSON) ─────────────────────────


def _timestamp(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def station_to_dict(station: Station) -> dict[str, Any]:
    data: dict[str, Any] = {"type": station.type, "id": station.id, "name": station.name}
    if station.location is not None:
        data["location"] = {
            "type": "location",
            "latitude": station.location.latitude,
            "longitude": station.location.longitude,
        }
    return data


def _remarks_to_list(remarks: list[RemarkEntry]) -> list[Any]:
    out: list[Any] = []
    for remark in remarks:
        if isinstance(remark, str):
            out.append(remark)
        else:
            out.append({
                k: v for k, v in (
                    ("code", remark.code),
                    ("summary", remark.summary),
                    ("text", remark.text),
                    ("type", remark.type),
                    ("priority", remark.priority),
                ) if v is not None
            })
    return out


def journey_to_dict(journey: Journey) -> dict[str, Any]:
    """Inverse of :func:`parse_journey`, in the planning API's JSON shape."""
    legs = []
    for leg in journey.legs:
        raw: dict[str, Any] = {
            "origin": station_to_dict(leg.origin),
            "destination": station_to_dict(leg.destination),
            "departure": _timestamp(leg.departure),
            "plannedDeparture": _timestamp(leg.planned_departure),
            "arrival": _timestamp(leg.arrival),
            "plannedArrival": _timestamp(leg.planned_arrival),
            "remarks": _remarks_to_list(leg.remarks),
        }
        if leg.line is not None:
            raw["line"] = {
                "type": leg.line.type,
                "name": leg.line.name,
                "product": leg.line.product,
                "productName": leg.line.product_name,
            }
        if leg.walking:
            raw["walking"] = True
        if leg.trip_id:
            raw["tripId"] = leg.trip_id
        if leg.stopovers:
            raw["stopovers"] = [
                {
                    "stop": station_to_dict(s.stop),
                    "arrival": _timestamp(s.arrival),
                    "plannedArrival": _timestamp(s.planned_arrival),
                    "departure": _timestamp(s.departure),
                    "plannedDeparture": _timestamp(s.planned_departure),
                }
                for s in leg.stopovers
            ]
        legs.append(raw)

    data: dict[str, Any] = {
        "type": "journey",
        "legs": legs,
        "remarks": _remarks_to_list(journey.remarks),
    }
    if journey.price is not None and journey.price.amount is not None:
        data["price"] = {
            "amount": journey.price.amount / 100,
            "currency": journey.price.currency,
        }
    if journey.refresh_token:
        data["refreshToken"] = journey.refresh_token
    return data
