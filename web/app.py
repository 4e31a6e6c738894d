"""FastAPI web app for the split-ticket fare finder."""

from __future__ import annotations

import datetime
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Iterator, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from splitfare.config import JOURNEY_SEARCH_RESULTS, LOYALTY_CARDS
from splitfare.ingest.db_rest import (
    JourneyQueryError,
    journey_to_dict,
    parse_journey,
    search_journeys,
    station_to_dict,
)
from splitfare.models import Journey, SearchParams, SplitOption, SplitSearchState
from splitfare.query.eligibility import is_journey_fully_eligible
from splitfare.query.splitter import iter_split_search, search_splits

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s: %(message)s")
    logger.info("Starting Split Ticket Finder web app")
    yield


app = FastAPI(title="Split Ticket Finder", version="0.1.0", lifespan=lifespan)


# ── Pydantic request/response models ────────────────────────────────


class SearchParamsIn(BaseModel):
    origin_id: str
    destination_id: str
    departure: Optional[str] = None  # ISO 8601
    age: Optional[int] = None
    deutschland_ticket: bool = False
    first_class: bool = False
    loyalty_card: Optional[str] = None


class SplitRequest(BaseModel):
    journey: dict[str, Any]  # journey object as returned by /api/journeys
    params: SearchParamsIn


class JourneyOut(BaseModel):
    journey: dict[str, Any]
    deutschland_ticket_eligible: bool


class JourneysResponse(BaseModel):
    journeys: list[JourneyOut]


class SplitOptionOut(BaseModel):
    split_station: dict[str, Any]
    first_leg_price: int
    second_leg_price: int
    total_price: int
    savings: int
    savings_percentage: float
    first_leg_journey: Optional[dict[str, Any]] = None
    second_leg_journey: Optional[dict[str, Any]] = None


class SplitStateOut(BaseModel):
    original_price: int
    splits: list[SplitOptionOut]
    loading: bool
    error: Optional[str]
    checked_stations: int
    total_stations: int


# ── Conversion helpers ───────────────────────────────────────────────


def _parse_departure(value: Optional[str]) -> Optional[datetime.datetime]:
    if not value:
        return None
    try:
        return datetime.datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(400, f"Invalid departure: {value}")


def _to_params(req: SearchParamsIn) -> SearchParams:
    if req.loyalty_card is not None and req.loyalty_card not in LOYALTY_CARDS:
        raise HTTPException(400, f"Unknown loyalty card: {req.loyalty_card}")
    return SearchParams(
        origin_id=req.origin_id,
        destination_id=req.destination_id,
        departure=_parse_departure(req.departure),
        age=req.age,
        deutschland_ticket=req.deutschland_ticket,
        first_class=req.first_class,
        loyalty_card=req.loyalty_card,
    )


def _to_journey(raw: dict[str, Any]) -> Journey:
    try:
        return parse_journey(raw)
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(400, f"Invalid journey: {e}")


def _serialize_option(option: SplitOption) -> SplitOptionOut:
    return SplitOptionOut(
        split_station=station_to_dict(option.split_station),
        first_leg_price=option.first_leg_price,
        second_leg_price=option.second_leg_price,
        total_price=option.total_price,
        savings=option.savings,
        savings_percentage=round(option.savings_percentage, 2),
        first_leg_journey=journey_to_dict(option.first_leg_journey) if option.first_leg_journey else None,
        second_leg_journey=journey_to_dict(option.second_leg_journey) if option.second_leg_journey else None,
    )


def _serialize_state(state: SplitSearchState) -> SplitStateOut:
    return SplitStateOut(
        original_price=state.original_price,
        splits=[_serialize_option(s) for s in state.splits],
        loading=state.loading,
        error=state.error,
        checked_stations=state.checked_stations,
        total_stations=state.total_stations,
    )


# ── API endpoints ────────────────────────────────────────────────────


@app.get("/api/journeys", response_model=JourneysResponse)
def journeys(
    origin_id: str = Query(..., alias="from"),
    destination_id: str = Query(..., alias="to"),
    departure: Optional[str] = None,
    age: Optional[int] = None,
    deutschland_ticket: bool = False,
    first_class: bool = False,
    loyalty_card: Optional[str] = None,
    results: int = JOURNEY_SEARCH_RESULTS,
):
    """Search journeys between two stations."""
    params = _to_params(SearchParamsIn(
        origin_id=origin_id,
        destination_id=destination_id,
        departure=departure,
        age=age,
        deutschland_ticket=deutschland_ticket,
        first_class=first_class,
        loyalty_card=loyalty_card,
    ))
    try:
        found = search_journeys(params, results=results)
    except JourneyQueryError as e:
        logger.warning("Journey search failed: %s", e)
        raise HTTPException(502, str(e))

    return JourneysResponse(journeys=[
        JourneyOut(
            journey=journey_to_dict(j),
            deutschland_ticket_eligible=params.deutschland_ticket and is_journey_fully_eligible(j.legs),
        )
        for j in found
    ])


@app.post("/api/split", response_model=SplitStateOut)
def split(req: SplitRequest):
    """Run a split search and return its final state."""
    journey = _to_journey(req.journey)
    params = _to_params(req.params)
    return _serialize_state(search_splits(journey, params))


@app.post("/api/split/stream")
def split_stream(req: SplitRequest):
    """Run a split search, streaming every state as one NDJSON line."""
    journey = _to_journey(req.journey)
    params = _to_params(req.params)

    def lines() -> Iterator[str]:
        for state in iter_split_search(journey, params):
            yield json.dumps(_serialize_state(state).model_dump()) + "\n"

    return StreamingResponse(lines(), media_type="application/x-ndjson")
