"""CLI entry point for the split-ticket fare finder."""

from __future__ import annotations

import datetime
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn

from splitfare.config import JOURNEY_SEARCH_RESULTS, LOYALTY_CARDS
from splitfare.ingest.db_rest import JourneyQueryError, search_journeys
from splitfare.models import Journey, SearchParams, SplitSearchState
from splitfare.output.cli_formatter import (
    print_journey,
    print_no_results,
    print_search_header,
    print_split_result,
)
from splitfare.query.splitter import search_splits

app = typer.Typer(help="Split Ticket Finder: find cheaper fares by splitting a train journey.")
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_departure(value: Optional[str]) -> Optional[datetime.datetime]:
    """Parse an ISO 8601 departure such as ``2026-03-01T08:30``."""
    if value is None:
        return None
    try:
        return datetime.datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid departure: '{value}'. Use YYYY-MM-DDTHH:MM.")


def _build_params(
    origin: str,
    destination: str,
    departure: Optional[str],
    age: Optional[int],
    deutschland_ticket: bool,
    first_class: bool,
    loyalty_card: Optional[str],
) -> SearchParams:
    if loyalty_card is not None and loyalty_card not in LOYALTY_CARDS:
        known = ", ".join(LOYALTY_CARDS)
        raise typer.BadParameter(f"Unknown loyalty card '{loyalty_card}'. Known cards: {known}")
    return SearchParams(
        origin_id=origin,
        destination_id=destination,
        departure=_parse_departure(departure),
        age=age,
        deutschland_ticket=deutschland_ticket,
        first_class=first_class,
        loyalty_card=loyalty_card,
    )


def _search(params: SearchParams, results: int, verbose: bool) -> list[Journey]:
    try:
        with console.status("Searching journeys...", spinner="dots"):
            return search_journeys(params, results=results)
    except JourneyQueryError as e:
        console.print(f"[red]Error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)


@app.command()
def journeys(
    origin: str = typer.Argument(..., help="Origin station id (e.g. 8010085)"),
    destination: str = typer.Argument(..., help="Destination station id (e.g. 8000261)"),
    departure: Optional[str] = typer.Option(None, "--departure", "-d", help="Departure (YYYY-MM-DDTHH:MM)"),
    age: Optional[int] = typer.Option(None, "--age", help="Traveller age"),
    deutschland_ticket: bool = typer.Option(False, "--deutschland-ticket", "-D", help="Traveller holds a Deutschland-Ticket"),
    first_class: bool = typer.Option(False, "--first-class", help="Price 1st class"),
    loyalty_card: Optional[str] = typer.Option(None, "--loyalty-card", help="Loyalty card code (e.g. bahncard-2nd-25)"),
    results: int = typer.Option(JOURNEY_SEARCH_RESULTS, "--results", "-n", help="Number of journeys"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """List journeys with prices and Deutschland-Ticket eligibility."""
    _setup_logging(verbose)
    params = _build_params(origin, destination, departure, age, deutschland_ticket, first_class, loyalty_card)

    found = _search(params, results, verbose)
    if not found:
        print_no_results(params)
        raise typer.Exit(0)

    print_search_header(params, len(found))
    for i, journey in enumerate(found, 1):
        print_journey(i, journey, params)


@app.command()
def split(
    origin: str = typer.Argument(..., help="Origin station id (e.g. 8010085)"),
    destination: str = typer.Argument(..., help="Destination station id (e.g. 8000261)"),
    departure: Optional[str] = typer.Option(None, "--departure", "-d", help="Departure (YYYY-MM-DDTHH:MM)"),
    age: Optional[int] = typer.Option(None, "--age", help="Traveller age"),
    deutschland_ticket: bool = typer.Option(False, "--deutschland-ticket", "-D", help="Traveller holds a Deutschland-Ticket"),
    first_class: bool = typer.Option(False, "--first-class", help="Price 1st class"),
    loyalty_card: Optional[str] = typer.Option(None, "--loyalty-card", help="Loyalty card code (e.g. bahncard-2nd-25)"),
    index: int = typer.Option(1, "--index", "-i", help="Which journey of the search to split (1-based)"),
    results: int = typer.Option(JOURNEY_SEARCH_RESULTS, "--results", "-n", help="Number of journeys to search"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Search journeys, then look for cheaper split tickets on one of them."""
    _setup_logging(verbose)
    params = _build_params(origin, destination, departure, age, deutschland_ticket, first_class, loyalty_card)

    found = _search(params, results, verbose)
    if not found:
        print_no_results(params)
        raise typer.Exit(0)

    if not 1 <= index <= len(found):
        console.print(f"[red]Error:[/red] --index must be between 1 and {len(found)}.")
        raise typer.Exit(1)

    journey = found[index - 1]
    print_journey(index, journey, params)

    with Progress(
        TextColumn("Checking split points"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("split", total=None)

        def on_progress(state: SplitSearchState) -> None:
            progress.update(task, completed=state.checked_stations, total=state.total_stations or None)

        final = search_splits(journey, params, on_progress=on_progress)

    print_split_result(final, journey)


if __name__ == "__main__":
    app()
