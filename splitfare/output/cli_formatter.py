"""Rich CLI output for journeys and split-ticket results."""

from __future__ import annotations

import datetime
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from splitfare.models import (
    Journey,
    JourneyLeg,
    Remark,
    SearchParams,
    SplitOption,
    SplitSearchState,
    format_price,
    journey_arrival,
    journey_departure,
    leg_arrival,
    leg_departure,
)
from splitfare.query.eligibility import is_journey_fully_eligible

console = Console()


# ── Formatting helpers ────────────────────────────────────────────────

def format_time(value: Optional[datetime.datetime]) -> str:
    return value.strftime("%H:%M") if value is not None else "??:??"


def remark_text(remark) -> str:
    if isinstance(remark, Remark):
        return remark.text or remark.summary or ""
    return str(remark)


def has_deutschland_ticket_badge(journey: Journey, params: SearchParams) -> bool:
    """Badge only shown when the user searched with a Deutschland-Ticket."""
    return params.deutschland_ticket and is_journey_fully_eligible(journey.legs)


# ── Output functions ──────────────────────────────────────────────────

def print_search_header(params: SearchParams, n_results: int) -> None:
    """Print a summary panel of the query parameters."""
    departure = params.departure.strftime("%a %d %b %Y, %H:%M") if params.departure else "now"
    extras = []
    if params.deutschland_ticket:
        extras.append("Deutschland-Ticket")
    if params.first_class:
        extras.append("1st class")
    if params.loyalty_card:
        extras.append(params.loyalty_card)
    if params.age is not None:
        extras.append(f"age {params.age}")
    lines = [
        f"From:      {params.origin_id}",
        f"To:        {params.destination_id}",
        f"Departure: {departure}",
        f"Fares:     {', '.join(extras) if extras else 'standard'}",
        f"Results:   {n_results} journeys found",
    ]
    console.print(Panel("\n".join(lines), title="Split Ticket Finder", border_style="blue"))


def _format_leg(leg: JourneyLeg) -> str:
    label = leg.line.name if leg.line is not None else "Walk"
    return (
        f"  [bold]{label:<10}[/bold] {format_time(leg_departure(leg))} {leg.origin.name}"
        f" -> {format_time(leg_arrival(leg))} {leg.destination.name}"
    )


def print_journey(idx: int, journey: Journey, params: SearchParams) -> None:
    """Print one journey: times, price, legs and remarks."""
    price = journey.price.amount if journey.price is not None else None
    currency = journey.price.currency if journey.price is not None else "EUR"
    header = (
        f"[bold]{format_time(journey_departure(journey))}"
        f" -> {format_time(journey_arrival(journey))}[/bold]"
        f"   {format_price(price, currency)}"
    )
    if has_deutschland_ticket_badge(journey, params):
        header += "   [bold green]✓ Deutschland-Ticket[/bold green]"

    parts = [header, ""]
    parts.extend(_format_leg(leg) for leg in journey.legs if leg.line is not None)

    remarks = [remark_text(r) for r in journey.remarks]
    for text in filter(None, remarks):
        parts.append(f"[bold red]{text}[/bold red]")

    console.print(
        Panel(
            "\n".join(parts),
            title=f"#{idx}  {journey.origin.name} -> {journey.destination.name}",
            border_style="cyan",
        )
    )


def print_split_option(rank: int, option: SplitOption, journey: Journey, original_price: int) -> None:
    station = option.split_station.name
    lines = [
        f"[bold green]Save {format_price(option.savings)}[/bold green]"
        f" ({option.savings_percentage:.1f}% cheaper)",
        f"Total {format_price(option.total_price)}  [dim](instead of {format_price(original_price)})[/dim]",
        "",
        f"Split at: [bold]{station}[/bold]",
    ]
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_row(f"{journey.origin.name} -> {station}", format_price(option.first_leg_price))
    table.add_row(f"{station} -> {journey.destination.name}", format_price(option.second_leg_price))

    console.print(Panel("\n".join(lines), title=f"#{rank}", border_style="green"))
    console.print(table)


def print_split_result(state: SplitSearchState, journey: Journey) -> None:
    """Print the final state of a split search."""
    if state.error:
        console.print(Panel(state.error, title="Split Ticketing", border_style="red"))
        return

    if not state.splits:
        console.print(
            Panel(
                "No cheaper split options found.\n"
                f"{state.checked_stations} stations checked.",
                title="No Savings",
                border_style="yellow",
            )
        )
        return

    n = len(state.splits)
    console.print(
        Panel(
            f"{n} cheaper option{'s' if n != 1 else ''} found!\n"
            f"Original price: {format_price(state.original_price)}",
            title="Split Ticketing",
            border_style="green",
        )
    )
    for rank, option in enumerate(state.splits, 1):
        print_split_option(rank, option, journey, state.original_price)


def print_no_results(params: SearchParams) -> None:
    """Print a message when the journey search found nothing."""
    console.print(
        Panel(
            f"No journeys found from {params.origin_id} to {params.destination_id}.\n"
            "Try a different departure time or station.",
            title="No Results",
            border_style="red",
        )
    )
