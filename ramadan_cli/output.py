from __future__ import annotations

from datetime import datetime

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import TimeFormat
from .models import (
    DISPLAY_NAMES,
    CountdownTarget,
    DaySchedule,
    FastBoundaryState,
    LocationConfig,
    ResolvedSchedule,
)
from .ticker import format_countdown

DEGRADED_NOTE = "Live prayer times unavailable; showing default times."

FAST_LABELS = {
    "iftar": ("Iftar", "العد التنازلي للإفطار", "اللهم إني أسألك من فضلك ورحمتك"),
    "suhoor": ("Suhoor", "العد التنازلي للسحور", "اللهم بارك لنا في سحورنا"),
}


def format_time_for_display(value: str, time_format: TimeFormat) -> str:
    if time_format == "24h":
        return value

    parsed = datetime.strptime(value, "%H:%M")
    rendered = parsed.strftime("%I:%M %p")
    return rendered[1:] if rendered.startswith("0") else rendered


def _location_line(location: LocationConfig) -> Text:
    label = f"{location.name}, {location.country}" if location.country else location.name
    return Text(f"Location: {label} (method {location.calculation_method})", style="cyan")


def _degraded_line() -> Text:
    return Text(DEGRADED_NOTE, style="yellow")


def build_schedule_table(
    schedule: DaySchedule,
    target: CountdownTarget,
    time_format: TimeFormat,
    now_minute: int,
) -> Table:
    table = Table(show_header=True, header_style="bold cyan", expand=False)
    table.add_column("Prayer", style="bold")
    table.add_column("", justify="right")
    table.add_column("Time", justify="right")

    wraps = schedule.events[-1].minute_of_day <= now_minute
    for event in schedule:
        style: str | None = None
        name = event.name
        if event.name == target.name:
            style = "bold green"
            if wraps:
                name = f"{event.name} (tomorrow)"
        elif event.minute_of_day <= now_minute:
            style = "dim"

        table.add_row(
            name,
            DISPLAY_NAMES[event.name],
            format_time_for_display(event.clock, time_format),
            style=style,
        )

    return table


def render_today(
    console: Console,
    resolved: ResolvedSchedule,
    target: CountdownTarget,
    time_format: TimeFormat,
    now: datetime,
) -> None:
    now_minute = now.hour * 60 + now.minute
    rows: list = [
        _location_line(resolved.location),
        Text(f"Date: {resolved.day.isoformat()} | Local time: {now.strftime('%H:%M:%S')}"),
    ]
    if resolved.degraded:
        rows.append(_degraded_line())
    rows.append(build_schedule_table(resolved.schedule, target, time_format, now_minute))
    rows.append(
        Text(
            f"Next: {target.name} in {format_countdown(target.seconds_remaining)}",
            style="bold yellow",
        )
    )
    console.print(Panel(Group(*rows), title="Prayer Times", border_style="blue"))


def build_next_panel(
    resolved: ResolvedSchedule,
    target: CountdownTarget,
    time_format: TimeFormat,
) -> Panel:
    next_time = format_time_for_display(resolved.schedule.get(target.name).clock, time_format)
    countdown = format_countdown(target.seconds_remaining)

    rows: list = [
        _location_line(resolved.location),
        Text(f"Next Prayer: {target.name} {DISPLAY_NAMES[target.name]}", style="bold green"),
        Text(f"At: {next_time}", style="bold"),
        Text(f"Countdown: {countdown}", style="bold yellow"),
    ]
    if resolved.degraded:
        rows.append(_degraded_line())
    return Panel(Group(*rows), title="Next Prayer", border_style="green")


def build_fast_panel(
    resolved: ResolvedSchedule,
    state: FastBoundaryState,
    time_format: TimeFormat,
) -> Panel:
    label, title_ar, dua = FAST_LABELS[state.phase]
    parts = format_countdown(state.seconds_remaining)
    maghrib = format_time_for_display(resolved.schedule.get("Maghrib").clock, time_format)
    fajr = format_time_for_display(resolved.schedule.get("Fajr").clock, time_format)
    is_iftar = state.phase == "iftar"

    units = Table.grid(padding=(0, 3))
    for _ in range(3):
        units.add_column(justify="center")
    units.add_row(
        Text(parts.hours, style="bold"),
        Text(parts.minutes, style="bold"),
        Text(parts.seconds, style="bold"),
    )
    units.add_row("ساعة", "دقيقة", "ثانية")

    rows: list = [
        Text(f"{label} countdown | {title_ar}", style="bold"),
        units,
        Text(f"المغرب Maghrib: {maghrib}   الفجر Fajr: {fajr}"),
        Text(dua, style="italic"),
    ]
    if resolved.degraded:
        rows.append(_degraded_line())
    return Panel(
        Group(*rows),
        title=label,
        border_style="dark_orange" if is_iftar else "blue",
    )


def build_loading_panel(location: LocationConfig) -> Panel:
    return Panel(Text(f"Loading prayer times for {location.name}..."), border_style="dim")


def build_cities_table(locations: dict[str, list[LocationConfig]]) -> Table:
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Country")
    table.add_column("City", style="bold")
    table.add_column("Latitude", justify="right")
    table.add_column("Longitude", justify="right")
    table.add_column("Method", justify="right")

    for country, cities in locations.items():
        for city in cities:
            table.add_row(
                country,
                city.name,
                f"{city.latitude:.4f}",
                f"{city.longitude:.4f}",
                str(city.calculation_method),
            )
    return table
