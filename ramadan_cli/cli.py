from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel

from . import __version__
from .config import CONFIG_PATH, LOG_LEVELS, Config, TimeFormat, load_config, save_config
from .dashboard import DashboardView
from .finder import find_next_at
from .locations import find_location, find_nearest_location, get_locations, locations_by_country
from .log import setup_logging
from .models import LocationConfig
from .output import (
    build_cities_table,
    build_fast_panel,
    build_loading_panel,
    build_next_panel,
    render_today,
)
from .resolver import ScheduleResolver

app = typer.Typer(
    help="Ramadan prayer times with live Iftar and Suhoor countdowns",
    no_args_is_help=False,
    invoke_without_command=True,
    add_completion=True,
)
console = Console()

CityOption = typer.Option(None, "--city", help="Use a built-in city instead of the configured one.")
OnceOption = typer.Option(False, "--once", help="Render once and exit.")


def _validate_time_format(value: str) -> TimeFormat:
    if value not in ("12h", "24h"):
        raise typer.BadParameter("time format must be either '12h' or '24h'")
    return value  # type: ignore[return-value]


def _validate_log_level(value: str) -> str:
    if value.upper() not in LOG_LEVELS:
        raise typer.BadParameter(f"log level must be one of {', '.join(LOG_LEVELS)}")
    return value.upper()


def _validate_coordinates(lat: float, lon: float) -> None:
    if not (-90.0 <= lat <= 90.0):
        raise typer.BadParameter("latitude must be between -90 and 90")
    if not (-180.0 <= lon <= 180.0):
        raise typer.BadParameter("longitude must be between -180 and 180")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"ramadan-cli {__version__}")
        raise typer.Exit()


def _lookup_city(name: str) -> LocationConfig:
    location = find_location(name)
    if location is None:
        console.print(f"[red]Unknown city:[/red] {name}. Run 'ramadan cities' for the list.")
        raise typer.Exit(code=1)
    return location


def _prepare(ctx: typer.Context, city: Optional[str]) -> tuple[Config, LocationConfig]:
    config = load_config()
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    setup_logging("DEBUG" if verbose else config.log_level)
    location = _lookup_city(city) if city else config.location
    return config, location


def _print_config(config: Config) -> None:
    payload = config.to_dict()
    console.print_json(json.dumps(payload, ensure_ascii=False, indent=2))
    console.print(f"[dim]Config path:[/dim] {CONFIG_PATH}")


async def _run_live(
    config: Config,
    location: LocationConfig,
    render: Callable[[DashboardView], Any],
    once: bool,
) -> None:
    resolver = ScheduleResolver(fallback_times=config.fallback_times)

    async with DashboardView(resolver) as view:
        await view.select(location)

        if once:
            await view.wait_ready()
            console.print(render(view))
            return

        with Live(build_loading_panel(location), console=console, refresh_per_second=4) as live:
            view.on_update = lambda current: live.update(render(current))
            await view.wait_ready()
            live.update(render(view))
            await asyncio.Event().wait()


def _live_command(
    config: Config,
    location: LocationConfig,
    render: Callable[[DashboardView], Any],
    once: bool,
) -> None:
    try:
        asyncio.run(_run_live(config, location, render, once))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")


def render_next(view: DashboardView, location: LocationConfig, time_format: TimeFormat) -> Panel:
    target = view.get_next_event()
    if view.resolved is None or target is None:
        return build_loading_panel(location)
    return build_next_panel(view.resolved, target, time_format)


def render_iftar(view: DashboardView, location: LocationConfig, time_format: TimeFormat) -> Panel:
    state = view.get_fast_boundary_state()
    if view.resolved is None or state is None:
        return build_loading_panel(location)
    return build_fast_panel(view.resolved, state, time_format)


def _show_today(config: Config, location: LocationConfig) -> None:
    resolver = ScheduleResolver(fallback_times=config.fallback_times)
    now = datetime.now()
    resolved = asyncio.run(resolver.resolve(now.date(), location))

    render_today(
        console=console,
        resolved=resolved,
        target=find_next_at(resolved.schedule, now),
        time_format=config.time_format,
        now=now,
    )


@app.callback(invoke_without_command=True)
def root(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Show today's prayer times."""
    _ = version
    ctx.obj = {"verbose": verbose}
    if ctx.invoked_subcommand is None:
        config, location = _prepare(ctx, None)
        _show_today(config, location)


@app.command("today")
def today_command(ctx: typer.Context, city: Optional[str] = CityOption) -> None:
    """Show today's prayer times with the next one highlighted."""
    config, location = _prepare(ctx, city)
    _show_today(config, location)


@app.command("next")
def next_command(
    ctx: typer.Context,
    city: Optional[str] = CityOption,
    once: bool = OnceOption,
) -> None:
    """Show the next prayer and a live countdown."""
    config, location = _prepare(ctx, city)

    _live_command(config, location, lambda view: render_next(view, location, config.time_format), once)


@app.command("iftar")
def iftar_command(
    ctx: typer.Context,
    city: Optional[str] = CityOption,
    once: bool = OnceOption,
) -> None:
    """Live countdown to Iftar, or to the end of Suhoor after Maghrib."""
    config, location = _prepare(ctx, city)

    _live_command(config, location, lambda view: render_iftar(view, location, config.time_format), once)


@app.command("cities")
def cities_command() -> None:
    """List the built-in cities and their calculation methods."""
    console.print(build_cities_table(locations_by_country()))


def _select_location_interactive(current: LocationConfig) -> LocationConfig:
    locations = get_locations()
    console.print("Select location:")
    for index, loc in enumerate(locations, start=1):
        console.print(f"  {index}. {loc.name}, {loc.country}")
    console.print("  0. Manual coordinates")

    default_index = next(
        (str(i) for i, loc in enumerate(locations, start=1) if loc == current),
        "0",
    )
    selected = typer.prompt("Location number", default=default_index)
    try:
        index = int(selected)
    except ValueError as exc:
        raise typer.BadParameter("Location number must be an integer") from exc

    if 1 <= index <= len(locations):
        return locations[index - 1]
    if index != 0:
        raise typer.BadParameter("Location number out of range")

    name = typer.prompt("Name", default=current.name)
    lat = float(typer.prompt("Latitude", default=str(current.latitude)))
    lon = float(typer.prompt("Longitude", default=str(current.longitude)))
    _validate_coordinates(lat, lon)
    nearest = find_nearest_location(lat, lon)
    method = int(typer.prompt("Calculation method", default=str(nearest.calculation_method)))
    return LocationConfig(name=name, latitude=lat, longitude=lon, calculation_method=method)


@app.command("config")
def config_command(
    show: bool = typer.Option(False, "--show", help="Print current configuration."),
    city: Optional[str] = typer.Option(None, "--city", help="Select a built-in city."),
    name: Optional[str] = typer.Option(None, "--name", help="Label for manual coordinates."),
    lat: Optional[float] = typer.Option(None, "--lat"),
    lon: Optional[float] = typer.Option(None, "--lon"),
    method: Optional[int] = typer.Option(
        None,
        "--method",
        min=0,
        help="AlAdhan calculation method (defaults to the nearest built-in city's).",
    ),
    time_format: Optional[str] = typer.Option(None, "--time-format", help="12h or 24h."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
) -> None:
    """Set location, calculation method, time format and log level."""
    config = load_config()

    manual_location_flag = any(value is not None for value in (name, lat, lon))
    has_update_flags = any(
        [
            city is not None,
            manual_location_flag,
            method is not None,
            time_format is not None,
            log_level is not None,
        ]
    )

    if show and not has_update_flags:
        _print_config(config)
        return

    if not has_update_flags:
        console.print("[bold]Interactive configuration[/bold]")
        config.location = _select_location_interactive(config.location)
        save_config(config)
        console.print("[green]Configuration saved.[/green]")
        _print_config(config)
        return

    if city is not None:
        config.location = _lookup_city(city)

    if manual_location_flag:
        if lat is None or lon is None:
            console.print("[red]Manual location requires --lat and --lon.[/red]")
            raise typer.Exit(code=1)

        _validate_coordinates(lat, lon)
        nearest = find_nearest_location(lat, lon)
        config.location = LocationConfig(
            name=name or f"{lat:.4f},{lon:.4f}",
            latitude=float(lat),
            longitude=float(lon),
            calculation_method=method if method is not None else nearest.calculation_method,
        )
    elif method is not None:
        config.location = replace(config.location, calculation_method=method)

    if time_format is not None:
        config.time_format = _validate_time_format(time_format)

    if log_level is not None:
        config.log_level = _validate_log_level(log_level)

    save_config(config)
    console.print("[green]Configuration saved.[/green]")
    _print_config(config)


if __name__ == "__main__":
    app()
