"""Command-line utilities for SprinklerPanel."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import typer
import uvicorn

from ..config import PanelSettings, get_settings
from ..gateway import ApiGateway, Err, Result
from ..logger import configure_logging, get_logger
from ..runtime import Reconciler
from ..timecodec import day_mask_to_names, localize_log_timestamp, utc_time_of_day_to_local
from ..views import ActionFailed, ViewContext, ZoneEditorView

app = typer.Typer(add_completion=False, help="SprinklerPanel tooling.")

T = TypeVar("T")

_BOOL_TRUE_VALUES = {"1", "true", "yes", "on"}
_BOOL_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_optional_bool(value: Optional[str]) -> Optional[bool]:
    """Convert a CLI-provided string into an optional boolean."""

    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in _BOOL_TRUE_VALUES:
        return True
    if normalized in _BOOL_FALSE_VALUES:
        return False
    raise typer.BadParameter("Expected a boolean value (true/false).")


def _run_with_gateway(settings: PanelSettings, func: Callable[[ApiGateway], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with ApiGateway(settings.backend_url, timeout=settings.request_timeout_seconds) as gateway:
            return await func(gateway)

    return asyncio.run(runner())


def _exit_on_error(result: Result) -> None:
    if isinstance(result, Err):
        typer.echo(f"Error: {result.message}", err=True)
        raise typer.Exit(code=1)


def _settings(backend: Optional[str]) -> PanelSettings:
    settings = get_settings()
    if backend:
        settings = settings.model_copy(update={"backend_url": backend.rstrip("/")})
    configure_logging(settings)
    return settings


BackendOption = typer.Option(None, "--backend", help="Override the controller base URL.")


@app.callback()
def _root_callback() -> None:
    """SprinklerPanel CLI command group."""


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Interface to bind the panel server to."),
    port: Optional[int] = typer.Option(None, help="Port to bind the panel server to."),
    reload: Optional[str] = typer.Option(
        None,
        help="Enable auto-reload (development only). Provide true/false to override configured value.",
    ),
    log_level: Optional[str] = typer.Option(None, help="Logging level passed to Uvicorn."),
) -> None:
    """Start the panel server."""

    reload_override = _parse_optional_bool(reload)
    settings = get_settings()
    configure_logging(settings)
    logger = get_logger(__name__)
    logger.info(
        "Starting SprinklerPanel server (host=%s port=%s backend=%s)",
        host or settings.host,
        port or settings.port,
        settings.backend_url,
    )
    uvicorn.run(
        "sprinklerpanel.server.app:create_application",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload_override if reload_override is not None else settings.reload,
        log_level=log_level or settings.log_level,
    )


@app.command()
def status(backend: Optional[str] = BackendOption) -> None:
    """Poll the controller once and print zone state and the next run."""

    settings = _settings(backend)

    async def poll(gateway: ApiGateway) -> dict:
        reconciler = Reconciler(gateway, tz=settings.display_timezone())
        await reconciler.poll_once()
        return reconciler.snapshot()

    snapshot = _run_with_gateway(settings, poll)
    if snapshot["zones_error"]:
        typer.echo(f"Error loading zones: {snapshot['zones_error']}", err=True)
    for zone in snapshot["zones"]:
        state = "RUNNING" if zone["running"] else "idle"
        line = f"{zone['name']:<24} {state:<8}"
        if zone["last_status"]:
            line += f" {zone['last_status']}"
        typer.echo(line)
    schedule = snapshot["next_schedule"]
    typer.echo(f"Next run: {schedule['program']} at {schedule['time']}")


def _zone_action(zone: str, action: str, backend: Optional[str]) -> None:
    settings = _settings(backend)
    result = _run_with_gateway(settings, lambda gateway: gateway.zone_action(zone, action))
    _exit_on_error(result)
    typer.echo(f"Zone '{zone}' {action} requested.")


@app.command()
def start(zone: str = typer.Argument(..., help="Zone name."), backend: Optional[str] = BackendOption) -> None:
    """Start a zone."""

    _zone_action(zone, "start", backend)


@app.command()
def stop(zone: str = typer.Argument(..., help="Zone name."), backend: Optional[str] = BackendOption) -> None:
    """Stop a zone."""

    _zone_action(zone, "stop", backend)


@app.command()
def programs(backend: Optional[str] = BackendOption) -> None:
    """List programs with local start times."""

    settings = _settings(backend)
    result = _run_with_gateway(settings, lambda gateway: gateway.list_programs())
    _exit_on_error(result)
    tz = settings.display_timezone()
    for program in result.value:
        days = ", ".join(day_mask_to_names(program.days)) or "never"
        typer.echo(f"{program.name}: {utc_time_of_day_to_local(program.start, tz=tz)} on {days}")
        for step in program.zones:
            typer.echo(f"  - {step.zone}: {step.duration}s")


@app.command()
def log(backend: Optional[str] = BackendOption) -> None:
    """Print the controller log with local timestamps."""

    settings = _settings(backend)
    result = _run_with_gateway(settings, lambda gateway: gateway.log_text())
    _exit_on_error(result)
    tz = settings.display_timezone()
    lines = result.value.strip().splitlines()
    if not lines:
        typer.echo("(no logs yet)")
    for line in lines:
        typer.echo(localize_log_timestamp(line, tz=tz))


@app.command()
def upload(
    zone_id: str = typer.Argument(..., help="Zone id."),
    image: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Image file to attach."),
    backend: Optional[str] = BackendOption,
) -> None:
    """Upload an image and attach it to a zone."""

    settings = _settings(backend)

    async def attach(gateway: ApiGateway) -> None:
        async def stay(_target: str) -> None:
            return None

        editor = ZoneEditorView(ViewContext(gateway=gateway, settings=settings, navigate=stay))
        await editor.load()
        if editor.error:
            raise ActionFailed("upload-image", editor.error)
        await editor.upload_image(zone_id, image.name, image.read_bytes())

    try:
        _run_with_gateway(settings, attach)
    except (ActionFailed, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Attached {image.name} to zone {zone_id}.")


def main() -> None:
    """Entrypoint for the ``sprinklerpanel`` console script."""

    logger = get_logger(__name__)
    logger.debug("Invoked SprinklerPanel CLI entrypoint")
    app()
