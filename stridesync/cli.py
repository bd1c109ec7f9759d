from __future__ import annotations

import asyncio
import importlib.metadata as md
from pathlib import Path

import typer
from rich.console import Console

from .config import (
    StrideSyncConfig,
    config_search_paths,
    configure_logging,
    load_config,
    resolve_config_path,
)
from .domain.models import ActivityStats
from .tracker import ActivityTracker

# Typer application: tests import this
app = typer.Typer(no_args_is_help=True, add_completion=False, help="StrideSync CLI")
console = Console()


def _format_stats(stats: ActivityStats) -> str:
    return (
        f"[bold]{stats.steps}[/bold] steps | "
        f"{stats.distance_km:.2f} km | "
        f"{stats.calories:.0f} kcal | "
        f"{stats.active_minutes:.1f} min active"
    )


def _load_or_default(config: Path | None) -> StrideSyncConfig:
    resolved = resolve_config_path(config)
    if not resolved.exists():
        console.print(f"[yellow]No config at {resolved}, using defaults[/yellow]")
        return StrideSyncConfig()
    console.print(f"Using config: {resolved}")
    return load_config(resolved)


@app.command()
def version() -> None:
    """Print version information."""
    try:
        dist_version = md.version("stridesync")
    except md.PackageNotFoundError:
        from . import __version__

        dist_version = __version__
    console.print(f"stridesync {dist_version}")
    raise typer.Exit(code=0)


@app.command(name="config-validate")
def config_validate(path: Path = typer.Argument(Path("configs/stridesync.yml"))) -> None:
    """Validate and show resolved configuration."""
    resolved = resolve_config_path(path)
    console.print(f"Using config: {resolved}")
    try:
        cfg: StrideSyncConfig = load_config(resolved)
    except Exception as exc:
        console.print(f"Config validation failed: {exc}")
        raise typer.Exit(code=1) from exc
    console.print("Config OK. Key settings:")
    console.print(f"- remote: {cfg.remote.base_url}")
    console.print(f"- gps: {'simulated' if cfg.gps.mock_mode else f'{cfg.gps.host}:{cfg.gps.port}'}")
    console.print(
        f"- filter: accuracy <= {cfg.tracking.accuracy_threshold_m}m, "
        f"movement >= {cfg.tracking.min_movement_m}m"
    )
    console.print(f"- sync interval: {cfg.sync.interval_secs or 'on stop only'}")


@app.command()
def config_which(
    path: Path = typer.Option(Path("configs/stridesync.yml"), "--config", "-c"),
    show_all: bool = typer.Option(False, "--all", help="List every candidate in search order"),
) -> None:
    """Print resolved config path by priority rules."""
    resolved = resolve_config_path(path)
    if not show_all:
        console.print(str(resolved))
        return
    for origin, candidate in config_search_paths(path):
        found = candidate.is_file()
        marker = "*" if found and candidate.resolve() == resolved else " "
        state = "found" if found else "missing"
        console.print(f"{marker} {origin:<6} {state:<7} {candidate}", soft_wrap=True)


async def _track(cfg: StrideSyncConfig, simulate: bool, duration: float) -> None:
    def on_error(origin: str, exc: BaseException) -> None:
        console.print(f"[yellow]{origin} error:[/yellow] {exc}")

    tracker = ActivityTracker.from_config(cfg, on_error=on_error, simulate=simulate or None)
    try:
        await tracker.initialize()
        tracker.subscribe_stats(lambda stats: console.print(_format_stats(stats)))
        if not tracker.enable_tracking():
            console.print("[red]Could not start tracking[/red]")
            return
        console.print("Tracking... press Ctrl-C to stop")

        if duration > 0:
            await asyncio.sleep(duration)
        else:
            await asyncio.Event().wait()
    finally:
        await tracker.aclose()
        console.print(f"Final: {_format_stats(tracker.stats)}")


@app.command()
def track(
    config: Path = typer.Option(Path("configs/stridesync.yml"), "--config", "-c"),
    simulate: bool = typer.Option(False, "--simulate", help="Use the simulated walker"),
    duration: float = typer.Option(0.0, "--duration", min=0, help="Seconds to track (0 = until Ctrl-C)"),
) -> None:
    """Track activity from the configured location source and sync on stop."""
    cfg = _load_or_default(config)
    configure_logging(cfg.logging)
    try:
        asyncio.run(_track(cfg, simulate, duration))
    except KeyboardInterrupt:
        console.print("Stopped.")


def launch() -> None:
    """Entry point when executed as a module/script."""
    cli()  # use the prepared Click command


# Click command export
cli = typer.main.get_command(app)

__all__ = ["app", "cli"]

if __name__ == "__main__":
    launch()
