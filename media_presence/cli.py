from __future__ import annotations

import typer

from media_presence import app as runtime
from media_presence.config import load_config
from media_presence.logging_setup import setup_logging
from media_presence.mpris.protocol import short_name
from media_presence.mpris.watcher import list_players


app = typer.Typer(no_args_is_help=True, add_completion=False)


@app.command()
def watch(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    no_alt_screen: bool = typer.Option(False, "--no-alt-screen", help="Do not use alternate screen buffer"),
    min_width: int | None = typer.Option(None, "--min-width", help="Smallest expanded width (columns)"),
    max_width: int | None = typer.Option(None, "--max-width", help="Largest expanded width (columns)"),
    duration_ms: int | None = typer.Option(None, "--duration-ms", help="Expand/collapse animation length"),
):
    """
    Show the most recently started player in a box that expands while
    something is playing and collapses when playback stops.
    """
    cfg = load_config().with_overrides(min_width=min_width, max_width=max_width, animation_ms=duration_ms)
    if no_alt_screen:
        cfg = cfg.with_overrides(use_alt_screen=False)
    if cfg.min_width > cfg.max_width:
        raise typer.BadParameter("--min-width must not exceed --max-width")

    # the alt screen owns the terminal; keep records off it
    setup_logging(debug, cfg.config_dir / "watch.log" if cfg.use_alt_screen else None)
    raise typer.Exit(code=runtime.watch(cfg))


@app.command()
def players(
    status: bool = typer.Option(False, "--status", help="Also show playback status and track"),
):
    """List available MPRIS players."""
    if not status:
        for p in list_players():
            typer.echo(p)
        return

    for p in runtime.describe_players():
        name = p.identity or short_name(p.name)
        typer.echo(f"{p.name}  [{name}]  {p.status.value}")
        if p.track is not None:
            typer.echo(f"   {p.track.display} ({p.track.album})")


def _control(action: str, debug: bool) -> None:
    setup_logging(debug)
    result = runtime.control(load_config(), action)
    typer.echo(result.message, err=result.code != 0)
    raise typer.Exit(code=result.code)


@app.command()
def toggle(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")):
    """Play/pause the active player."""
    _control("toggle", debug)


@app.command("next")
def next_(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")):
    """Skip to the next track on the active player."""
    _control("next", debug)


@app.command()
def previous(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")):
    """Go back to the previous track on the active player."""
    _control("previous", debug)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
