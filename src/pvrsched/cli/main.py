"""
Main CLI application using Typer with router-based command dispatch.

All command groups are registered through the centralized CliRouter.
"""

from __future__ import annotations

import typer

from ..infra.logging import configure_logging
from .commands import recording
from .router import get_router

app = typer.Typer(help="pvrsched recording scheduler")

router = get_router(app)

router.register(
    "recording",
    recording.app,
    help_text="Schedule, list and delete recordings",
)


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override LOG_LEVEL for this invocation"),
):
    """pvrsched - schedules recordings on a fixed set of tuners."""
    configure_logging(log_level)


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
