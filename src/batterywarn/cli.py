"""Low-battery warning daemon CLI.

This module provides the command-line interface: the daemon itself,
a power-level helper, and configuration utilities.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Final, Optional

import typer

from batterywarn.power import PowerLevelClassifier
from batterywarn.service import BatteryWarnService
from batterywarn.settings.user import UserSettings

# ── CLI setup ────────────────────────────────────────────────────────────────
app = typer.Typer(help="Low-battery warning daemon", add_completion=False)
config_app = typer.Typer(help="Config helpers")
app.add_typer(config_app, name="config")

logger: Final = logging.getLogger(__name__)  # Will be "batterywarn.cli"

CONFIG_OPTION = typer.Option(None, "--config", "-c", exists=True, dir_okay=False)
DEBUG_OPTION = typer.Option(False, "--debug", help="Enable debug logging")
PERCENT_ARGUMENT = typer.Argument(..., min=0.0, max=100.0, help="Battery charge in percent")


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@app.command()
def run(
    config: Optional[Path] = CONFIG_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """Watch the battery and raise low-battery warnings."""
    configure_logging(debug)

    try:
        settings = UserSettings.load(config)
    except (FileNotFoundError, RuntimeError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    asyncio.run(BatteryWarnService(settings).run_forever())


@app.command()
def level(percentage: float = PERCENT_ARGUMENT) -> None:
    """Print the power level for a battery percentage."""
    typer.echo(PowerLevelClassifier.classify(percentage).token)


# ───────────────────────── config sub-commands ───────────────────────────────
@config_app.command("validate")
def validate_config(file: Path):
    """Validate a YAML config file against the schema."""
    try:
        UserSettings.load(file)
        typer.echo("✅ Config valid")
    except (FileNotFoundError, RuntimeError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@config_app.command("show")
def show_config(config: Optional[Path] = CONFIG_OPTION) -> None:
    """Print the effective configuration as YAML."""
    import yaml

    try:
        settings = UserSettings.load(config)
    except (FileNotFoundError, RuntimeError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(yaml.safe_dump(settings.model_dump(mode="json"), sort_keys=False))


# ───────────────────────── module entrypoint ────────────────────────────────
if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(0)
