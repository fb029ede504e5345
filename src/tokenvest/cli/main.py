"""
tokenvest command-line interface.

Inspect ledger configuration and preview the unlock timeline of a
prospective vesting schedule.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tokenvest.core.config_manager import DEFAULT_CONFIG_DIR, ConfigManager, ConfigurationError
from tokenvest.core.logging_config import setup_ledger_logging
from tokenvest.core.vesting_exceptions import VestingError
from tokenvest.vesting.engine import unlock_timeline

logger = logging.getLogger(__name__)

console = Console()

_MISSING = object()


def _emit_config_payload(ctx: click.Context, payload: Dict[str, Any], output_format: str = "auto") -> None:
    """Render config payload respecting CLI formatting preferences."""
    want_json = ctx.obj.get("json_output") or output_format == "json"
    if want_json:
        click.echo(json.dumps(payload, indent=2))
        return

    if output_format == "yaml":
        click.echo(yaml.safe_dump(payload, sort_keys=False))
        return

    if isinstance(payload.get("config"), dict):
        table = Table(title=payload.get("section", "Configuration"), box=box.SIMPLE)
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        for key, value in payload["config"].items():
            table.add_row(str(key), json.dumps(value, indent=2) if isinstance(value, (dict, list)) else str(value))
        console.print(table)
    else:
        console.print(Panel.fit(str(payload)))


def _create_config_manager(ctx: click.Context) -> ConfigManager:
    if ctx.obj.get("manager") is not None:
        return ctx.obj["manager"]
    try:
        return ConfigManager(
            environment=ctx.obj.get("environment"),
            config_dir=str(ctx.obj["config_dir"]),
        )
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option('--json-output', is_flag=True, help='Output raw JSON')
@click.option(
    "--environment",
    type=click.Choice(["development", "staging", "production", "testnet"]),
    default=None,
    help="Configuration environment (defaults to TOKENVEST_ENVIRONMENT).",
)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_DIR,
    show_default=True,
    help="Directory containing environment config files.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.pass_context
def cli(ctx: click.Context, json_output: bool, environment: Optional[str], config_dir: Path, log_level: Optional[str]):
    """tokenvest - token vesting ledger tools."""
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json_output
    ctx.obj["environment"] = environment
    ctx.obj["config_dir"] = config_dir
    manager = _create_config_manager(ctx)
    ctx.obj["manager"] = manager
    setup_ledger_logging(manager, level=log_level)


@cli.group("config")
def config_group():
    """Inspect ledger configuration."""


@config_group.command("show")
@click.option("--section", help="Return only a specific configuration section.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["auto", "json", "yaml"]),
    default="auto",
    show_default=True,
)
@click.pass_context
def config_show(ctx: click.Context, section: Optional[str], output_format: str):
    """Display current configuration for the selected environment."""
    manager = _create_config_manager(ctx)
    if section:
        section_data = manager.get_section(section)
        if section_data is None:
            raise click.ClickException(f"Configuration section '{section}' not found.")
        payload = {"section": section, "config": section_data, "environment": manager.environment.value}
    else:
        payload = {"environment": manager.environment.value, "config": manager.to_dict()}
    _emit_config_payload(ctx, payload, output_format)


@config_group.command("get")
@click.argument("key")
@click.pass_context
def config_get(ctx: click.Context, key: str):
    """Fetch a single configuration value."""
    manager = _create_config_manager(ctx)
    value = manager.get(key, _MISSING)
    if value is _MISSING:
        raise click.ClickException(f"Configuration key '{key}' not found.")
    _emit_config_payload(ctx, {"key": key, "value": value, "environment": manager.environment.value}, "json")


@cli.command("preview")
@click.option("--amount", type=int, required=True, help="Units to allocate.")
@click.option("--duration-index", type=int, default=0, show_default=True, help="Index into allowed durations.")
@click.option("--start", type=int, default=None, help="Start timestamp (defaults to now).")
@click.pass_context
def preview(ctx: click.Context, amount: int, duration_index: int, start: Optional[int]):
    """Show when each portion of a prospective allocation unlocks."""
    manager = _create_config_manager(ctx)
    settings = manager.vesting
    if not 0 <= duration_index < len(settings.allowed_durations):
        raise click.ClickException(
            f"Duration index {duration_index} out of range (0..{len(settings.allowed_durations) - 1})."
        )
    duration = settings.allowed_durations[duration_index]
    start_time = start if start is not None else int(time.time())

    try:
        steps = unlock_timeline(amount, duration, start_time, settings.unlock_period)
    except VestingError as exc:
        raise click.ClickException(exc.message) from exc

    if ctx.obj["json_output"]:
        click.echo(json.dumps({
            "amount": amount,
            "duration": duration,
            "unlock_period": settings.unlock_period,
            "start_time": start_time,
            "steps": [step.to_dict() for step in steps],
        }, indent=2))
        return

    table = Table(title=f"Unlock timeline - {amount} units over {duration // 86400} days", box=box.SIMPLE)
    table.add_column("Period", justify="right")
    table.add_column("Unlocks at (UTC)", style="cyan")
    table.add_column("Unlocked", justify="right", style="green")
    table.add_column("Vested", justify="right")
    for step in steps:
        table.add_row(
            str(step.period),
            datetime.fromtimestamp(step.timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M"),
            str(step.unlocked),
            str(step.vested),
        )
    console.print(table)


def main() -> int:
    try:
        cli(standalone_mode=True)
    except SystemExit as exc:
        return int(exc.code or 0)
    return 0


if __name__ == "__main__":
    sys.exit(main())
