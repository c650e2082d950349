#!/usr/bin/env python3
"""
Main CLI entry point for tokenvest.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console

from tokenvest.blockchain.ledger_persistence import LedgerStateStore
from tokenvest.cli.vesting_commands import advance, approve, claim, deploy, grant, status
from tokenvest.core import config
from tokenvest.core.logging_config import setup_logging
from tokenvest.core.vesting_exceptions import (
    VestingError,
    get_error_context,
    is_recoverable_error,
)

logger = logging.getLogger(__name__)

console = Console()

# EX_TEMPFAIL: the same command may succeed if retried
RETRYABLE_EXIT_CODE = 75


def _cli_fail(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, exc_info=True, extra=get_error_context(exc))
    console.print(f"[bold red]Error:[/] {exc}")
    if is_recoverable_error(exc):
        console.print("[yellow]Nothing was changed; the command can be retried.[/]")
        exit_code = RETRYABLE_EXIT_CODE
    sys.exit(exit_code)


class LedgerGroup(click.Group):
    """Click group that turns ledger rejections into a clean error line."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except (VestingError, ValueError) as exc:
            _cli_fail(exc)


@click.group(cls=LedgerGroup)
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=config.STATE_PATH,
    show_default=True,
    help="Ledger state file",
)
@click.option("--json-output", is_flag=True, help="Emit JSON instead of tables")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=config.LOG_LEVEL,
    show_default=True,
)
@click.pass_context
def cli(ctx: click.Context, state_path: Path, json_output: bool, log_level: str):
    """
    tokenvest - linear token vesting ledger

    Deploy a ledger, grant vesting units, advance the block height
    and let beneficiaries claim what has unlocked.
    """
    ctx.ensure_object(dict)
    setup_logging(
        name="tokenvest",
        log_file=config.LOG_FILE,
        level=log_level,
        environment=config.ENVIRONMENT,
    )
    ctx.obj["store"] = LedgerStateStore(state_path)
    ctx.obj["json_output"] = json_output


for _command in (deploy, approve, grant, claim, advance, status):
    cli.add_command(_command)


def main():
    """Main CLI entry point"""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/]")
        sys.exit(130)


if __name__ == "__main__":
    main()
