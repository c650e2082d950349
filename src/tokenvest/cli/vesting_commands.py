"""
tokenvest Vesting CLI Commands

Operator commands against a local ledger state file:
- deploy a token and vesting ledger
- approve, grant and claim
- advance the progress counter (mine empty blocks)
- inspect schedule, totals and accounts
"""

from __future__ import annotations

import json
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tokenvest.blockchain.ledger_persistence import (
    TRANSFER_MODES,
    LedgerDeployment,
    LedgerStateStore,
    deploy_ledger,
)
from tokenvest.core import config

console = Console()


def _store(ctx: click.Context) -> LedgerStateStore:
    return ctx.obj["store"]


def _emit(ctx: click.Context, payload: dict[str, Any], message: str) -> None:
    if ctx.obj.get("json_output"):
        click.echo(json.dumps(payload, indent=2))
    else:
        console.print(message)


def _account_row(deployment: LedgerDeployment, account: str, at: int) -> dict[str, Any]:
    ledger = deployment.ledger
    return {
        "account": account.lower(),
        "vested": ledger.funds_vested_for(account),
        "unlocked": ledger.vested_at(account, at),
        "claimed": ledger.funds_claimed_for(account),
        "releasable": ledger.releasable_for(account),
        "balance": deployment.token.balance_of(account),
    }


@click.command("deploy")
@click.option("--admin", required=True, help="Administrator address (token owner and sole granter)")
@click.option("--start", "window_start", type=int, help="Window start height (defaults to current height)")
@click.option("--end", "window_end", type=int, help="Window end height (defaults to start + configured window length)")
@click.option("--height", type=click.IntRange(min=0), default=0, show_default=True, help="Initial block height")
@click.option("--mint", type=click.IntRange(min=0), default=0, show_default=True, help="Units minted to the admin")
@click.option("--approve", type=click.IntRange(min=0), default=0, show_default=True, help="Allowance the admin grants the ledger")
@click.option("--mode", type=click.Choice(TRANSFER_MODES), default="custody", show_default=True, help="Escrow funds at grant time or pull them at claim time")
@click.option("--name", default="Test", show_default=True, help="Token name")
@click.option("--symbol", default="VEST", show_default=True, help="Token symbol")
@click.option("--force", is_flag=True, help="Overwrite an existing state file")
@click.pass_context
def deploy(
    ctx: click.Context,
    admin: str,
    window_start: int | None,
    window_end: int | None,
    height: int,
    mint: int,
    approve: int,
    mode: str,
    name: str,
    symbol: str,
    force: bool,
):
    """
    Deploy a token and a vesting ledger.

    Example:
        tokenvest deploy --admin 0xadmin --mint 10000 --approve 150
    """
    store = _store(ctx)
    if store.exists() and not force:
        raise click.ClickException(f"State file {store.path} already exists (use --force to replace it)")

    start = height if window_start is None else window_start
    end = start + config.DEFAULT_WINDOW_LENGTH if window_end is None else window_end
    deployment = deploy_ledger(
        admin,
        start,
        end,
        mint=mint,
        approve=approve,
        mode=mode,
        name=name,
        symbol=symbol,
        decimals=config.TOKEN_DECIMALS,
        height=height,
    )
    store.save(deployment)

    _emit(
        ctx,
        {
            "ledger_address": deployment.ledger_address,
            "token_address": deployment.token.address,
            "admin": deployment.ledger.admin,
            "window_start": start,
            "window_end": end,
            "mode": mode,
        },
        f"[bold green]TokenVesting deployed to[/] {deployment.ledger_address}",
    )


@click.command("approve")
@click.option("--owner", required=True, help="Token holder granting the allowance")
@click.argument("amount", type=click.IntRange(min=0))
@click.pass_context
def approve(ctx: click.Context, owner: str, amount: int):
    """Set the allowance OWNER gives the ledger to AMOUNT."""
    store = _store(ctx)
    deployment = store.load()
    deployment.token.approve(owner, deployment.ledger_address, amount)
    store.save(deployment)
    _emit(
        ctx,
        {"owner": owner.lower(), "spender": deployment.ledger_address, "allowance": amount},
        f"[green]Allowance set:[/] {owner} -> {deployment.ledger_address} = {amount}",
    )


@click.command("grant")
@click.option("--caller", required=True, help="Address signing the call (must be the admin)")
@click.argument("account")
@click.argument("amount", type=int)
@click.pass_context
def grant(ctx: click.Context, caller: str, account: str, amount: int):
    """Grant AMOUNT vesting units to ACCOUNT."""
    store = _store(ctx)
    deployment = store.load()
    deployment.ledger.grant(caller, account, amount)
    store.save(deployment)
    vested = deployment.ledger.funds_vested_for(account)
    _emit(
        ctx,
        {"account": account.lower(), "amount": amount, "vested": vested},
        f"[green]Granted[/] {amount} to {account} (vested total {vested})",
    )


@click.command("claim")
@click.option("--caller", required=True, help="Beneficiary claiming for itself")
@click.pass_context
def claim(ctx: click.Context, caller: str):
    """Claim everything unlocked for CALLER so far."""
    store = _store(ctx)
    deployment = store.load()
    due = deployment.ledger.release(caller)
    store.save(deployment)
    claimed = deployment.ledger.funds_claimed_for(caller)
    _emit(
        ctx,
        {
            "account": caller.lower(),
            "released": due,
            "claimed": claimed,
            "height": deployment.clock.current_progress(),
        },
        f"[green]Released[/] {due} to {caller} (claimed total {claimed})",
    )


@click.command("advance")
@click.argument("blocks", type=click.IntRange(min=0), default=1)
@click.pass_context
def advance(ctx: click.Context, blocks: int):
    """Mine BLOCKS empty blocks, advancing the progress counter."""
    store = _store(ctx)
    deployment = store.load()
    height = deployment.clock.advance(blocks)
    store.save(deployment)
    _emit(ctx, {"height": height}, f"[cyan]Height[/] {height}")


@click.command("status")
@click.argument("account", required=False)
@click.option("--at", "preview_height", type=int, help="Height to compute the unlocked column at (defaults to the current height)")
@click.pass_context
def status(ctx: click.Context, account: str | None, preview_height: int | None):
    """Show the schedule and grants, or a single ACCOUNT."""
    deployment = _store(ctx).load()
    ledger = deployment.ledger
    height = deployment.clock.current_progress()
    at = height if preview_height is None else preview_height
    accounts = [account] if account else ledger.accounts()
    rows = [_account_row(deployment, acct, at) for acct in accounts]

    if ctx.obj.get("json_output"):
        click.echo(json.dumps({
            "ledger_address": deployment.ledger_address,
            "token_address": deployment.token.address,
            "admin": ledger.admin,
            "mode": deployment.mode,
            "height": height,
            "unlocked_at": at,
            "window_start": ledger.window_start,
            "window_end": ledger.window_end,
            "total_vested": ledger.total_vested,
            "total_claimed": ledger.total_claimed,
            "accounts": rows,
        }, indent=2))
        return

    summary = Table(show_header=False, box=box.ROUNDED)
    summary.add_row("[bold cyan]Ledger", deployment.ledger_address)
    summary.add_row("[bold cyan]Token", f"{deployment.token.symbol} {deployment.token.address}")
    summary.add_row("[bold cyan]Admin", ledger.admin)
    summary.add_row("[bold cyan]Mode", deployment.mode)
    summary.add_row("[bold yellow]Height", str(height))
    summary.add_row("[bold yellow]Window", f"{ledger.window_start} -> {ledger.window_end}")
    summary.add_row("[bold green]Total Vested", str(ledger.total_vested))
    summary.add_row("[bold green]Total Claimed", str(ledger.total_claimed))
    console.print(Panel(summary, title="[bold green]Vesting Ledger", border_style="green"))

    if rows:
        table = Table(box=box.SIMPLE)
        for column in ("Account", "Vested", f"Unlocked @ {at}", "Claimed", "Releasable", "Balance"):
            table.add_column(column)
        for row in rows:
            table.add_row(
                row["account"],
                str(row["vested"]),
                str(row["unlocked"]),
                str(row["claimed"]),
                str(row["releasable"]),
                str(row["balance"]),
            )
        console.print(table)
