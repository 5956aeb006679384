#!/usr/bin/env python3
"""
Razor DEX CLI

Command-line interface for quoting and replaying exchange transactions.

Usage:
    razordex quote-out <amount_in> <reserve_in> <reserve_out> [--fee-bps BPS]
    razordex quote-in <amount_out> <reserve_in> <reserve_out> [--fee-bps BPS]
    razordex run <batch_file> [--config FILE] [--json]
    razordex show-config [--config FILE]

Batch file format (JSON):

    {
      "balances": {"0xalice": {"0x1::coins::USDC": 1000000}},
      "transactions": [
        {"op_type": "CREATE_PAIR", "sender": "0xalice", "nonce": 0,
         "params": {"asset_x": "0x1::coins::USDC", "asset_y": "0x1::coins::WETH"}}
      ]
    }
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from .. import __version__
from ..config import load_config
from ..dex import pricing
from ..dex.assets import AssetType
from ..dex.state_manager import DexStateManager
from ..dex.transactions import DexTransaction
from ..exceptions import ConfigurationError, DexError
from ..logger import LogManager


def _configure_logging(cfg, level_override: Optional[str]) -> None:
    """Apply the [logging] section; a --log-level flag wins over the file."""
    LogManager().configure(
        log_level=level_override or cfg.logging.level,
        log_file=Path(cfg.logging.file),
        console_output=bool(cfg.logging.console),
        file_output=bool(cfg.logging.file_enabled),
        force=True,
    )


def _load_batch(batch_file: str) -> dict:
    try:
        with open(batch_file, "r", encoding="utf-8") as f:
            batch = json.load(f)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid batch file: {e}")
    if not isinstance(batch, dict) or "transactions" not in batch:
        raise click.ClickException("Batch file needs a 'transactions' list")
    return batch


@click.group()
@click.version_option(version=__version__, prog_name="razordex")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override the configured log level",
)
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]):
    """Razor DEX Command Line Interface

    Quote constant-product swaps and replay transaction batches.
    """
    ctx.obj = {"log_level": log_level.upper() if log_level else None}
    if log_level:
        logging.getLogger().setLevel(log_level.upper())


@cli.command("quote-out")
@click.argument("amount_in", type=int)
@click.argument("reserve_in", type=int)
@click.argument("reserve_out", type=int)
@click.option("--fee-bps", default=30, show_default=True, help="Swap fee in basis points")
def quote_out_cmd(amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int):
    """Output received for selling exactly AMOUNT_IN.

    Examples:

        razordex quote-out 1000 10000 10000
    """
    try:
        amount_out = pricing.get_amount_out(amount_in, reserve_in, reserve_out, fee_bps)
    except DexError as e:
        raise click.ClickException(str(e))
    click.echo(amount_out)


@cli.command("quote-in")
@click.argument("amount_out", type=int)
@click.argument("reserve_in", type=int)
@click.argument("reserve_out", type=int)
@click.option("--fee-bps", default=30, show_default=True, help="Swap fee in basis points")
def quote_in_cmd(amount_out: int, reserve_in: int, reserve_out: int, fee_bps: int):
    """Input required to buy exactly AMOUNT_OUT.

    Examples:

        razordex quote-in 906 10000 10000
    """
    try:
        amount_in = pricing.get_amount_in(amount_out, reserve_in, reserve_out, fee_bps)
    except DexError as e:
        raise click.ClickException(str(e))
    click.echo(amount_in)


@cli.command("run")
@click.argument("batch_file", type=click.Path(exists=True))
@click.option("--config", "-c", "config_path", type=click.Path(), help="Path to config.toml")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.pass_context
def run_cmd(ctx: click.Context, batch_file: str, config_path: Optional[str], as_json: bool):
    """Replay a batch of transactions through a fresh exchange.

    Examples:

        razordex run batch.json --config config.toml
    """
    try:
        cfg = load_config(config_path)
        registry_config = cfg.to_registry_config()
    except ConfigurationError as e:
        raise click.ClickException(str(e))
    _configure_logging(cfg, (ctx.obj or {}).get("log_level"))

    batch = _load_batch(batch_file)
    mgr = DexStateManager(registry_config)
    for owner, holdings in batch.get("balances", {}).items():
        for type_name, amount in holdings.items():
            mgr.ledger.mint(owner, AssetType.parse(type_name), int(amount))

    results = []
    for raw in batch["transactions"]:
        try:
            tx = DexTransaction.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise click.ClickException(f"Malformed transaction {raw!r}: {e}")
        result = mgr.process_transaction(tx)
        results.append({"tx_hash": tx.tx_hash(), "op_type": tx.op_type.name, **result.to_dict()})

        if not as_json:
            if result.success:
                status = click.style("✓", fg="green")
                detail = ", ".join(f"{k}={v}" for k, v in result.data.items())
            else:
                status = click.style("✗", fg="red")
                detail = result.error
            click.echo(f"{status} {tx.op_type.name:<30} {tx.sender:<12} {detail}")

    if as_json:
        click.echo(json.dumps({"results": results, "stats": mgr.get_stats()}, indent=2))
        return

    stats = mgr.get_stats()
    click.echo()
    click.echo(f"Transactions: {stats['total_txs']}  Failed: {stats['failed_txs']}  "
               f"Pairs: {stats['pairs']}  Events: {stats['events']}")
    for pair in mgr.get_pairs():
        x = AssetType.parse(pair["asset_x"])
        y = AssetType.parse(pair["asset_y"])
        reserves = mgr.get_reserves(x, y)
        click.echo(f"  {pair['pair_key']}: {reserves['reserve_x']} / {reserves['reserve_y']}")


@cli.command("show-config")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Path to config.toml")
def show_config_cmd(config_path: Optional[str]):
    """Print the effective configuration (TOML + environment)."""
    try:
        cfg = load_config(config_path)
    except ConfigurationError as e:
        raise click.ClickException(str(e))
    try:
        cfg.validate()
    except ConfigurationError as e:
        click.echo(click.style(f"Invalid configuration: {e}", fg="yellow"), err=True)
    click.echo(json.dumps(cfg.to_dict(), indent=2))


if __name__ == "__main__":
    cli()
