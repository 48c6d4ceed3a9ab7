"""
MadNet Wallet CLI - Derive addresses, price data stores, check balances and send.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine
from typing import TYPE_CHECKING, Any

import typer
from loguru import logger
from madcore.deposit import calculate_deposit
from madcore.errors import MadWalletError
from madcore.validation import hex_or_text, validate_number
from pydantic import ValidationError as PydanticValidationError

from madwallet.config import BuildOptions, Settings, get_settings

if TYPE_CHECKING:
    from madwallet.wallet.models import Account
    from madwallet.wallet.service import WalletService

app = typer.Typer(
    name="madwallet",
    help="MadNet Wallet",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def _settings(rpc_url: str | None, log_level: str | None) -> Settings:
    settings = get_settings()
    if rpc_url:
        settings.rpc_url = rpc_url
    setup_logging(log_level or settings.log_level)
    return settings


def _run(coro: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(coro)
    except MadWalletError as e:
        logger.error(str(e))
        raise typer.Exit(1)


async def _open_wallet(
    settings: Settings, private_key: str, curve: int
) -> tuple[WalletService, Account]:
    from madwallet.backends.madnet_rpc import MadNetRPCBackend
    from madwallet.wallet.service import WalletService

    backend = MadNetRPCBackend(
        rpc_url=settings.rpc_url,
        timeout=settings.request_timeout,
        max_utxos=settings.max_utxos,
    )
    wallet = WalletService(backend=backend, chain_id=settings.chain_id)
    try:
        await wallet.connect()
        account = wallet.add_account(private_key, curve)
    except Exception:
        await wallet.close()
        raise
    return wallet, account


@app.command()
def address(
    private_key: str = typer.Option(
        ..., "--private-key", "-k", envvar="MADWALLET_PRIVATE_KEY", help="Hex private key"
    ),
    curve: int = typer.Option(1, "--curve", "-c", help="1 = secp256k1, 2 = BN254"),
    log_level: str = typer.Option("INFO", "--log-level", "-l"),
) -> None:
    """Show the address controlled by a private key."""
    setup_logging(log_level)

    from madwallet.wallet.accounts import AccountManager

    try:
        account = AccountManager().add_account(private_key, curve)
    except MadWalletError as e:
        logger.error(str(e))
        raise typer.Exit(1)
    typer.echo(account.address)


@app.command()
def deposit(
    data: str = typer.Option(..., "--data", "-d", help="Payload: 0x-prefixed hex or text"),
    duration: int = typer.Option(..., "--duration", "-e", help="Lease length in epochs"),
) -> None:
    """Compute the deposit needed to store data for a number of epochs."""
    setup_logging()

    try:
        epochs = validate_number(duration, "deposit")
        raw = bytes.fromhex(hex_or_text(data, "deposit"))
        amount = calculate_deposit(raw, epochs)
    except MadWalletError as e:
        logger.error(str(e))
        raise typer.Exit(1)
    typer.echo(f"{amount}")


@app.command()
def balance(
    private_key: str = typer.Option(
        ..., "--private-key", "-k", envvar="MADWALLET_PRIVATE_KEY", help="Hex private key"
    ),
    curve: int = typer.Option(1, "--curve", "-c"),
    rpc_url: str | None = typer.Option(None, "--rpc-url", help="Node RPC URL"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Show the spendable value of an account."""
    settings = _settings(rpc_url, log_level)
    _run(_show_balance(settings, private_key, curve))


async def _show_balance(settings: Settings, private_key: str, curve: int) -> None:
    wallet, account = await _open_wallet(settings, private_key, curve)
    try:
        value = await wallet.get_balance(account.address)
        typer.echo(f"{account.address}: {value}")
    finally:
        await wallet.close()


@app.command()
def send(
    to: str = typer.Option(..., "--to", "-t", help="Recipient address"),
    value: str = typer.Option(..., "--value", "-v", help="Amount (decimal or 0x hex)"),
    to_curve: int = typer.Option(1, "--to-curve", help="Recipient curve"),
    private_key: str = typer.Option(
        ..., "--private-key", "-k", envvar="MADWALLET_PRIVATE_KEY", help="Hex private key"
    ),
    curve: int = typer.Option(1, "--curve", "-c"),
    change_address: str | None = typer.Option(None, "--change-address"),
    change_curve: int | None = typer.Option(None, "--change-curve"),
    utxo_ids: list[str] = typer.Option([], "--utxo-id", help="Spend only these UTXOs"),
    rpc_url: str | None = typer.Option(None, "--rpc-url", help="Node RPC URL"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Send value to an address."""
    settings = _settings(rpc_url, log_level)
    try:
        options = BuildOptions(
            change_address=change_address, change_curve=change_curve, utxo_ids=utxo_ids
        )
    except PydanticValidationError as e:
        logger.error(f"Invalid options: {e}")
        raise typer.Exit(1)
    _run(_send_value(settings, private_key, curve, to, value, to_curve, options))


async def _send_value(
    settings: Settings,
    private_key: str,
    curve: int,
    to: str,
    value: str,
    to_curve: int,
    options: BuildOptions,
) -> None:
    wallet, account = await _open_wallet(settings, private_key, curve)
    try:
        await wallet.builder.create_value_store(account.address, value, to, to_curve)
        tx_hash = await wallet.builder.send(
            options.change_address, options.change_curve, options.utxo_ids
        )
        typer.echo(tx_hash)
    finally:
        await wallet.close()


@app.command()
def store(
    index: str = typer.Option(..., "--index", "-i", help="Index: 0x-prefixed hex or text"),
    data: str = typer.Option(..., "--data", "-d", help="Payload: 0x-prefixed hex or text"),
    duration: int = typer.Option(..., "--duration", "-e", help="Lease length in epochs"),
    issued_at: int | None = typer.Option(None, "--issued-at", help="Issue epoch override"),
    private_key: str = typer.Option(
        ..., "--private-key", "-k", envvar="MADWALLET_PRIVATE_KEY", help="Hex private key"
    ),
    curve: int = typer.Option(1, "--curve", "-c"),
    rpc_url: str | None = typer.Option(None, "--rpc-url", help="Node RPC URL"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Lease a data store, renewing any existing store at the same index."""
    settings = _settings(rpc_url, log_level)
    _run(_store_data(settings, private_key, curve, index, data, duration, issued_at))


async def _store_data(
    settings: Settings,
    private_key: str,
    curve: int,
    index: str,
    data: str,
    duration: int,
    issued_at: int | None,
) -> None:
    wallet, account = await _open_wallet(settings, private_key, curve)
    try:
        await wallet.builder.create_data_store(account.address, index, duration, data, issued_at)
        tx_hash = await wallet.builder.send()
        typer.echo(tx_hash)
    finally:
        await wallet.close()


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
