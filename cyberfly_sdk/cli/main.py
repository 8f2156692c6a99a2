"""
cyberfly_sdk.cli.main
=====================

`cyberfly`: wallet and node-ledger operations from the shell.

Examples
--------
    $ cyberfly new
    $ CYBERFLY_MNEMONIC="..." cyberfly derive
    $ cyberfly node 04b754ba...a7f8
    $ cyberfly balance k:04b754ba...a7f8
    $ cyberfly register --ip 203.0.113.7
    $ cyberfly claim
    $ cyberfly transfer k:9f... 12.5

Configuration
-------------
- API host : `--api-host` or env `CYBERFLY_API_HOST`
- Network  : `--network` or env `CYBERFLY_NETWORK_ID` (default: mainnet01)
- Chain    : `--chain` or env `CYBERFLY_CHAIN_ID` (default: 1)
- Phrase   : env `CYBERFLY_MNEMONIC`, otherwise prompted (hidden input)

Commands that talk to the ledger print the outcome as JSON and exit with
status 1 when it is not a success.
"""

from __future__ import annotations

import dataclasses
import enum
import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import typer

from ..config import LedgerConfig
from ..ledger.client import NodeLedger, OperationResult, QueryResult
from ..ledger.outcome import Outcome
from ..node import NodeRegistrar, fetch_public_ip
from ..version import version as sdk_version
from ..wallet.identity import Identity, IdentityDeriver, peer_id_from_secret_key

log = logging.getLogger(__name__)

MNEMONIC_ENV = "CYBERFLY_MNEMONIC"

app = typer.Typer(
    name="cyberfly",
    help="Cyberfly node wallet and ledger CLI.",
    no_args_is_help=True,
    add_completion=False,
)

__all__ = ["app", "main", "run"]


@dataclass
class Ctx:
    config: LedgerConfig
    deriver: IdentityDeriver


def _jsonable(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj) if f.repr}
    if isinstance(obj, dict):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, enum.Enum):
        return obj.value
    return obj


def _print_json(obj: Any) -> None:
    typer.echo(json.dumps(_jsonable(obj), indent=2, ensure_ascii=False))


def _outcome_json(outcome: Outcome) -> dict:
    return {
        "status": outcome.status.value,
        "error": outcome.error,
        "requestKey": outcome.request_key,
        "attempts": outcome.attempts,
    }


def _finish(result: Any) -> None:
    payload = {"outcome": _outcome_json(result.outcome), "view": result.view}
    if isinstance(result, OperationResult):
        payload["action"] = result.action
    _print_json(payload)
    if not result.ok:
        raise typer.Exit(code=1)


def _read_phrase() -> str:
    phrase = os.environ.get(MNEMONIC_ENV)
    if phrase:
        return phrase
    return typer.prompt("Recovery phrase", hide_input=True)


def _identity(ctx: typer.Context) -> Identity:
    c: Ctx = ctx.obj
    phrase = _read_phrase()
    if not c.deriver.validate(phrase):
        raise typer.BadParameter("invalid recovery phrase")
    return c.deriver.derive(phrase)


def make_ledger(config: LedgerConfig, identity: Optional[Identity] = None) -> NodeLedger:
    return NodeLedger(config, identity=identity)


@app.callback()
def _root(
    ctx: typer.Context,
    api_host: Optional[str] = typer.Option(None, "--api-host", help="Chainweb API host URL.", envvar="CYBERFLY_API_HOST"),
    network: Optional[str] = typer.Option(None, "--network", help="Network id.", envvar="CYBERFLY_NETWORK_ID"),
    chain: Optional[str] = typer.Option(None, "--chain", help="Chain id.", envvar="CYBERFLY_CHAIN_ID"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="HTTP timeout in seconds."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (DEBUG, INFO, ...)."),
) -> None:
    """Set effective configuration for this CLI process."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    overrides = {
        k: v
        for k, v in {
            "api_host": api_host,
            "network_id": network,
            "chain_id": chain,
            "request_timeout": timeout,
        }.items()
        if v is not None
    }
    try:
        config = LedgerConfig.with_overrides(LedgerConfig.from_env(), **overrides)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    ctx.obj = Ctx(config=config, deriver=IdentityDeriver())


# --- Wallet commands -----------------------------------------------------------


@app.command("version")
def version() -> None:
    """Print the SDK version."""
    typer.echo(f"cyberfly-sdk {sdk_version()}")


@app.command("new")
def new(
    ctx: typer.Context,
    words: int = typer.Option(12, "--words", "-w", help="Phrase length (12, 15, 18, 21 or 24)."),
) -> None:
    """Generate a new recovery phrase and print the identity it derives."""
    c: Ctx = ctx.obj
    try:
        phrase = c.deriver.generate(words)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    identity = c.deriver.derive(phrase)
    _print_json(
        {
            "mnemonic": phrase,
            "publicKey": identity.public_key_hex,
            "account": identity.account_id,
            "peerId": peer_id_from_secret_key(identity.secret_key_hex),
        }
    )


@app.command("derive")
def derive(
    ctx: typer.Context,
    show_secret: bool = typer.Option(False, "--show-secret", help="Also print the secret key."),
) -> None:
    """Derive the node identity from a recovery phrase."""
    identity = _identity(ctx)
    out = {"publicKey": identity.public_key_hex, "account": identity.account_id}
    if show_secret:
        out["secretKey"] = identity.secret_key_hex
    _print_json(out)


@app.command("validate")
def validate(ctx: typer.Context) -> None:
    """Check a recovery phrase (word count and checksum)."""
    c: Ctx = ctx.obj
    ok = c.deriver.validate(_read_phrase())
    _print_json({"valid": ok})
    if not ok:
        raise typer.Exit(code=1)


@app.command("peer-id")
def peer_id(ctx: typer.Context) -> None:
    """Print the libp2p peer id for the wallet key."""
    identity = _identity(ctx)
    typer.echo(peer_id_from_secret_key(identity.secret_key_hex))


# --- Ledger reads --------------------------------------------------------------


@app.command("node")
def node(
    ctx: typer.Context,
    peer: Optional[str] = typer.Argument(None, help="Peer id (default: wallet public key)."),
) -> None:
    """Show a node's ledger entry and stake."""
    c: Ctx = ctx.obj
    peer = peer or _identity(ctx).public_key_hex
    ledger = make_ledger(c.config)
    info = ledger.get_node_info(peer)
    stake = ledger.get_node_stake(peer)
    _print_json(
        {
            "node": {"outcome": _outcome_json(info.outcome), "view": info.view},
            "stake": {"outcome": _outcome_json(stake.outcome), "view": stake.view},
        }
    )
    if not info.ok:
        raise typer.Exit(code=1)


@app.command("rewards")
def rewards(
    ctx: typer.Context,
    peer: Optional[str] = typer.Argument(None, help="Peer id (default: wallet public key)."),
) -> None:
    """Show days staked and the claimable reward."""
    c: Ctx = ctx.obj
    peer = peer or _identity(ctx).public_key_hex
    _finish(make_ledger(c.config).calculate_rewards(peer))


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show network staking totals and the current APY."""
    c: Ctx = ctx.obj
    ledger = make_ledger(c.config)
    totals = ledger.get_stake_stats()
    apy = ledger.get_apy()
    _print_json({"stats": totals.view, "apy": apy.view, "outcome": _outcome_json(totals.outcome)})
    if not totals.ok:
        raise typer.Exit(code=1)


@app.command("balance")
def balance(
    ctx: typer.Context,
    account: Optional[str] = typer.Argument(None, help="Account (default: wallet account)."),
) -> None:
    """Show a token balance."""
    c: Ctx = ctx.obj
    account = account or _identity(ctx).account_id
    result: QueryResult = make_ledger(c.config).get_balance(account)
    _finish(result)


# --- Ledger mutations ----------------------------------------------------------


@app.command("register")
def register(
    ctx: typer.Context,
    ip: Optional[str] = typer.Option(None, "--ip", help="Public IP (default: looked up)."),
) -> None:
    """Register this node, or re-activate it if inactive."""
    c: Ctx = ctx.obj
    identity = _identity(ctx)
    registrar = NodeRegistrar(
        make_ledger(c.config, identity),
        identity,
        ip_lookup=(lambda: ip) if ip else fetch_public_ip,
    )
    _finish(registrar.register())


@app.command("stake")
def stake(
    ctx: typer.Context,
    peer: Optional[str] = typer.Argument(None, help="Peer id (default: wallet public key)."),
) -> None:
    """Stake the fixed amount on a node."""
    c: Ctx = ctx.obj
    identity = _identity(ctx)
    _finish(make_ledger(c.config, identity).stake(peer or identity.public_key_hex))


@app.command("unstake")
def unstake(
    ctx: typer.Context,
    peer: Optional[str] = typer.Argument(None, help="Peer id (default: wallet public key)."),
) -> None:
    """Withdraw the stake from a node."""
    c: Ctx = ctx.obj
    identity = _identity(ctx)
    _finish(make_ledger(c.config, identity).unstake(peer or identity.public_key_hex))


@app.command("claim")
def claim(
    ctx: typer.Context,
    peer: Optional[str] = typer.Argument(None, help="Peer id (default: wallet public key)."),
) -> None:
    """Claim the node's staking reward when one is available."""
    c: Ctx = ctx.obj
    identity = _identity(ctx)
    _finish(make_ledger(c.config, identity).claim_reward(peer or identity.public_key_hex))


@app.command("transfer")
def transfer(
    ctx: typer.Context,
    to_account: str = typer.Argument(..., help="Recipient k: account."),
    amount: str = typer.Argument(..., help="Amount (decimal)."),
) -> None:
    """Transfer tokens from the wallet account."""
    c: Ctx = ctx.obj
    identity = _identity(ctx)
    _finish(make_ledger(c.config, identity).transfer(to_account, amount))


# --- Entrypoints ---------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> int:
    """Run the CLI. Returns an integer exit code."""
    try:
        rv = app(prog_name="cyberfly", standalone_mode=False, args=argv)
        return rv if isinstance(rv, int) else 0
    except typer.Exit as e:
        return int(e.exit_code)
    except Exception as e:
        typer.echo(f"error: {e}", err=True)
        return 1


def run(argv: Optional[list[str]] = None) -> int:
    """Alias for :func:`main`."""
    return main(argv)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
