"""CLI entry point for the relay, the device daemon and console commands."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import replace
from decimal import Decimal

import click
import httpx

from dasher_automate.api.client import RelayClient
from dasher_automate.config import load_config
from dasher_automate.daemon import run_device
from dasher_automate.device.replay import DryRunExecutor, JsonlOfferSource
from dasher_automate.errors import ConfigError, RelayCommandError
from dasher_automate.models.offer import Offer
from dasher_automate.policy.engine import evaluate
from dasher_automate.relay.server import run_relay


def _http_base(relay_url: str) -> str:
    """ws://host:port -> http://host:port (the relay serves both)."""
    if relay_url.startswith("wss://"):
        return "https://" + relay_url[len("wss://"):]
    if relay_url.startswith("ws://"):
        return "http://" + relay_url[len("ws://"):]
    return relay_url


def _load(ctx: click.Context):
    try:
        return load_config(ctx.obj["config_path"])
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _run_command(coro) -> dict:
    """Run a RelayClient coroutine, exiting non-zero on relay/transport errors."""
    try:
        return asyncio.run(coro)
    except RelayCommandError as exc:
        click.echo(f"Error: {exc.message} (HTTP {exc.status_code})", err=True)
        sys.exit(1)
    except httpx.HTTPError as exc:
        click.echo(f"Error: cannot reach relay: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """dasher-automate - offer decision engine and device/console relay."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Servers ────────────────────────────────────────────


@cli.command()
@click.option("--host", default=None, help="Bind address (overrides config)")
@click.option("--port", type=int, default=None, help="Listen port (overrides config)")
@click.pass_context
def relay(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the relay server."""
    cfg = _load(ctx)
    if not ctx.obj["verbose"]:
        logging.getLogger().setLevel(cfg.log_level.upper())
    if host:
        cfg.relay.host = host
    if port:
        cfg.relay.port = port

    click.echo(f"Starting relay on {cfg.relay.host}:{cfg.relay.port}")
    asyncio.run(run_relay(cfg.relay))


@cli.command()
@click.option("--offers", "offers_path", type=click.Path(exists=True, dir_okay=False),
              default=None, help="JSON-lines file of offers to replay")
@click.option("--interval", type=float, default=1.0, show_default=True,
              help="Seconds between offer-screen checks")
@click.option("--enable/--no-enable", default=None, help="Start with the service enabled")
@click.pass_context
def device(ctx: click.Context, offers_path: str | None, interval: float, enable: bool | None) -> None:
    """Run a device: replay offers, decide, and log actions (dry run)."""
    cfg = _load(ctx)
    if not ctx.obj["verbose"]:
        logging.getLogger().setLevel(cfg.log_level.upper())
    if enable is not None:
        cfg.device.start_enabled = enable

    click.echo(f"Starting device {cfg.device.device_id} -> {cfg.device.relay_url}")
    source = JsonlOfferSource(offers_path)
    asyncio.run(run_device(cfg, source, DryRunExecutor(), poll_interval=interval))


# ── Local ──────────────────────────────────────────────


@cli.command(name="evaluate")
@click.option("--pay", required=True, help='Pay text as shown, e.g. "$7.50"')
@click.option("--distance", required=True, help='Distance text as shown, e.g. "5.2 mi"')
@click.option("--store", default="", help="Store name")
@click.option("--json", "as_json", is_flag=True, help="Print the verdict as JSON")
@click.pass_context
def evaluate_cmd(ctx: click.Context, pay: str, distance: str, store: str, as_json: bool) -> None:
    """Evaluate one offer against the configured rules (manual override)."""
    cfg = _load(ctx)
    verdict = evaluate(Offer(pay=pay, distance=distance, store_name=store), cfg.rules)
    if as_json:
        click.echo(json.dumps(verdict.to_dict()))
        return
    click.echo(f"Decision:     {verdict.decision.value.upper()}")
    click.echo(f"Reason:       {verdict.reason}")
    click.echo(f"Pay:          {verdict.pay}")
    click.echo(f"Miles:        {verdict.miles}")
    ppm = "n/a" if verdict.pay_per_mile is None else f"{verdict.pay_per_mile:.2f}"
    click.echo(f"Pay per mile: {ppm}")


@cli.command(name="show-config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show the effective configuration."""
    cfg = _load(ctx)
    r = cfg.rules
    click.echo(f"Relay:           {cfg.relay.host}:{cfg.relay.port}")
    click.echo(f"Console prefix:  {cfg.relay.console_prefix}")
    click.echo(f"Device ID:       {cfg.device.device_id}")
    click.echo(f"Relay URL:       {cfg.device.relay_url}")
    click.echo(f"Reconnect delay: {cfg.device.reconnect_delay}s")
    click.echo(f"Busy policy:     {cfg.device.busy_policy.value}")
    click.echo(f"Min pay:         {r.min_pay}")
    click.echo(f"Max distance:    {r.max_distance}")
    click.echo(f"Min pay/mile:    {r.min_pay_per_mile}")
    click.echo(f"Blacklist:       {', '.join(r.blacklisted_stores) or '(none)'}")
    click.echo(f"Zero distance:   {'allowed' if r.allow_zero_distance else 'declined'}")


@cli.command()
@click.option("--base-url", default=None, help="Console base URL (defaults to the relay)")
@click.pass_context
def pair(ctx: click.Context, base_url: str | None) -> None:
    """Print the console connect URL for this device."""
    cfg = _load(ctx)
    base = (base_url or _http_base(cfg.device.relay_url)).rstrip("/")
    click.echo(f"Device ID:   {cfg.device.device_id}")
    click.echo(f"Console ID:  {cfg.relay.console_prefix}{cfg.device.device_id}")
    click.echo(f"Connect URL: {base}/connect?device={cfg.device.device_id}")


# ── Console commands ───────────────────────────────────


@cli.command()
@click.argument("device_id")
@click.option("--relay-url", default=None, help="Relay HTTP base URL")
@click.pass_context
def status(ctx: click.Context, device_id: str, relay_url: str | None) -> None:
    """Query a device's status on the relay."""
    cfg = _load(ctx)

    async def _status():
        async with RelayClient(relay_url or _http_base(cfg.device.relay_url)) as client:
            return await client.get_status(device_id)

    body = _run_command(_status())
    click.echo(f"{body.get('deviceId', device_id)}: {body.get('status', 'unknown')}")


@cli.command(name="push-rules")
@click.argument("device_id")
@click.option("--min-pay", type=str, default=None, help="Override minimum pay")
@click.option("--max-distance", type=str, default=None, help="Override maximum distance")
@click.option("--min-pay-per-mile", type=str, default=None, help="Override minimum pay per mile")
@click.option("--blacklist", "blacklist", multiple=True, help="Blacklisted store (repeatable)")
@click.option("--relay-url", default=None, help="Relay HTTP base URL")
@click.pass_context
def push_rules(
    ctx: click.Context,
    device_id: str,
    min_pay: str | None,
    max_distance: str | None,
    min_pay_per_mile: str | None,
    blacklist: tuple[str, ...],
    relay_url: str | None,
) -> None:
    """Push the configured rules (with overrides) to a connected device."""
    cfg = _load(ctx)
    rules = cfg.rules
    try:
        if min_pay is not None:
            rules = replace(rules, min_pay=Decimal(min_pay))
        if max_distance is not None:
            rules = replace(rules, max_distance=Decimal(max_distance))
        if min_pay_per_mile is not None:
            rules = replace(rules, min_pay_per_mile=Decimal(min_pay_per_mile))
    except ArithmeticError:
        click.echo("Error: thresholds must be numbers", err=True)
        sys.exit(1)
    if blacklist:
        rules = replace(rules, blacklisted_stores=tuple(blacklist))

    payload = rules.to_dict()
    payload.pop("enabled")  # the toggle command owns the enabled flag

    async def _push():
        async with RelayClient(relay_url or _http_base(cfg.device.relay_url)) as client:
            return await client.push_rules(device_id, payload)

    _run_command(_push())
    click.echo(f"Rules pushed to {device_id}")


@cli.command()
@click.argument("device_id")
@click.option("--on/--off", "enabled", required=True, help="Enable or disable automation")
@click.option("--relay-url", default=None, help="Relay HTTP base URL")
@click.pass_context
def toggle(ctx: click.Context, device_id: str, enabled: bool, relay_url: str | None) -> None:
    """Enable or disable automatic accept/decline on a device."""
    cfg = _load(ctx)

    async def _toggle():
        async with RelayClient(relay_url or _http_base(cfg.device.relay_url)) as client:
            return await client.toggle(device_id, enabled)

    _run_command(_toggle())
    click.echo(f"Service {'enabled' if enabled else 'disabled'} on {device_id}")


if __name__ == "__main__":
    cli()
