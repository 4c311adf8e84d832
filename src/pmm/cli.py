"""Command-line interface for pmm."""

import asyncio
from typing import List, Optional, Tuple

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from pmm import __version__
from pmm.config import MMConfig, get_settings, reload_settings
from pmm.market_maker.state import MMStateSnapshot
from pmm.market_maker.types import FairValueMethod, QuoteLadder, Signal, Venue
from pmm.utils.logging import setup_logging

console = Console()

FV_METHODS = [m.value for m in FairValueMethod]
VENUES = [v.value for v in Venue]
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _ladder_options(func):
    options = [
        click.option("--spread", "base_spread_cents", type=float, help="Base spread in cents"),
        click.option("--min-spread", "min_spread_cents", type=float, help="Minimum spread in cents"),
        click.option("--max-spread", "max_spread_cents", type=float, help="Maximum spread in cents"),
        click.option("--size", "order_size", type=float, help="Shares per innermost level"),
        click.option("--max-inventory", type=float, help="Inventory ceiling in shares"),
        click.option("--skew", "skew_factor", type=float, help="Inventory skew factor (0-1)"),
        click.option("--vol-mult", "volatility_multiplier", type=float, help="Volatility multiplier"),
        click.option("--alpha", "fair_value_alpha", type=float, help="Fair value EMA alpha"),
        click.option("--fv-method", "fair_value_method", type=click.Choice(FV_METHODS), help="Fair value method"),
        click.option("--max-orders", "max_orders_per_side", type=int, help="Price levels per side"),
        click.option("--level-spacing", "level_spacing_cents", type=float, help="Extra cents per level"),
        click.option("--level-decay", "level_size_decay", type=float, help="Size decay per level"),
        click.option("--max-loss", "max_loss_usd", type=float, help="Realized loss that halts quoting"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _setup_logging(log_level: Optional[str]) -> None:
    settings = get_settings()
    setup_logging(log_level or settings.log_level, json_output=settings.log_json)


def _build_config(venue: str, market_id: str, token_id: str, **overrides) -> MMConfig:
    try:
        return get_settings().build_mm_config(venue, market_id, token_id, **overrides)
    except ValidationError as e:
        raise click.BadParameter(str(e)) from e


def _ladder_table(ladder: QuoteLadder) -> Table:
    table = Table(title="Quote Ladder")
    table.add_column("Level", justify="right")
    table.add_column("Bid Size", justify="right")
    table.add_column("Bid", justify="right", style="green")
    table.add_column("Ask", justify="right", style="red")
    table.add_column("Ask Size", justify="right")

    for i in range(max(len(ladder.bids), len(ladder.asks))):
        bid = ladder.bids[i] if i < len(ladder.bids) else None
        ask = ladder.asks[i] if i < len(ladder.asks) else None
        table.add_row(
            f"L{i + 1}",
            str(bid.size) if bid else "-",
            f"{bid.price:.2f}" if bid else "-",
            f"{ask.price:.2f}" if ask else "-",
            str(ask.size) if ask else "-",
        )
    return table


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """pmm - binary-outcome market-making quoting engine."""
    pass


@cli.command()
@click.option("--bid", type=float, required=True, help="Best bid price")
@click.option("--ask", type=float, required=True, help="Best ask price")
@click.option("--bid-size", type=float, default=100.0, help="Size at best bid")
@click.option("--ask-size", type=float, default=100.0, help="Size at best ask")
@click.option("--inventory", type=float, default=0.0, help="Current signed inventory")
@click.option("--volatility", type=float, default=0.0, help="Return volatility to price in")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), help="Override the configured log level")
@_ladder_options
def quote(
    bid: float,
    ask: float,
    bid_size: float,
    ask_size: float,
    inventory: float,
    volatility: float,
    log_level: Optional[str],
    **overrides,
) -> None:
    """Compute one quote ladder for a given top of book."""
    from pmm.market_maker.dry_run import make_book
    from pmm.market_maker.fair_value import compute_fair_value
    from pmm.market_maker.quotes import generate_quotes

    _setup_logging(log_level)
    config = _build_config(Venue.POLYMARKET, "cli", "cli", **overrides)
    book = make_book(bid, ask, bid_size=bid_size, ask_size=ask_size)
    fair_value = compute_fair_value(book, config.fair_value_method)
    ladder = generate_quotes(config, fair_value, inventory, volatility)

    console.print(f"[bold]Fair value:[/bold] {ladder.fair_value:.4f} ({config.fair_value_method.value})")
    console.print(f"[bold]Spread:[/bold] {ladder.spread_cents:.2f}c  [bold]Skew:[/bold] {ladder.skew:.4f}")
    console.print(_ladder_table(ladder))


@cli.command()
@click.option("--venue", type=click.Choice(VENUES), default=Venue.POLYMARKET.value, help="Venue to simulate")
@click.option("--bid", type=float, default=0.48, help="Starting best bid")
@click.option("--ask", type=float, default=0.52, help="Starting best ask")
@click.option("--ticks", type=int, default=5, help="Number of evaluation ticks")
@click.option("--drift", type=float, default=0.0, help="Price change applied to the book each tick")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), help="Override the configured log level")
@_ladder_options
def simulate(
    venue: str,
    bid: float,
    ask: float,
    ticks: int,
    drift: float,
    log_level: Optional[str],
    **overrides,
) -> None:
    """Run a dry-run session against a drifting book."""
    from pmm.market_maker.bot import MarketMakerBot
    from pmm.market_maker.dry_run import PaperExecutionService, StaticPriceFeed, make_book
    from pmm.market_maker.manager import SessionManager

    _setup_logging(log_level)
    config = _build_config(venue, "sim-market", "sim-token-0001", **overrides)

    async def _simulate() -> Tuple[List[Signal], MMStateSnapshot]:
        feed = StaticPriceFeed(make_book(bid, ask))
        execution = PaperExecutionService()
        clock_ms = [0.0]

        manager = SessionManager(execution, feed, clock=lambda: clock_ms[0])
        bot = MarketMakerBot(execution, feed, manager=manager)
        await bot.add(config)

        placed: List[Signal] = []
        try:
            for i in range(ticks):
                step = i * drift
                feed.set_book(make_book(bid + step, ask + step))
                feed.push_price(config.market_id, (bid + ask) / 2 + step)
                clock_ms[0] += config.requote_interval_ms
                placed.extend(await bot.tick())
            snapshot = manager.status(config.id)[0]
        finally:
            await bot.stop()
        return placed, snapshot

    signals, snapshot = asyncio.run(_simulate())

    mode = "[yellow]DRY RUN[/yellow]"
    console.print(f"\n[bold]pmm simulation[/bold] - {mode} - {config.id}\n")

    table = Table(title="Placed Orders")
    table.add_column("Side")
    table.add_column("Price", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Reason", style="dim")
    for s in signals:
        table.add_row(s.type.value, f"{s.price:.2f}", str(s.size), s.reason)
    console.print(table)
    console.print(_status_table([snapshot]))


def _status_table(snapshots) -> Table:
    table = Table(title="Market Maker Status")
    table.add_column("Session", style="cyan")
    table.add_column("Status")
    table.add_column("FV", justify="right")
    table.add_column("EMA FV", justify="right")
    table.add_column("Inventory", justify="right")
    table.add_column("PnL", justify="right")
    table.add_column("Fills", justify="right")
    table.add_column("Bids/Asks", justify="right")
    for snap in snapshots:
        table.add_row(
            snap.session_id,
            snap.status,
            f"{snap.fair_value:.4f}",
            f"{snap.ema_fair_value:.4f}",
            f"{snap.inventory:g}",
            f"${snap.realized_pnl:.2f}",
            str(snap.fill_count),
            f"{snap.active_bids}/{snap.active_asks}",
        )
    return table


@cli.command()
@click.option("--env-file", type=click.Path(exists=True, dir_okay=False), help="Load settings from this file")
def config(env_file: Optional[str]) -> None:
    """Show current configuration."""
    if env_file:
        from pmm.config import Settings

        settings = Settings(_env_file=env_file)
    else:
        settings = reload_settings()

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    for name in type(settings).model_fields:
        value = getattr(settings, name)
        if isinstance(value, FairValueMethod):
            value = value.value
        table.add_row(name, str(value))

    console.print(table)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
