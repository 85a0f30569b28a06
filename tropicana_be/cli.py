#!/usr/bin/env python3
"""
Club Tropicana CLI

Usage:
    tropicana --help
    tropicana simulate --spins 100000 --bet 10 --seed 42
    tropicana paytable
    tropicana run --port 5000
"""

import json
import os
import sys
import click

from .models import ALLOWED_BETS, DEFAULT_BET, MIN_MATCH_COUNT
from .schemas import build_paytable
from .utils.payline_evaluator import PAYLINES
from .utils.slot_tester import SlotTester
from .utils.symbol_table import default_symbol_table, rebalanced_symbol_table


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.pass_context
def cli(ctx, verbose):
    """Club Tropicana - slot engine tools."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose


@cli.command()
@click.option('--spins', '-n', type=click.IntRange(min=1), default=10_000, show_default=True,
              help='Number of spins to simulate')
@click.option('--bet', '-b', type=click.Choice([str(b) for b in ALLOWED_BETS]), default=str(DEFAULT_BET),
              show_default=True, help='Stake per spin')
@click.option('--seed', type=int, default=None, help='RNG seed for a reproducible run')
@click.option('--rebalanced', is_flag=True, help='Scale standard weights so Wild and Scatter can land')
@click.option('--wild-substitutes', is_flag=True, help='Let Wild count toward every line symbol')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw report as JSON')
@click.pass_context
def simulate(ctx, spins, bet, seed, rebalanced, wild_substitutes, as_json):
    """Run a Monte Carlo simulation and report RTP and hit statistics."""
    tester = SlotTester(
        num_spins=spins,
        bet_amount=int(bet),
        seed=seed,
        rebalanced=rebalanced,
        wild_substitutes=wild_substitutes,
    )
    if ctx.obj.get('verbose'):
        click.echo(f"🎰 Simulating {spins:,} spins at bet {bet}...")
    report = tester.run_simulation()

    if as_json:
        click.echo(json.dumps(report, indent=2))
    else:
        click.echo(tester.format_summary(report))


@cli.command()
@click.option('--rebalanced', is_flag=True, help='Show the rebalanced weights')
@click.option('--json', 'as_json', is_flag=True, help='Print the paytable as JSON')
def paytable(rebalanced, as_json):
    """Show symbols, weights, values and paylines."""
    symbol_table = rebalanced_symbol_table() if rebalanced else default_symbol_table()
    if as_json:
        click.echo(json.dumps(build_paytable(symbol_table), indent=2, ensure_ascii=False))
        return

    click.echo("\n🌴 Club Tropicana Paytable")
    click.echo("=" * 48)
    click.echo(f"{'Symbol':<14}{'Icon':<6}{'Value':>7}{'Weight':>9}  Category")
    for symbol in symbol_table:
        click.echo(f"{symbol.name:<14}{symbol.icon:<6}{symbol.value:>7}{symbol.weight:>9.3f}  {symbol.category.value}")
    click.echo("=" * 48)
    click.echo(f"Standard weight total: {symbol_table.standard_weight_total}")
    click.echo(f"Line win: value x bet x count / 100 for {MIN_MATCH_COUNT}+ matching symbols")
    click.echo("Paylines:")
    for index, line in enumerate(PAYLINES):
        click.echo(f"  {index}: {' '.join(f'({reel},{row})' for reel, row in line)}")


@cli.command()
@click.option('--host', default=lambda: os.getenv('HOST', '127.0.0.1'), help='Bind address')
@click.option('--port', type=int, default=lambda: int(os.getenv('PORT', '5000')), help='Bind port')
def run(host, port):
    """Serve the game API and Socket.IO channel."""
    # Importing the app validates configuration; keep it out of simulate/paytable
    from .app import create_app

    app, socketio = create_app()
    click.echo(f"🌴 Club Tropicana listening on http://{host}:{port}")
    socketio.run(app, host=host, port=port, debug=app.debug, allow_unsafe_werkzeug=True)


if __name__ == '__main__':
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\n\n👋 Interrupted by user")
        sys.exit(0)
