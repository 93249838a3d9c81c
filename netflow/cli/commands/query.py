# netflow/cli/commands/query.py

"""
Read-only commands against the committed state.
"""

import json

import click

from ...database import NetflowStore
from ...types import format_amount


def _tokens(cli_context, token):
    return [token.lower()] if token else cli_context.config.token_addresses


@click.command()
@click.option('--token', help='Token address (defaults to all configured tokens)')
@click.pass_obj
def netflow(cli_context, token):
    """Show the cumulative netflow per token"""
    store = cli_context.container.get(NetflowStore)
    data = [store.get_netflow(t).to_dict() for t in _tokens(cli_context, token)]
    click.echo(json.dumps(data, indent=2))


@click.command()
@click.option('--token', required=True, help='Token address')
@click.option('--limit', type=click.IntRange(1, 1000), default=10, show_default=True)
@click.option('--offset', type=click.IntRange(0), default=0)
@click.pass_obj
def transfers(cli_context, token, limit, offset):
    """List the most recent indexed transfers of a token"""
    store = cli_context.container.get(NetflowStore)
    for event in store.list_transfers(token, limit=limit, offset=offset):
        click.echo(f"{event.block_number:>10} {event.direction.value:<3} "
                   f"{format_amount(event.amount):>30} {event.tx_hash}:{event.log_index}")


@click.command()
@click.pass_obj
def watched(cli_context):
    """List the watched exchange addresses"""
    store = cli_context.container.get(NetflowStore)
    labels = store.get_watched_addresses()
    if not labels:
        # Nothing synced yet; fall back to the configuration
        labels = {w.address: w.label for w in cli_context.config.watched}
    for address, label in sorted(labels.items()):
        click.echo(f"{address} {label or ''}".rstrip())


@click.command()
@click.option('--token', help='Token address (defaults to all configured tokens)')
@click.pass_obj
def verify(cli_context, token):
    """Check stored totals against a recomputation from raw transfers"""
    store = cli_context.container.get(NetflowStore)
    mismatches = 0
    for t in _tokens(cli_context, token):
        stored = store.get_netflow(t)
        recomputed = store.recompute_totals(t)
        ok = (stored.inflow_total == recomputed.inflow_total
              and stored.outflow_total == recomputed.outflow_total)
        status = "ok" if ok else "MISMATCH"
        click.echo(f"{t}: {status} net={format_amount(stored.cumulative_net)} "
                   f"recomputed={format_amount(recomputed.cumulative_net)}")
        if not ok:
            mismatches += 1
    if mismatches:
        raise click.exceptions.Exit(1)
