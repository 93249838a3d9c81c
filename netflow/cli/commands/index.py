# netflow/cli/commands/index.py

import click

from ...pipeline import IndexingLoop
from ... import runner


@click.command()
@click.option('--host', help='API bind host (overrides config)')
@click.option('--port', type=int, help='API port (overrides config)')
@click.pass_obj
def run(cli_context, host, port):
    """Index continuously and serve the read API"""
    runner.run_all(cli_context.container, host=host, port=port)


@click.command()
@click.option('--once', is_flag=True, help='Run a single cycle and exit')
@click.pass_obj
def index(cli_context, once):
    """Run the indexing loop without the API"""
    container = cli_context.container
    if not once:
        runner.run_indexer(container)
        return

    loop = container.get(IndexingLoop)
    loop.load_cursors()
    report = loop.run_cycle()

    for r in report.ranges:
        click.echo(f"{r.token_address} {r.from_block}-{r.to_block}: "
                   f"{r.received} logs, {r.inserted} inserted, {r.malformed} malformed")
    if not report.ranges and not report.errors:
        click.echo(f"Nothing to index (safe head {report.safe_head})")
    for error in report.errors:
        click.echo(f"Error: {error}", err=True)
    if report.errors:
        raise click.exceptions.Exit(1)


@click.command()
@click.option('--host', help='API bind host (overrides config)')
@click.option('--port', type=int, help='API port (overrides config)')
@click.pass_obj
def serve(cli_context, host, port):
    """Serve the read API without indexing"""
    runner.serve_api(cli_context.container, host=host, port=port)
