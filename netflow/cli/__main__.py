# netflow/cli/__main__.py

"""
Netflow Indexer CLI

Usage: python -m netflow.cli [--config FILE] COMMAND [options]
"""

import click

from .context import CLIContext


@click.group()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='YAML config file (defaults to environment variables)')
@click.option('--env-file', type=click.Path(dir_okay=False), help='.env file to load')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, config_path, env_file, verbose):
    """Exchange netflow indexer

    Indexes ERC-20 transfers into and out of watched exchange addresses and
    serves the running netflow over HTTP.
    """
    cli_context = CLIContext(config_path=config_path, env_file=env_file,
                             log_level="DEBUG" if verbose else None)
    ctx.obj = cli_context
    ctx.call_on_close(cli_context.shutdown)


from .commands.index import run, index, serve
from .commands.query import netflow, transfers, watched, verify

cli.add_command(run)
cli.add_command(index)
cli.add_command(serve)
cli.add_command(netflow)
cli.add_command(transfers)
cli.add_command(watched)
cli.add_command(verify)


if __name__ == '__main__':
    cli()
