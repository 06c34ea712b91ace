import click

from . import __version__
from .bot import main as run_main
from .config import get_constants


@click.group()
@click.version_option(__version__)
def cli():
    '''
    Liquidator for under-collateralized loans.
    '''


@cli.command()
@click.option('--accounts', 'acc_names', default=None,
              help='Comma separated brownie account names.')
@click.option('--chain', 'chain_name', required=True,
              help='Key of scripts/constants/constants.json to use.')
@click.option('--network', 'network_name', default=None,
              help='Brownie network id. Defaults to --chain.')
def run(acc_names, chain_name, network_name):
    '''
    Scan and liquidate positions until stopped.
    '''
    from brownie import accounts
    if not acc_names:
        acc_names = click.prompt(
            "Account", type=click.Choice(accounts.load()))
    click.echo(f"Starting liquidator on '{network_name or chain_name}'")
    run_main(acc_names, chain_name, network_name)


@cli.command()
@click.option('--chain', 'chain_name', required=True)
def show_config(chain_name):
    '''
    Print the constants the liquidator would run with.
    '''
    consts = get_constants(chain_name)
    for key in sorted(consts):
        click.echo(f'{key}: {consts[key]}')


if __name__ == '__main__':
    cli()
