import click

from dailyzip import create_app
from dailyzip.cli import run_backup_from_app


@click.command()
@click.option('--verbose', '-v', is_flag=True, help='Print the run log.')
@click.pass_context
def main(ctx, verbose):
    """Run one backup with settings from the environment and exit."""
    app = create_app()
    ctx.exit(run_backup_from_app(app, verbose=verbose))


if __name__ == '__main__':
    main()
