"""
Command line interface.

`flask --app dailyzip run-backup` performs exactly one run and exits with a
code derived from its outcome, so cron, systemd timers or Windows Task
Scheduler can drive it. Invocations against the same destination must not
overlap.
"""

import click
from flask import current_app

from dailyzip.backup.executor import execute_backup
from dailyzip.backup.notifications import create_notifier
from dailyzip.backup.retention import sort_newest_first
from dailyzip.backup.storage import LocalDestinationStore, StorageError
from dailyzip.models import BackupJobConfig


def _load_job_config() -> BackupJobConfig:
    try:
        return BackupJobConfig.from_mapping(current_app.config)
    except ValueError as e:
        raise click.UsageError(f"Invalid backup configuration: {e}")


def run_backup_from_app(app, verbose: bool = False) -> int:
    """
    Run one backup with the app's configuration and report it on the console.

    Returns:
        Process exit code (0 success, 1 compression failed, 2 destination unreachable)
    """
    with app.app_context():
        job_config = _load_job_config()
        result = execute_backup(
            job_config,
            notifier=create_notifier(app.config.get('NOTIFIER', 'desktop'))
        )

    if verbose:
        for line in result.logs:
            click.echo(line)

    if result.succeeded:
        click.echo(f"Backup created: {result.archive_path} ({result.duration_text})")
        if result.deleted_archives:
            click.echo(f"Rotated out {len(result.deleted_archives)} old archive(s)")
        for error in result.rotation_errors:
            click.echo(f"Warning: {error}", err=True)
        if result.log_error:
            click.echo(f"Warning: {result.log_error}", err=True)
    else:
        click.echo(f"Backup failed: {result.error_message}", err=True)

    return result.exit_code


def register_commands(app):
    """Attach dailyzip commands to the Flask CLI."""

    @app.cli.command('run-backup')
    @click.option('--verbose', '-v', is_flag=True, help='Print the run log.')
    @click.pass_context
    def run_backup_command(ctx, verbose):
        """Run one backup now."""
        exit_code = run_backup_from_app(current_app._get_current_object(), verbose=verbose)
        ctx.exit(exit_code)

    @app.cli.command('list-archives')
    def list_archives_command():
        """List retained archives, newest first."""
        job_config = _load_job_config()
        store = LocalDestinationStore()

        if not store.exists(job_config.destination_root):
            raise click.ClickException(
                f"Backup destination is not reachable: {job_config.destination_root}"
            )

        try:
            entries = store.list(job_config.destination_root, job_config.archive_pattern)
        except StorageError as e:
            raise click.ClickException(str(e))

        if not entries:
            click.echo("No archives found")
            return

        for entry in sort_newest_first(entries):
            size_mb = (entry.size or 0) / 1024 / 1024
            click.echo(f"{entry.name}  {entry.modified:%Y-%m-%d %H:%M:%S}  {size_mb:.2f} MB")
        click.echo(f"{len(entries)} archive(s), keeping at most {job_config.retention_count}")

