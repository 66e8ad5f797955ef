"""
Backup executor - orchestrates one backup run.

Workflow:
1. Check that the destination is reachable (hard stop if not)
2. Derive today's archive path and delete a same-day archive if present
3. Compress the configured sources into the archive
4. Rotate: keep the newest N archives, delete the rest
5. Append a completion line to the destination log
6. Notify the user of the outcome

Runs are not safe to overlap against the same destination: stale-target
deletion and rotation both mutate it. Callers serialize invocations.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from dailyzip.models import (
    BackupJobConfig,
    BackupOutcome,
    BackupRunResult,
    Severity,
    format_duration
)
from .compression import ArchiverService, CompressionError, create_archiver
from .notifications import NotificationSink, create_notifier
from .retention import RetentionManager
from .storage import DestinationStore, LocalDestinationStore

logger = logging.getLogger(__name__)

NOTIFY_TITLE_SUCCESS = 'Backup completed'
NOTIFY_TITLE_FAILURE = 'Backup failed'


class BackupExecutor:
    """
    Runs a backup job against injected collaborators.

    The executor never raises for the expected failure kinds; every run ends
    in a BackupRunResult whose outcome the caller maps to an exit code.
    """

    def __init__(
        self,
        config: BackupJobConfig,
        store: DestinationStore,
        archiver: ArchiverService,
        notifier: NotificationSink,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize backup executor.

        Args:
            config: Job configuration for this run
            store: Destination store holding archives and the log
            archiver: Service that builds the archive
            notifier: Sink for the terminal notification
            clock: Returns the current local time (defaults to datetime.now)
        """
        self.config = config
        self.store = store
        self.archiver = archiver
        self.notifier = notifier
        self._clock = clock
        self.started_at = None
        self.archive_path = None
        self.logs = []

    def execute(self) -> BackupRunResult:
        """
        Execute the backup job.

        Returns:
            BackupRunResult describing the terminal outcome
        """
        self.started_at = self._now()
        self._log(f"Starting backup to {self.config.destination_root}")

        if not self.store.exists(self.config.destination_root):
            return self._fail(
                BackupOutcome.DESTINATION_UNREACHABLE,
                f"Backup destination is not reachable: {self.config.destination_root}"
            )

        self.archive_path = self.config.archive_path(self.started_at.date())

        try:
            self._remove_stale_archive()
            self._check_sources()
            self._log(f"Compressing {len(self.config.source_paths)} source(s) into {self._archive_name}")
            self.archiver.compress(list(self.config.source_paths), self.archive_path)
        except Exception as e:
            # CompressionError, or anything a third-party archiver raises
            return self._fail(BackupOutcome.COMPRESSION_FAILED, f"Compression failed: {e}")

        self._log(f"Archive created: {self._archive_name}")

        result = BackupRunResult(
            outcome=BackupOutcome.SUCCESS,
            started_at=self.started_at,
            finished_at=self.started_at,
            archive_path=self.archive_path,
            logs=self.logs
        )

        self._rotate(result)

        result.finished_at = self._now()
        duration_text = format_duration(result.finished_at - result.started_at)
        self._log(f"Backup completed in {duration_text}")

        self._append_completion_line(result, duration_text)
        self._notify(
            NOTIFY_TITLE_SUCCESS,
            f"{self._archive_name} created in {duration_text}",
            Severity.INFO
        )

        return result

    @property
    def _archive_name(self) -> str:
        return Path(self.archive_path).name

    def _remove_stale_archive(self):
        """
        Delete an archive left by an earlier run on the same day.

        Raises:
            CompressionError: If the old archive cannot be removed
        """
        if not self.store.exists(self.archive_path):
            return

        self._log(f"Replacing existing archive: {self._archive_name}")
        try:
            self.store.delete(self.archive_path)
        except Exception as e:
            raise CompressionError(f"Could not replace existing archive: {e}")

    def _check_sources(self):
        """Warn about unreachable sources and sources that contain the destination."""
        destination = Path(os.path.abspath(self.config.destination_root))

        for source_path in self.config.source_paths:
            if not Path(source_path).is_dir():
                self._log(f"Source is not an accessible directory: {source_path}", level=logging.WARNING)
                continue

            source = Path(os.path.abspath(source_path))
            if source == destination or source in destination.parents:
                self._log(
                    f"Destination {self.config.destination_root} is inside source {source_path}",
                    level=logging.WARNING
                )

    def _rotate(self, result: BackupRunResult):
        """Apply the retention policy. Failures here never change the outcome."""
        manager = RetentionManager(self.store)

        try:
            report = manager.rotate(
                self.config.destination_root,
                self.config.archive_pattern,
                self.config.retention_count
            )
        except Exception as e:
            error_msg = f"Rotation skipped, destination could not be listed: {e}"
            result.rotation_errors.append(error_msg)
            self._log(error_msg, level=logging.WARNING)
            return

        timestamp = self._now().strftime('%Y-%m-%d %H:%M:%S')
        self.logs.extend(f"[{timestamp}] {message}" for message in manager.logs)
        result.deleted_archives = [entry.identifier for entry in report.deleted]
        result.rotation_errors.extend(report.errors)

    def _append_completion_line(self, result: BackupRunResult, duration_text: str):
        line = f"{result.finished_at:%Y-%m-%d %H:%M:%S} - {self._archive_name} completed in {duration_text}"

        try:
            self.store.append_line(self.config.log_path, line)
        except Exception as e:
            result.log_error = f"Failed to write backup log: {e}"
            self._log(result.log_error, level=logging.ERROR)

    def _fail(self, outcome: BackupOutcome, message: str) -> BackupRunResult:
        self._log(message, level=logging.ERROR)
        result = BackupRunResult(
            outcome=outcome,
            started_at=self.started_at,
            finished_at=self._now(),
            error_message=message,
            logs=self.logs
        )
        self._notify(NOTIFY_TITLE_FAILURE, message, Severity.ERROR)
        return result

    def _notify(self, title: str, message: str, severity: Severity):
        try:
            self.notifier.notify(title, message, severity)
        except Exception as e:
            self._log(f"Notification failed: {e}", level=logging.WARNING)

    def _now(self) -> datetime:
        return self._clock() if self._clock else datetime.now()

    def _log(self, message: str, level: int = logging.INFO):
        """
        Add a log message with timestamp.

        Args:
            message: Log message
            level: Level used for the module logger
        """
        timestamp = self._now().strftime('%Y-%m-%d %H:%M:%S')
        self.logs.append(f"[{timestamp}] {message}")
        logger.log(level, message)


def execute_backup(
    config: BackupJobConfig,
    store: Optional[DestinationStore] = None,
    archiver: Optional[ArchiverService] = None,
    notifier: Optional[NotificationSink] = None
) -> BackupRunResult:
    """
    Execute a backup job with production collaborators by default.

    Args:
        config: Job configuration
        store: Destination store (default: LocalDestinationStore)
        archiver: Archiver (default: chosen from config)
        notifier: Notification sink (default: desktop)

    Returns:
        BackupRunResult
    """
    executor = BackupExecutor(
        config,
        store=store or LocalDestinationStore(),
        archiver=archiver or create_archiver(config),
        notifier=notifier or create_notifier('desktop')
    )
    return executor.execute()
