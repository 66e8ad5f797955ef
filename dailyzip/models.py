import json
import os
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional, Tuple


class Severity(Enum):
    """Notification severity"""
    INFO = 'info'
    ERROR = 'error'


class BackupOutcome(Enum):
    """Terminal state of a backup run"""
    SUCCESS = 'success'
    DESTINATION_UNREACHABLE = 'destination_unreachable'
    COMPRESSION_FAILED = 'compression_failed'


def format_duration(duration: timedelta) -> str:
    """Render a duration as HH:MM:SS. Hours keep counting past 24."""
    total = max(0, int(duration.total_seconds()))
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


EXIT_CODES = {
    BackupOutcome.SUCCESS: 0,
    BackupOutcome.COMPRESSION_FAILED: 1,
    BackupOutcome.DESTINATION_UNREACHABLE: 2,
}


def parse_source_paths(value) -> Tuple[str, ...]:
    """
    Normalize a configured source list.

    Accepts a list/tuple, a JSON array string, or a string separated by
    os.pathsep. Paths are kept verbatim (no stripping of inner spaces).
    """
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(p) for p in value if str(p).strip())

    text = str(value).strip()
    if not text:
        return ()
    if text.startswith('['):
        return tuple(str(p) for p in json.loads(text) if str(p).strip())
    return tuple(p for p in text.split(os.pathsep) if p.strip())


@dataclass(frozen=True)
class BackupJobConfig:
    """Backup job configuration, immutable for the duration of one run"""

    source_paths: Tuple[str, ...]
    destination_root: str
    retention_count: int = 10
    archive_prefix: str = 'Backup'
    archive_extension: str = 'zip'
    log_filename: str = 'BackupLog.txt'
    archiver_executable: Optional[str] = None
    archiver_timeout: Optional[float] = None

    def __post_init__(self):
        # Accept any sequence but store a tuple so the config stays hashable
        object.__setattr__(self, 'source_paths', tuple(self.source_paths))

        if not self.source_paths:
            raise ValueError("At least one source path is required")
        if not self.destination_root:
            raise ValueError("Destination root is required")
        if isinstance(self.retention_count, bool) or not isinstance(self.retention_count, int):
            raise ValueError(f"Retention count must be an integer, got {self.retention_count!r}")
        if self.retention_count < 1:
            raise ValueError(f"Retention count must be positive, got {self.retention_count}")
        if not self.archive_extension or self.archive_extension.startswith('.'):
            raise ValueError(f"Invalid archive extension: {self.archive_extension!r}")
        if self.archiver_timeout is not None and self.archiver_timeout <= 0:
            raise ValueError(f"Archiver timeout must be positive, got {self.archiver_timeout}")

    @property
    def archive_pattern(self) -> str:
        """Glob selecting the archives this job owns at the destination."""
        return f"{self.archive_prefix}_*.{self.archive_extension}"

    @property
    def log_path(self) -> str:
        return str(Path(self.destination_root) / self.log_filename)

    def archive_name(self, day: date) -> str:
        """
        Archive filename for a calendar day.

        Format: {prefix}_{YYYY-MM-DD}.{ext}
        """
        return f"{self.archive_prefix}_{day:%Y-%m-%d}.{self.archive_extension}"

    def archive_path(self, day: date) -> str:
        return str(Path(self.destination_root) / self.archive_name(day))

    @classmethod
    def from_mapping(cls, mapping: Mapping) -> 'BackupJobConfig':
        """
        Build a job config from a Flask config mapping.

        Args:
            mapping: app.config or any dict with the BACKUP_* keys

        Returns:
            BackupJobConfig

        Raises:
            ValueError: If a value is missing or invalid
        """
        timeout = mapping.get('ARCHIVER_TIMEOUT')
        retention = mapping.get('BACKUP_RETENTION_COUNT', 10)
        try:
            retention = int(retention)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid BACKUP_RETENTION_COUNT: {retention!r}")

        return cls(
            source_paths=parse_source_paths(mapping.get('BACKUP_SOURCES')),
            destination_root=mapping.get('BACKUP_DESTINATION') or '',
            retention_count=retention,
            archive_prefix=mapping.get('BACKUP_ARCHIVE_PREFIX') or 'Backup',
            archive_extension=mapping.get('BACKUP_ARCHIVE_EXTENSION') or 'zip',
            log_filename=mapping.get('BACKUP_LOG_FILENAME') or 'BackupLog.txt',
            archiver_executable=mapping.get('ARCHIVER_EXECUTABLE') or None,
            archiver_timeout=float(timeout) if timeout not in (None, '') else None,
        )


@dataclass(frozen=True)
class ArchiveEntry:
    """An archive found at the destination. Never cached across runs."""

    identifier: str
    modified: datetime
    size: Optional[int] = None

    @property
    def name(self) -> str:
        return Path(self.identifier).name


@dataclass
class BackupRunResult:
    """Outcome of a single backup run"""

    outcome: BackupOutcome
    started_at: datetime
    finished_at: datetime
    archive_path: Optional[str] = None
    error_message: Optional[str] = None
    deleted_archives: List[str] = field(default_factory=list)
    rotation_errors: List[str] = field(default_factory=list)
    log_error: Optional[str] = None
    logs: List[str] = field(default_factory=list)

    @property
    def duration(self) -> timedelta:
        return self.finished_at - self.started_at

    @property
    def duration_text(self) -> str:
        return format_duration(self.duration)

    @property
    def succeeded(self) -> bool:
        return self.outcome is BackupOutcome.SUCCESS

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.outcome]

    def __repr__(self):
        return f'<BackupRunResult outcome={self.outcome.value} duration={self.duration_text}>'
