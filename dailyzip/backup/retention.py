"""
Retention policy enforcement for backups.

Keeps the newest N archives at a destination and deletes the rest. Entries
are ordered by last-modified time, ties broken by identifier, so two passes
over the same listing always choose the same victims.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from dailyzip.models import ArchiveEntry
from .storage import DestinationStore

logger = logging.getLogger(__name__)


@dataclass
class RotationReport:
    """Result of one rotation pass"""
    kept: List[ArchiveEntry] = field(default_factory=list)
    deleted: List[ArchiveEntry] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def sort_newest_first(entries: Sequence[ArchiveEntry]) -> List[ArchiveEntry]:
    """Order archives newest first, ties broken by identifier (descending)."""
    return sorted(
        entries,
        key=lambda entry: (entry.modified, entry.identifier),
        reverse=True
    )


def select_for_deletion(
    entries: Sequence[ArchiveEntry],
    retention_count: int
) -> Tuple[List[ArchiveEntry], List[ArchiveEntry]]:
    """
    Split entries into the ones to keep and the ones to delete.

    Args:
        entries: Archives found at the destination
        retention_count: Maximum number of archives to keep

    Returns:
        (kept, to_delete), both newest first

    Raises:
        ValueError: If retention_count is not positive
    """
    if retention_count < 1:
        raise ValueError(f"Retention count must be positive, got {retention_count}")

    ordered = sort_newest_first(entries)
    return ordered[:retention_count], ordered[retention_count:]


class RetentionManager:
    """
    Enforces a keep-newest-N policy against a destination store.

    Individual delete failures are recorded and the pass carries on.
    """

    def __init__(self, store: DestinationStore):
        self.store = store
        self.logs = []

    def rotate(self, root: str, pattern: str, retention_count: int) -> RotationReport:
        """
        Run one rotation pass.

        Args:
            root: Destination directory
            pattern: Glob selecting the archives this job owns
            retention_count: Maximum number of archives to keep

        Returns:
            RotationReport with kept, deleted and per-entry errors

        Raises:
            StorageError: If the destination cannot be listed
        """
        entries = self.store.list(root, pattern)
        kept, to_delete = select_for_deletion(entries, retention_count)

        self._log(
            f"Retention: {len(entries)} archive(s) found, keeping {len(kept)}, "
            f"deleting {len(to_delete)}"
        )

        report = RotationReport(kept=kept)

        for entry in to_delete:
            try:
                self.store.delete(entry.identifier)
                report.deleted.append(entry)
                self._log(f"Deleted old archive: {entry.name}")
            except Exception as e:
                # StorageError, or whatever a third-party store raises
                error_msg = f"Failed to delete old archive {entry.name}: {e}"
                report.errors.append(error_msg)
                self._log(error_msg, level=logging.WARNING)

        return report

    def _log(self, message: str, level: int = logging.INFO):
        self.logs.append(message)
        logger.log(level, message)
