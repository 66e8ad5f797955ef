"""
Destination store for backup archives and the completion log.

Supports:
- LocalDestinationStore: local directory or mounted network share
"""

import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import List

from dailyzip.models import ArchiveEntry


class StorageError(Exception):
    """Raised when a destination operation fails."""
    pass


class DestinationStore(ABC):
    """Filesystem capabilities the backup executor needs at the destination."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return True if path is reachable. Never raises."""

    @abstractmethod
    def list(self, path: str, pattern: str) -> List[ArchiveEntry]:
        """
        List entries directly under path whose name matches a glob pattern.

        Raises:
            StorageError: If the location cannot be enumerated
        """

    @abstractmethod
    def delete(self, identifier: str):
        """
        Delete an entry.

        Raises:
            StorageError: If deletion fails
        """

    @abstractmethod
    def append_line(self, log_path: str, text: str):
        """
        Append one line of text to a log file, creating it if needed.

        Raises:
            StorageError: If the write fails
        """

    @abstractmethod
    def read_lines(self, log_path: str) -> List[str]:
        """
        Read every line of a log file. A missing file reads as empty.

        Raises:
            StorageError: If the file exists but cannot be read
        """


class LocalDestinationStore(DestinationStore):
    """
    Destination on the local filesystem.

    Network shares work the same way once mounted (or addressed through a
    UNC path on Windows).
    """

    def exists(self, path: str) -> bool:
        try:
            return Path(path).exists()
        except OSError:
            # Unreachable shares can raise instead of returning False
            return False

    def list(self, path: str, pattern: str) -> List[ArchiveEntry]:
        root = Path(path)

        try:
            entries = []

            for file_path in root.glob(pattern):
                if not file_path.is_file():
                    continue
                stat = file_path.stat()
                entries.append(ArchiveEntry(
                    identifier=str(file_path),
                    modified=datetime.fromtimestamp(stat.st_mtime),
                    size=stat.st_size
                ))

            return entries

        except OSError as e:
            raise StorageError(f"Failed to list {path}: {e}")

    def delete(self, identifier: str):
        full_path = Path(identifier)

        try:
            if full_path.exists():
                full_path.unlink()
        except PermissionError as e:
            raise StorageError(f"Permission denied deleting {full_path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to delete {full_path}: {e}")

    def append_line(self, log_path: str, text: str):
        try:
            with open(log_path, 'a', encoding='utf-8') as f:
                f.write(text.rstrip('\r\n') + '\n')
        except PermissionError as e:
            raise StorageError(f"Permission denied writing to {log_path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to append to {log_path}: {e}")

    def read_lines(self, log_path: str) -> List[str]:
        if not os.path.exists(log_path):
            return []

        try:
            with open(log_path, 'r', encoding='utf-8') as f:
                return [line.rstrip('\r\n') for line in f if line.strip()]
        except OSError as e:
            raise StorageError(f"Failed to read {log_path}: {e}")
