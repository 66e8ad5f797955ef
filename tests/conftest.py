"""
Shared pytest fixtures for dailyzip tests.

This module provides fixtures for:
- Flask app, test client and CLI runner
- Temporary source trees and destination directories
- In-memory fakes for the destination store, archiver and notifier
- A controllable clock
"""

import fnmatch
from datetime import datetime, timedelta
from pathlib import PurePosixPath

import pytest

from dailyzip import create_app
from dailyzip.backup.compression import ArchiverService, CompressionError
from dailyzip.backup.notifications import NotificationSink
from dailyzip.backup.storage import DestinationStore, StorageError
from dailyzip.models import ArchiveEntry, BackupJobConfig


DESTINATION = '/mnt/backup'


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


class FakeDestinationStore(DestinationStore):
    """
    In-memory destination.

    Entries are keyed by identifier (POSIX style paths). Every mutating call
    is recorded in `events` so tests can assert ordering.
    """

    def __init__(self, root: str = DESTINATION, reachable: bool = True):
        self.root = root
        self.reachable = reachable
        self.entries = {}
        self.logs = {}
        self.events = []
        self.deleted = []
        self.fail_delete = set()
        self.fail_append = False
        self.fail_list = False

    def add(self, name: str, modified: datetime, size: int = 1024) -> ArchiveEntry:
        identifier = str(PurePosixPath(self.root) / name)
        entry = ArchiveEntry(identifier=identifier, modified=modified, size=size)
        self.entries[identifier] = entry
        return entry

    def names(self, pattern: str = '*') -> list:
        return sorted(
            PurePosixPath(identifier).name
            for identifier in self.entries
            if fnmatch.fnmatchcase(PurePosixPath(identifier).name, pattern)
        )

    def exists(self, path: str) -> bool:
        self.events.append(('exists', path))
        if not self.reachable:
            return False
        return path == self.root or path in self.entries

    def list(self, path: str, pattern: str):
        self.events.append(('list', path, pattern))
        if self.fail_list:
            raise StorageError("listing refused")
        return [
            entry for identifier, entry in self.entries.items()
            if str(PurePosixPath(identifier).parent) == path
            and fnmatch.fnmatchcase(PurePosixPath(identifier).name, pattern)
        ]

    def delete(self, identifier: str):
        self.events.append(('delete', identifier))
        if identifier in self.fail_delete:
            raise StorageError(f"access denied: {identifier}")
        self.entries.pop(identifier, None)
        self.deleted.append(identifier)

    def append_line(self, log_path: str, text: str):
        self.events.append(('append_line', log_path))
        if self.fail_append:
            raise StorageError("disk full")
        self.logs.setdefault(log_path, []).append(text)

    def read_lines(self, log_path: str):
        return list(self.logs.get(log_path, []))


class FakeArchiver(ArchiverService):
    """Archiver that registers its output with a FakeDestinationStore."""

    def __init__(self, store: FakeDestinationStore, clock: FakeClock, seconds: float = 0):
        self.store = store
        self.clock = clock
        self.seconds = seconds
        self.calls = []
        self.error = None

    def compress(self, sources, destination):
        self.calls.append((list(sources), destination))
        self.store.events.append(('compress', destination))
        self.clock.advance(self.seconds)
        if self.error is not None:
            raise self.error
        self.store.entries[destination] = ArchiveEntry(
            identifier=destination,
            modified=self.clock.now,
            size=4096
        )
        return destination


class RecordingNotifier(NotificationSink):
    """Keeps every notification."""

    def __init__(self):
        self.events = []

    def notify(self, title, message, severity):
        self.events.append((title, message, severity))


@pytest.fixture
def clock():
    """Clock starting at 2024-01-11 02:00:00 local time."""
    return FakeClock(datetime(2024, 1, 11, 2, 0, 0))


@pytest.fixture
def store():
    return FakeDestinationStore()


@pytest.fixture
def archiver(store, clock):
    return FakeArchiver(store, clock)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def job_config():
    """Job config with two sources (one containing spaces) and retention 10."""
    return BackupJobConfig(
        source_paths=('/home/user/Documents', '/home/user/My Pictures'),
        destination_root=DESTINATION,
        retention_count=10
    )


@pytest.fixture
def source_dirs(tmp_path):
    """
    Create two source trees to archive.

    Creates:
    - docs/report.txt
    - docs/nested/notes.txt
    - My Photos/holiday.jpg
    """
    docs = tmp_path / 'sources' / 'docs'
    (docs / 'nested').mkdir(parents=True)
    (docs / 'report.txt').write_text('Quarterly report')
    (docs / 'nested' / 'notes.txt').write_text('Nested notes')

    photos = tmp_path / 'sources' / 'My Photos'
    photos.mkdir(parents=True)
    (photos / 'holiday.jpg').write_bytes(b'\xff\xd8\xff' + b'0' * 512)

    return [str(docs), str(photos)]


@pytest.fixture
def destination_dir(tmp_path):
    destination = tmp_path / 'destination'
    destination.mkdir()
    return destination


@pytest.fixture(scope='function')
def app(source_dirs, destination_dir):
    """
    Create Flask app with test configuration.

    Points the backup job at the temporary source trees and destination.
    """
    app = create_app('testing')

    app.config.update({
        'BACKUP_SOURCES': list(source_dirs),
        'BACKUP_DESTINATION': str(destination_dir),
        'BACKUP_RETENTION_COUNT': 3,
        'NOTIFIER': 'none',
    })

    yield app


@pytest.fixture(scope='function')
def client(app):
    """Flask test client for making HTTP requests."""
    return app.test_client()


@pytest.fixture(scope='function')
def runner(app):
    """Flask CLI test runner."""
    return app.test_cli_runner()


@pytest.fixture
def make_clock():
    """Factory for extra clocks within one test."""
    return FakeClock


@pytest.fixture
def make_archiver(store):
    """Factory for archivers bound to the shared fake store."""
    def _make(clock, seconds=0):
        return FakeArchiver(store, clock, seconds=seconds)
    return _make
