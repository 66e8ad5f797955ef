"""
Backup module for dailyzip.

This module handles the core backup functionality including:
- Archive creation (in-process zip or external archiver)
- Destination store access
- Execution orchestration
- Retention rotation
- User notifications
"""

from .executor import BackupExecutor, execute_backup
from .compression import ArchiverService, ZipArchiver, ProcessArchiver, create_archiver, CompressionError
from .storage import DestinationStore, LocalDestinationStore, StorageError
from .retention import RetentionManager, select_for_deletion
from .notifications import NotificationSink, DesktopNotifier, LogNotifier, NullNotifier, create_notifier

__all__ = [
    'BackupExecutor',
    'execute_backup',
    'ArchiverService',
    'ZipArchiver',
    'ProcessArchiver',
    'create_archiver',
    'CompressionError',
    'DestinationStore',
    'LocalDestinationStore',
    'StorageError',
    'RetentionManager',
    'select_for_deletion',
    'NotificationSink',
    'DesktopNotifier',
    'LogNotifier',
    'NullNotifier',
    'create_notifier'
]
