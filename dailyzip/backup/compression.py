"""
Archiver services for backup archives.

Two production implementations:
- ZipArchiver: in-process deflate zip
- ProcessArchiver: spawns an external 7-Zip compatible executable

Both write to a ".partial" sibling of the requested output and rename it into
place only once the archive is complete, so a failed run never leaves a
truncated archive behind.
"""

import logging
import os
import subprocess
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = '.partial'


class CompressionError(Exception):
    """Raised when archive creation fails."""
    pass


class ArchiverService(ABC):
    """Compress a set of independently rooted source paths into one archive."""

    @abstractmethod
    def compress(self, sources: Sequence[str], destination: str) -> str:
        """
        Create an archive at destination containing every source root.

        Args:
            sources: Ordered source paths, each included under its own base name
            destination: Full path of the archive to create

        Returns:
            Path of the created archive

        Raises:
            CompressionError: If the archive could not be created
        """

    def _partial_path(self, destination: str) -> str:
        return destination + PARTIAL_SUFFIX

    def _discard_partial(self, partial_path: str):
        if os.path.exists(partial_path):
            try:
                os.remove(partial_path)
            except OSError as e:
                logger.warning(f"Failed to remove partial archive {partial_path}: {e}")

    def _clear_stale_partial(self, partial_path: str):
        """
        Remove a partial archive left by an interrupted earlier run.

        Raises:
            CompressionError: If the leftover cannot be removed
        """
        if not os.path.exists(partial_path):
            return

        logger.warning(f"Removing leftover partial archive: {partial_path}")
        try:
            os.remove(partial_path)
        except OSError as e:
            raise CompressionError(f"Could not remove leftover partial archive {partial_path}: {e}")

    def _finalize(self, partial_path: str, destination: str) -> str:
        try:
            os.replace(partial_path, destination)
        except OSError as e:
            self._discard_partial(partial_path)
            raise CompressionError(f"Failed to move archive into place: {e}")
        return destination


class ZipArchiver(ArchiverService):
    """Standard deflate zip archiver using the zipfile module."""

    def compress(self, sources: Sequence[str], destination: str) -> str:
        if not sources:
            raise CompressionError("No source paths provided")

        partial_path = self._partial_path(destination)
        self._clear_stale_partial(partial_path)

        # Archives already at the destination are never packed into a new one
        exclude_dir = Path(destination).resolve().parent

        try:
            with zipfile.ZipFile(partial_path, 'w', zipfile.ZIP_DEFLATED) as zipf:
                for source_path in sources:
                    source = Path(source_path)

                    if source.is_file():
                        zipf.write(source, source.name)
                    elif source.is_dir():
                        _add_directory_to_zip(zipf, source, exclude_dir)
                    else:
                        raise CompressionError(f"Path does not exist or is not accessible: {source_path}")
        except CompressionError:
            self._discard_partial(partial_path)
            raise
        except Exception as e:
            # Clean up partial archive on failure
            self._discard_partial(partial_path)
            raise CompressionError(f"Failed to create archive: {e}")

        return self._finalize(partial_path, destination)


def _is_within(path: Path, directory: Path) -> bool:
    return path == directory or directory in path.parents


def _add_directory_to_zip(zipf: zipfile.ZipFile, directory: Path, exclude_dir: Optional[Path] = None):
    """
    Recursively add a directory to a zip archive, rooted at its base name.

    Empty directories are kept as explicit entries. Anything under
    exclude_dir is skipped.
    """
    zipf.write(directory, directory.name)

    # Exclusion applies only when the destination lies inside this tree
    if exclude_dir is not None and not _is_within(exclude_dir, directory.resolve()):
        exclude_dir = None

    for item in sorted(directory.rglob('*')):
        if exclude_dir is not None and _is_within(item.resolve(), exclude_dir):
            continue
        relative_path = item.relative_to(directory.parent)
        if item.is_file() or item.is_dir():
            zipf.write(item, relative_path)


class ProcessArchiver(ArchiverService):
    """
    Archiver backed by an external executable (7-Zip command line syntax).

    The command is built as an argument list, so source paths containing
    spaces or shell metacharacters reach the archiver as single tokens.
    """

    def __init__(self, executable: str, timeout: Optional[float] = None, archive_type: str = 'zip'):
        """
        Args:
            executable: Path to the archiver executable (e.g. 7z, 7za, 7z.exe)
            timeout: Seconds before the archiver is killed (None = wait forever)
            archive_type: Value for the -t switch
        """
        self.executable = executable
        self.timeout = timeout
        self.archive_type = archive_type

    def build_command(self, sources: Sequence[str], output_path: str) -> list:
        return [
            self.executable,
            'a',
            f'-t{self.archive_type}',
            '-y',
            output_path,
            *sources,
        ]

    def compress(self, sources: Sequence[str], destination: str) -> str:
        if not sources:
            raise CompressionError("No source paths provided")

        partial_path = self._partial_path(destination)
        # 7-Zip's "a" adds to an existing file, so a leftover must go first
        self._clear_stale_partial(partial_path)

        command = self.build_command(sources, partial_path)
        logger.debug(f"Running archiver: {command}")

        try:
            self._run(command, partial_path)
        except CompressionError:
            self._discard_partial(partial_path)
            raise
        except Exception as e:
            self._discard_partial(partial_path)
            raise CompressionError(f"Archiver failed: {e}")

        return self._finalize(partial_path, destination)

    def _run(self, command: list, partial_path: str):
        try:
            # Console output may be in an OEM code page; it is only used for messages
            completed = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors='replace',
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise CompressionError(f"Archiver timed out after {self.timeout} seconds")
        except OSError as e:
            raise CompressionError(f"Failed to launch archiver {self.executable}: {e}")

        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or '').strip()
            raise CompressionError(
                f"Archiver exited with code {completed.returncode}"
                + (f": {detail}" if detail else "")
            )

        if not os.path.exists(partial_path):
            raise CompressionError(f"Archiver reported success but produced no file: {partial_path}")


def create_archiver(config) -> ArchiverService:
    """
    Pick the archiver for a job config.

    An external executable is used when one is configured; otherwise the
    archive is built in-process.
    """
    if config.archiver_executable:
        return ProcessArchiver(config.archiver_executable, timeout=config.archiver_timeout)
    return ZipArchiver()

