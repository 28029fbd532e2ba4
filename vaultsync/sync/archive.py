"""Snapshot archive building and extraction.

A snapshot is a single ZIP container with one entry per file, named by its
forward-slash relative path. Directories are implicit in the entry names.
"""

import io
import logging
import os
import re
import zipfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from ..exceptions import ArchiveBuildError, ExtractError, TraversalError
from ..utils import DEFAULT_MAX_WORKERS
from .exclusion import ExclusionSet
from .scanner import PathWalker

logger = logging.getLogger(__name__)


@dataclass
class ArchiveBlob:
    """In-memory snapshot archive."""

    data: bytes
    """Raw ZIP bytes"""

    entries: list[str] = field(default_factory=list)
    """Relative paths stored in the archive"""

    skipped: list[str] = field(default_factory=list)
    """Relative paths that vanished or were unreadable while archiving"""

    @property
    def size(self) -> int:
        """Archive size in bytes."""
        return len(self.data)

    def __bytes__(self) -> bytes:
        return self.data


class Archiver:
    """Builds an :class:`ArchiveBlob` from a directory tree."""

    def __init__(
        self,
        exclusions: Optional[ExclusionSet] = None,
        compression: int = zipfile.ZIP_DEFLATED,
    ):
        """Initialize archiver.

        Args:
            exclusions: Paths never stored in the archive
            compression: zipfile compression constant
        """
        self.exclusions = exclusions or ExclusionSet()
        self.compression = compression

    def build(self, root: Path) -> ArchiveBlob:
        """Archive every non-excluded file under ``root``.

        Files that disappear or become unreadable between enumeration and
        read are skipped with a warning.

        Args:
            root: Directory to archive

        Returns:
            The built archive

        Raises:
            ArchiveBuildError: If the root cannot be read
        """
        root = Path(root)
        walker = PathWalker(root, exclusions=self.exclusions)
        buffer = io.BytesIO()
        entries: list[str] = []
        skipped: list[str] = []

        try:
            with zipfile.ZipFile(buffer, "w", compression=self.compression) as zf:
                for relative_path in walker:
                    # zipfile cannot store surrogate-escaped (non UTF-8) names
                    try:
                        relative_path.encode("utf-8")
                    except UnicodeEncodeError:
                        logger.warning(
                            "Skipping file with a name that is not valid UTF-8: %r",
                            relative_path,
                        )
                        skipped.append(relative_path)
                        continue

                    try:
                        content = (root / relative_path).read_bytes()
                    except FileNotFoundError:
                        logger.warning(
                            "File vanished before it could be archived: %s",
                            relative_path,
                        )
                        skipped.append(relative_path)
                        continue
                    except OSError as e:
                        logger.warning(
                            "Skipping unreadable file %s: %s", relative_path, e
                        )
                        skipped.append(relative_path)
                        continue

                    zf.writestr(relative_path, content)
                    entries.append(relative_path)
                    logger.debug(
                        "Archived %s (%d bytes)", relative_path, len(content)
                    )
        except TraversalError as e:
            raise ArchiveBuildError(f"Cannot archive {root}: {e}") from e
        except (OSError, zipfile.LargeZipFile) as e:
            raise ArchiveBuildError(f"Failed to build archive for {root}: {e}") from e

        logger.debug(
            "Built archive with %d file(s), %d skipped, %d bytes",
            len(entries),
            len(skipped),
            buffer.tell(),
        )
        return ArchiveBlob(data=buffer.getvalue(), entries=entries, skipped=skipped)


def _entry_name(name: str) -> str:
    # Backslash is an ordinary filename character on POSIX
    if os.sep == "\\":
        return name.replace("\\", "/")
    return name


def _safe_entry_path(name: str) -> Optional[str]:
    """Normalize an archive entry name to a safe relative path.

    Entry names are forward-slash paths. Returns None for pure directory
    entries.

    Raises:
        ExtractError: If the entry would escape the extraction directory
    """
    normalized = _entry_name(name)
    path = PurePosixPath(normalized)
    if normalized.startswith("/") or re.match(r"^[A-Za-z]:", normalized):
        raise ExtractError(f"Unsafe archive entry (absolute path): {name!r}")
    parts = [p for p in path.parts if p not in ("", ".")]
    if ".." in parts:
        raise ExtractError(f"Unsafe archive entry (parent reference): {name!r}")
    if not parts or normalized.endswith("/"):
        return None
    return "/".join(parts)


class Extractor:
    """Unpacks an archive into a fresh staging directory.

    Entry writes run on a bounded thread pool. Each worker creates the
    entry's parent directories before writing the file. On failure the
    staging directory is left as is; discarding it is the caller's job.
    """

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS):
        self.max_workers = max_workers

    def extract(self, blob: Union[ArchiveBlob, bytes], staging: Path) -> list[str]:
        """Write every archived file to ``staging/<relative path>``.

        Args:
            blob: Archive to unpack
            staging: Empty (or not yet existing) staging directory

        Returns:
            Relative paths of the extracted files

        Raises:
            ExtractError: If the archive is malformed, contains unsafe
                entries, the staging directory is not empty, or any
                write fails
        """
        data = bytes(blob)
        staging = Path(staging)

        try:
            staging.mkdir(parents=True, exist_ok=True)
            if any(staging.iterdir()):
                raise ExtractError(f"Staging directory is not empty: {staging}")
        except OSError as e:
            raise ExtractError(
                f"Cannot prepare staging directory {staging}: {e}"
            ) from e

        try:
            zf = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as e:
            raise ExtractError(f"Malformed archive: {e}") from e

        with zf:
            members: dict[str, zipfile.ZipInfo] = {}
            directories: list[str] = []
            for info in zf.infolist():
                relative_path = _safe_entry_path(info.filename)
                if relative_path is None:
                    directories.append(info.filename)
                    continue
                members[relative_path] = info

            for name in directories:
                dir_path = _safe_dir_path(name)
                if dir_path:
                    try:
                        (staging / dir_path).mkdir(parents=True, exist_ok=True)
                    except OSError as e:
                        raise ExtractError(
                            f"Failed to create directory {dir_path}: {e}"
                        ) from e

            # Reading stays on this thread; only filesystem writes are pooled
            payloads: dict[str, bytes] = {}
            for relative_path, info in members.items():
                try:
                    payloads[relative_path] = zf.read(info)
                except (
                    zipfile.BadZipFile,
                    OSError,
                    ValueError,
                    EOFError,
                    RuntimeError,
                    NotImplementedError,
                ) as e:
                    raise ExtractError(
                        f"Corrupt archive entry {info.filename!r}: {e}"
                    ) from e

        failures = self._write_all(staging, payloads)
        if failures:
            path, error = failures[0]
            raise ExtractError(
                f"Failed to extract {len(failures)} file(s); first: {path}: {error}"
            )

        logger.debug("Extracted %d file(s) into %s", len(payloads), staging)
        return list(payloads)

    def _write_all(
        self, staging: Path, payloads: dict[str, bytes]
    ) -> list[tuple[str, str]]:
        failures: list[tuple[str, str]] = []
        if not payloads:
            return failures

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(_write_entry, staging / path, content): path
                for path, content in payloads.items()
            }
            for future in as_completed(futures):
                path = futures[future]
                try:
                    future.result()
                except OSError as e:
                    logger.warning("Failed to extract %s: %s", path, e)
                    failures.append((path, str(e)))
        return failures


def _safe_dir_path(name: str) -> Optional[str]:
    path = PurePosixPath(_entry_name(name))
    parts = [p for p in path.parts if p not in ("", ".")]
    return "/".join(parts) or None


def _write_entry(destination: Path, content: bytes) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(content)
