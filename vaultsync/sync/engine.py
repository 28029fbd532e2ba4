"""Core sync engine for push and pull operations."""

import logging
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from ..exceptions import ExtractError, TraversalError
from .archive import Archiver, Extractor
from .comparator import DiffEngine, DiffResult
from .operations import Reconciler, ReconcileResult
from .scanner import PathWalker
from .settings import SyncSettings

if TYPE_CHECKING:
    from ..api import VaultSyncClient

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Coarse phases reported while an operation runs."""

    ZIPPING = "zipping"
    UPLOADING = "uploading"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    SYNCING = "syncing"
    DONE = "done"


PhaseCallback = Callable[[Phase, str], None]


@dataclass
class PushResult:
    """Result of a push operation."""

    vault_name: str
    files: int = 0
    skipped: list[str] = field(default_factory=list)
    archive_size: int = 0
    download_url: Optional[str] = None
    elapsed: float = 0.0

    def to_dict(self) -> dict:
        return {
            "vault": self.vault_name,
            "files": self.files,
            "skipped": sorted(self.skipped),
            "archive_size": self.archive_size,
            "download_url": self.download_url,
            "elapsed": round(self.elapsed, 3),
        }


@dataclass
class PullResult:
    """Result of a pull operation."""

    vault_name: str
    diff: DiffResult
    reconcile: Optional[ReconcileResult] = None
    dry_run: bool = False
    elapsed: float = 0.0

    def to_dict(self) -> dict:
        data = {
            "vault": self.vault_name,
            "dry_run": self.dry_run,
            "plan": self.diff.stats(),
            "elapsed": round(self.elapsed, 3),
        }
        if self.reconcile is not None:
            data["result"] = self.reconcile.to_dict()
        return data


class SyncEngine:
    """Orchestrates snapshot push and pull for a single vault.

    Phases run strictly in sequence: the archive is complete before upload,
    the fetch completes before extraction, extraction completes before the
    diff, and the diff is complete before anything local is modified.
    """

    def __init__(
        self,
        client: "VaultSyncClient",
        phase_callback: Optional[PhaseCallback] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Transport client used for upload and fetch
            phase_callback: Optional callback(phase, label) for progress display
        """
        self.client = client
        self.phase_callback = phase_callback

    def _notify(self, phase: Phase, label: str) -> None:
        logger.debug("Phase %s: %s", phase.value, label)
        if self.phase_callback:
            self.phase_callback(phase, label)

    def _validate_root(self, vault_root: Path) -> Path:
        vault_root = Path(vault_root)
        if not vault_root.exists():
            raise TraversalError(f"Local directory does not exist: {vault_root}")
        if not vault_root.is_dir():
            raise TraversalError(f"Local path is not a directory: {vault_root}")
        return vault_root

    def push(self, vault_root: Path, settings: SyncSettings) -> PushResult:
        """Archive the local vault and upload it as the remote snapshot.

        Args:
            vault_root: Local vault directory
            settings: Vault settings

        Returns:
            PushResult with archive statistics

        Raises:
            TraversalError: If the vault root is missing
            ArchiveBuildError: If the archive cannot be built
            TransportError: If the upload fails
        """
        start_time = time.time()
        vault_root = self._validate_root(vault_root)

        self._notify(Phase.ZIPPING, f"Zipping {vault_root}")
        archiver = Archiver(exclusions=settings.exclusions())
        blob = archiver.build(vault_root)

        self._notify(
            Phase.UPLOADING, f"Uploading {len(blob.entries)} file(s) to origin"
        )
        response = self.client.upload_snapshot(settings.vault_name, blob.data)

        result = PushResult(
            vault_name=settings.vault_name,
            files=len(blob.entries),
            skipped=list(blob.skipped),
            archive_size=blob.size,
            download_url=(
                response.get("downloadUrl") if isinstance(response, dict) else None
            ),
            elapsed=time.time() - start_time,
        )
        self._notify(Phase.DONE, f"Vault '{settings.vault_name}' uploaded")
        return result

    def pull(
        self, vault_root: Path, settings: SyncSettings, dry_run: bool = False
    ) -> PullResult:
        """Fetch the remote snapshot and reconcile it into the local vault.

        Local files absent from the snapshot are deleted, snapshot files are
        written over local ones. The staging area is removed before
        returning, whether the operation succeeded or failed.

        Args:
            vault_root: Local vault directory
            settings: Vault settings
            dry_run: If True, compute the diff but change nothing locally

        Returns:
            PullResult with the diff and, unless dry run, the reconcile result

        Raises:
            TraversalError: If the vault root is missing or unreadable
            TransportError: If the fetch fails (NotFoundError if no snapshot)
            ExtractError: If the snapshot cannot be unpacked
            ReconcileError: If the vault root becomes inaccessible
        """
        start_time = time.time()
        vault_root = self._validate_root(vault_root)
        exclusions = settings.exclusions()

        self._notify(Phase.DOWNLOADING, "Downloading origin data")
        data = self.client.fetch_snapshot(settings.vault_name)

        try:
            staging = Path(
                tempfile.mkdtemp(prefix=settings.staging_prefix, dir=vault_root)
            )
        except OSError as e:
            raise ExtractError(
                f"Cannot create staging area in {vault_root}: {e}"
            ) from e

        try:
            self._notify(Phase.EXTRACTING, "Extracting snapshot")
            Extractor(max_workers=settings.max_workers).extract(data, staging)
            del data

            local = PathWalker(vault_root, skip_dirs=[staging]).snapshot()
            staged = PathWalker(staging).snapshot()
            diff = DiffEngine(exclusions).compute(local, staged)
            logger.debug(
                "Diff: %d to write, %d to delete",
                len(diff.to_write),
                len(diff.to_delete),
            )

            reconcile_result = None
            if not dry_run:
                self._notify(Phase.SYNCING, "Syncing")
                reconciler = Reconciler(
                    exclusions=exclusions, max_workers=settings.max_workers
                )
                reconcile_result = reconciler.apply(diff, vault_root, staging)
        finally:
            shutil.rmtree(staging, ignore_errors=True)
            logger.debug("Removed staging area %s", staging)

        self._notify(Phase.DONE, f"Vault '{settings.vault_name}' synced")
        return PullResult(
            vault_name=settings.vault_name,
            diff=diff,
            reconcile=reconcile_result,
            dry_run=dry_run,
            elapsed=time.time() - start_time,
        )

    def preview(self, vault_root: Path, settings: SyncSettings) -> DiffResult:
        """Return what a pull would change without touching the vault."""
        return self.pull(vault_root, settings, dry_run=True).diff
