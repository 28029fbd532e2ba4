"""Per-vault sync settings."""

from dataclasses import dataclass, field
from typing import Any, Optional

from ..utils import (
    DEFAULT_CREDENTIAL_FILE,
    DEFAULT_MAX_WORKERS,
    DEFAULT_STAGING_PREFIX,
    archive_name,
    validate_vault_name,
)
from .exclusion import ExclusionSet


@dataclass
class SyncSettings:
    """Configuration for one vault's push/pull operations.

    Every value here is passed explicitly into the archiver, reconciler
    and engine so that several vaults can be exercised side by side.
    """

    vault_name: str
    """Remote snapshot identity"""

    credential_file: str = DEFAULT_CREDENTIAL_FILE
    """Credential file relative to the vault root (never archived or deleted)"""

    exclude_patterns: list[str] = field(default_factory=list)
    """Extra fnmatch patterns never archived or deleted"""

    staging_prefix: str = DEFAULT_STAGING_PREFIX
    """Name prefix of the temporary staging directory"""

    max_workers: int = DEFAULT_MAX_WORKERS
    """Worker pool bound for per-file extraction and reconciliation"""

    def __post_init__(self):
        self.vault_name = validate_vault_name(self.vault_name)
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if not self.staging_prefix or "/" in self.staging_prefix:
            raise ValueError(f"Invalid staging prefix: {self.staging_prefix!r}")

    def exclusions(self) -> ExclusionSet:
        """Build the exclusion set consulted by archiver and reconciler.

        Always contains the credential file, the vault's own archive
        artifact and the staging directory prefix.
        """
        builtin = [
            self.credential_file,
            archive_name(self.vault_name),
            f"{self.staging_prefix}*",
        ]
        return ExclusionSet([*builtin, *self.exclude_patterns])

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncSettings":
        """Create settings from a dictionary (camelCase or snake_case keys)."""

        def get(snake: str, camel: str, default: Optional[Any] = None) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        if not get("vault_name", "vaultName"):
            raise ValueError("Missing required field: vaultName")

        return cls(
            vault_name=get("vault_name", "vaultName"),
            credential_file=get(
                "credential_file", "credentialFile", DEFAULT_CREDENTIAL_FILE
            ),
            exclude_patterns=list(get("exclude_patterns", "excludePatterns", [])),
            staging_prefix=get(
                "staging_prefix", "stagingPrefix", DEFAULT_STAGING_PREFIX
            ),
            max_workers=int(get("max_workers", "maxWorkers", DEFAULT_MAX_WORKERS)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a camelCase dictionary."""
        return {
            "vaultName": self.vault_name,
            "credentialFile": self.credential_file,
            "excludePatterns": list(self.exclude_patterns),
            "stagingPrefix": self.staging_prefix,
            "maxWorkers": self.max_workers,
        }
