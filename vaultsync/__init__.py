"""VaultSync - push and pull whole-directory snapshots to a sync server."""

from .api import VaultSyncClient
from .exceptions import (
    ArchiveBuildError,
    AuthenticationError,
    ConfigError,
    ExtractError,
    InvalidResponseError,
    InvalidVaultNameError,
    NotFoundError,
    RateLimitError,
    ReconcileError,
    TransportError,
    TraversalError,
    VaultSyncError,
)
from .sync import SyncEngine, SyncSettings

__all__ = [
    "VaultSyncClient",
    "SyncEngine",
    "SyncSettings",
    "VaultSyncError",
    "ConfigError",
    "InvalidVaultNameError",
    "TraversalError",
    "ArchiveBuildError",
    "ExtractError",
    "ReconcileError",
    "TransportError",
    "AuthenticationError",
    "NotFoundError",
    "RateLimitError",
    "InvalidResponseError",
]
