"""Custom exceptions for vaultsync."""


class VaultSyncError(Exception):
    """Base exception for all vaultsync errors."""

    pass


class ConfigError(VaultSyncError):
    """Configuration error (missing server URL or token)."""

    pass


class InvalidVaultNameError(VaultSyncError, ValueError):
    """Vault name cannot be used as a remote snapshot identity."""

    pass


# =========================
# Snapshot engine errors
# =========================


class TraversalError(VaultSyncError):
    """Tree root does not exist or cannot be read."""

    pass


class ArchiveBuildError(VaultSyncError):
    """Archive could not be built from a directory tree."""

    pass


class ExtractError(VaultSyncError):
    """Archive is malformed or could not be written to the staging area."""

    pass


class ReconcileError(VaultSyncError):
    """Local root became inaccessible while applying a diff."""

    pass


# =========================
# Transport errors
# =========================


class TransportError(VaultSyncError):
    """Request to the sync server failed."""

    pass


class AuthenticationError(TransportError):
    """Bearer token rejected by the server."""

    pass


class NotFoundError(TransportError):
    """No remote snapshot exists for the requested vault."""

    pass


class RateLimitError(TransportError):
    """Server rate limit exceeded."""

    pass


class InvalidResponseError(TransportError):
    """Server returned a response that could not be understood."""

    pass
