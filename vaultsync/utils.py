"""Utility functions and shared defaults for vaultsync."""

from .exceptions import InvalidVaultNameError

# =============================================================================
# Defaults
# =============================================================================

# Server the CLI talks to when nothing else is configured
DEFAULT_API_URL: str = "http://localhost:3000"

# Request timeout in seconds
DEFAULT_TIMEOUT: float = 60.0

# Bounded pool size for per-file extraction / reconciliation work
DEFAULT_MAX_WORKERS: int = 8

# Local credential file kept inside the vault root
DEFAULT_CREDENTIAL_FILE: str = ".vaultsync.json"

# Prefix of the temporary staging directory created inside the vault root
DEFAULT_STAGING_PREFIX: str = ".vaultsync-staging-"

# Content type used for snapshot uploads
ARCHIVE_CONTENT_TYPE: str = "application/zip"


# =============================================================================
# Vault name helpers
# =============================================================================


def validate_vault_name(name: str) -> str:
    """Validate a vault name before it is used as a remote identity.

    The name ends up in a URL path and in the remote object key, so it
    must be a single path segment.

    Args:
        name: Vault name to validate

    Returns:
        The stripped vault name

    Raises:
        InvalidVaultNameError: If the name is empty or not a single segment
    """
    stripped = (name or "").strip()
    if not stripped:
        raise InvalidVaultNameError("Vault name must not be empty")
    if "/" in stripped or "\\" in stripped:
        raise InvalidVaultNameError(
            f"Vault name must not contain path separators: {name!r}"
        )
    if stripped in (".", ".."):
        raise InvalidVaultNameError(f"Invalid vault name: {name!r}")
    return stripped


def archive_name(vault_name: str) -> str:
    """Return the archive artifact file name for a vault."""
    return f"{vault_name}.zip"


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
