"""Credential helpers for CLI commands."""

from typing import Any

from .config import config
from .exceptions import ConfigError
from .output import OutputFormatter


def require_auth_token(ctx: Any, out: OutputFormatter) -> str:
    """Return the bearer token or exit with an error.

    The global ``--token`` option wins over the configured token.

    Args:
        ctx: Click context
        out: Output formatter

    Returns:
        Bearer token
    """
    try:
        token = ctx.obj.get("token") or config.auth_token
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        raise  # Unreachable, but helps type checker
    if not token:
        out.error(
            "No auth token configured. Run 'vaultsync init' or set "
            "VAULTSYNC_AUTH_TOKEN."
        )
        ctx.exit(1)
    return token
