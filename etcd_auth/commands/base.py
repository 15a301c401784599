"""Base command infrastructure and shared utilities.

This module provides common utilities used across command modules:
- CommandContext for shared command execution context
- exit_with_error for fatal diagnostics
"""

import sys
from typing import Any, NoReturn, Optional

import click
import structlog

from etcd_auth.config_manager import (
    EtcdAdmConfig,
    LoggingConfig,
    create_config_from_env,
    setup_logging,
)
from etcd_auth.exceptions import EtcdAuthError

logger = structlog.get_logger(__name__)


class CommandContext:
    """Shared context for command execution."""

    def __init__(
        self,
        ctx: click.Context,
        log_level: str = "INFO",
        overrides: Optional[dict] = None,
    ):
        self.click_ctx = ctx
        self.log_level = log_level
        self.overrides = overrides or {}

    def setup_logging(self) -> None:
        setup_logging(LoggingConfig(level=self.log_level))

    def get_config(self, **kwargs: Any) -> EtcdAdmConfig:
        """Build the admin configuration from the environment and CLI overrides."""
        options = {k: v for k, v in self.overrides.items() if v is not None}
        options.update({k: v for k, v in kwargs.items() if v is not None})
        return create_config_from_env(**options)


def command_context(ctx: click.Context) -> CommandContext:
    """Create CommandContext from click context."""
    obj = ctx.obj or {}
    return CommandContext(
        ctx=ctx,
        log_level=obj.get("log_level", "INFO"),
        overrides=obj.get("overrides", {}),
    )


def exit_with_error(message: str, code: int = 1) -> NoReturn:
    """Exit with error message."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)


def fail(prefix: str, error: Exception) -> NoReturn:
    """Log ``error`` as fatal and terminate the process."""
    if isinstance(error, EtcdAuthError):
        logger.error(f"{prefix} Error: {error.message}", **error.to_dict())
    else:
        logger.error(f"{prefix} Error: {error}")
    exit_with_error(f"{prefix} {error}")
