"""
Centralized timeout configuration for etcdctl invocations.

A hung etcdctl process would otherwise block the whole provisioning sequence,
so every invocation is bounded by one of these values.

Usage:
    from etcd_auth.timeout_config import Timeouts

    subprocess.run(cmd, timeout=Timeouts.ETCDCTL_COMMAND)

Environment Variables:
    - ETCD_AUTH_TIMEOUT_ETCDCTL: A single etcdctl admin command (default: 60s)
"""

import logging
import os
from typing import Final, Optional, Sequence, Union

logger = logging.getLogger(__name__)


def _get_timeout(env_var: str, default: int) -> int:
    """Get timeout value from environment variable or use default.

    Args:
        env_var: Environment variable name
        default: Default timeout in seconds

    Returns:
        Timeout value in seconds
    """
    value = os.environ.get(env_var)
    if value is not None:
        try:
            timeout = int(value)
            if timeout <= 0:
                logger.warning(
                    f"Invalid timeout value for {env_var}: {value}. "
                    f"Must be positive. Using default: {default}s"
                )
                return default
            return timeout
        except ValueError:
            logger.warning(
                f"Invalid timeout value for {env_var}: {value}. "
                f"Must be integer. Using default: {default}s"
            )
            return default
    return default


class Timeouts:
    """Timeout constants for etcdctl invocations, in seconds."""

    ETCDCTL_COMMAND: Final[int] = _get_timeout("ETCD_AUTH_TIMEOUT_ETCDCTL", 60)


def log_timeout_event(
    operation: str,
    timeout_value: Union[int, float],
    command: Optional[Union[str, Sequence[str]]] = None,
    level: str = "warning",
) -> None:
    """Log a timeout event with consistent formatting.

    Args:
        operation: Name of the operation that timed out
        timeout_value: Timeout value that was exceeded
        command: Optional command that timed out (already redacted)
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level, logger.warning)
    cmd_str = ""
    if command:
        cmd_str = command if isinstance(command, str) else " ".join(command)
        if len(cmd_str) > 100:
            cmd_str = cmd_str[:97] + "..."
        cmd_str = f" - command: '{cmd_str}'"

    log_func(
        f"Operation '{operation}' timed out after {timeout_value} seconds{cmd_str}"
    )
