"""etcdctl invocation for auth administration.

This module wraps the etcdctl executable (usually the ``etcdctl.sh`` wrapper
written by etcdadm, which sets the endpoint and TLS environment) so that
auth and tenant operations can run admin commands with:

- resolution of the executable and the supported etcd version
- combined stdout/stderr capture
- a bounded runtime for every invocation
- credentials kept out of logs and error messages
"""

import os
import subprocess  # nosec B404
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import structlog

from etcd_auth.config_manager import (
    SECRET_CHANNEL_ARGV,
    SECRET_CHANNEL_STDIN,
    EtcdAdmConfig,
)
from etcd_auth.exceptions import (
    CommandExecutionError,
    CommandTimeoutError,
    NotFoundError,
    UnsupportedVersionError,
    redact_args,
)
from etcd_auth.timeout_config import Timeouts, log_timeout_event

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AdminCommand:
    """One etcdctl invocation: positional arguments plus an optional stdin secret."""

    args: tuple
    description: str = ""
    stdin: Optional[str] = field(default=None, repr=False)

    def redacted(self) -> List[str]:
        return redact_args(self.args)

    def __str__(self) -> str:
        return " ".join(self.redacted())


def _to_text(data: object) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return str(data)


class EtcdctlClient:
    """Runs etcdctl admin commands.

    Args:
        timeout: Seconds each invocation may run. ``None`` uses
            ``Timeouts.ETCDCTL_COMMAND``.
        runner: Callable with the ``subprocess.run`` signature.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        runner: Callable[..., "subprocess.CompletedProcess[str]"] = subprocess.run,
    ) -> None:
        self.timeout = timeout if timeout is not None else Timeouts.ETCDCTL_COMMAND
        self.runner = runner

    @classmethod
    def from_config(cls, config: EtcdAdmConfig) -> "EtcdctlClient":
        return cls(timeout=config.command_timeout)

    def resolve(self, config: EtcdAdmConfig) -> str:
        """Return the etcdctl path from ``config`` once it is known to be usable.

        Raises:
            NotFoundError: If nothing exists at the configured path
            UnsupportedVersionError: If the configured etcd version is 2.x
        """
        path = config.etcdctl_path
        try:
            exists = Path(path).exists()
        except OSError as e:
            raise NotFoundError(
                f"[auth] error checking if executable exists at path {path}",
                path=path,
                cause=e,
            ) from e
        if not exists:
            raise NotFoundError(
                f"[auth] executable does not exist at path {path}", path=path
            )

        if config.version.startswith("2"):
            raise UnsupportedVersionError(
                "[auth] enabling auth and creating users is only supported for etcd 3.x",
                version=config.version,
            )
        return path

    def _build_env(self, env: Optional[Mapping[str, str]]) -> Optional[Dict[str, str]]:
        if not env:
            return None
        child_env = os.environ.copy()
        child_env.update(env)
        return child_env

    def execute(
        self,
        executable: str,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        stdin: Optional[str] = None,
    ) -> str:
        """Run ``executable`` with ``args`` and return its combined output.

        Args:
            executable: Path returned by :meth:`resolve`
            args: Positional etcdctl arguments
            env: Extra environment for the child process only
            stdin: Data written to the child's stdin (used for secrets)

        Raises:
            CommandExecutionError: If the command exits non-zero or cannot start
            CommandTimeoutError: If the command outlives the timeout
        """
        args = list(args)
        cmd = [executable, *args]
        shown = redact_args(args)
        logger.debug(f"[auth] running: {executable} {' '.join(shown)}")

        try:
            result = self.runner(  # nosec B603
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                input=stdin,
                text=True,
                env=self._build_env(env),
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            log_timeout_event("etcdctl", self.timeout, [executable, *shown], "error")
            raise CommandTimeoutError(
                f"[auth] `{' '.join(shown)}` command timed out after {self.timeout}s",
                command_args=args,
                output=_to_text(e.output),
                timeout_value=self.timeout,
                cause=e,
            ) from e
        except OSError as e:
            raise CommandExecutionError(
                f"[auth] `{' '.join(shown)}` command failed with error: {e}",
                command_args=args,
                cause=e,
            ) from e

        output = _to_text(result.stdout)
        if result.returncode != 0:
            logger.error(
                f"[auth] `{' '.join(shown)}` exited with status {result.returncode}"
            )
            raise CommandExecutionError(
                f"[auth] `{' '.join(shown)}` command failed with exit status {result.returncode}",
                command_args=args,
                output=output,
                returncode=result.returncode,
            )

        logger.info(f"[auth] {output.rstrip()}")
        return output

    def run(
        self,
        executable: str,
        command: AdminCommand,
        env: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Execute an :class:`AdminCommand`."""
        return self.execute(executable, command.args, env=env, stdin=command.stdin)


# Command builders. Shapes follow the etcd authentication guide:
# https://etcd.io/docs/v3.5/op-guide/authentication/rbac/


def user_add(
    name: str, password: str, secret_channel: str = SECRET_CHANNEL_ARGV
) -> AdminCommand:
    """``etcdctl user add <name>:<password>``, or with the password on stdin."""
    if secret_channel == SECRET_CHANNEL_STDIN:
        return AdminCommand(
            ("user", "add", name, "--interactive=false"),
            description=f"create user {name}",
            stdin=f"{password}\n",
        )
    return AdminCommand(
        ("user", "add", f"{name}:{password}"), description=f"create user {name}"
    )


def user_delete(name: str) -> AdminCommand:
    return AdminCommand(("user", "delete", name), description=f"delete user {name}")


def user_grant_role(user: str, role: str) -> AdminCommand:
    return AdminCommand(
        ("user", "grant-role", user, role),
        description=f"grant role {role} to user {user}",
    )


def role_add(name: str) -> AdminCommand:
    return AdminCommand(("role", "add", name), description=f"create role {name}")


def role_delete(name: str) -> AdminCommand:
    return AdminCommand(("role", "delete", name), description=f"delete role {name}")


def role_grant_prefix_permission(
    role: str, prefix: str, permission: str = "readwrite"
) -> AdminCommand:
    return AdminCommand(
        ("role", "grant-permission", role, "--prefix=true", permission, prefix),
        description=f"grant {permission} on {prefix} to role {role}",
    )


def auth_enable() -> AdminCommand:
    return AdminCommand(("auth", "enable"), description="enable authentication")
