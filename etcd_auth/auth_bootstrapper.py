"""Root user creation and auth enablement.

Follows the etcd authentication guide: the root user must exist before
``etcdctl auth enable`` is run, otherwise nobody can administer the cluster
once authentication is enforced.
https://etcd.io/docs/v3.5/op-guide/authentication/rbac/
"""

from typing import Dict, Optional

import structlog

from etcd_auth import etcdctl
from etcd_auth.config_manager import EtcdAdmConfig
from etcd_auth.etcdctl import EtcdctlClient
from etcd_auth.exceptions import MissingCredentialError
from etcd_auth.password import PasswordGenerator, default_generator

logger = structlog.get_logger(__name__)

ROOT_USER = "root"
ROOT_USER_ENV = "ETCDCTL_USER"


def root_user_env(config: EtcdAdmConfig) -> Dict[str, str]:
    """Environment authenticating etcdctl as root, empty if no root password is set.

    etcdctl reads ETCDCTL_USER like --user, which keeps the password out of
    the process arguments.
    """
    if not config.etcdctl_root_user_password:
        return {}
    return {ROOT_USER_ENV: f"{ROOT_USER}:{config.etcdctl_root_user_password}"}


class AuthBootstrapper:
    """Creates the etcd root user and switches on authentication."""

    def __init__(
        self,
        client: Optional[EtcdctlClient] = None,
        password_generator: Optional[PasswordGenerator] = None,
    ) -> None:
        self.client = client
        self.password_generator = password_generator or default_generator()

    def _client(self, config: EtcdAdmConfig) -> EtcdctlClient:
        return self.client or EtcdctlClient.from_config(config)

    def setup_root_credential(self, config: EtcdAdmConfig) -> None:
        """Store a generated root password in ``config``.

        ``config_manager.save_root_credential`` writes it to the etcdctl env
        file so later runs can authenticate as root.
        """
        config.etcdctl_root_user_password = self.password_generator.generate_password()
        logger.debug("[auth] generated root user password")

    def create_root_identity(self, config: EtcdAdmConfig) -> None:
        """Create the ``root`` user with the password held in ``config``.

        An already existing root user is reported by etcd and surfaces as a
        ``CommandExecutionError``.
        """
        client = self._client(config)
        executable = client.resolve(config)
        if not config.etcdctl_root_user_password:
            raise MissingCredentialError(
                "[auth] etcd root user password not found in EtcdAdmConfig.etcdctl_root_user_password"
            )
        client.run(
            executable,
            etcdctl.user_add(
                ROOT_USER, config.etcdctl_root_user_password, config.secret_channel
            ),
        )
        logger.info("[auth] created root user")

    def enable_enforcement(self, config: EtcdAdmConfig) -> None:
        client = self._client(config)
        executable = client.resolve(config)
        client.run(executable, etcdctl.auth_enable())
        logger.info("[auth] authentication enabled")

    def enable_auth_with_root_user(self, config: EtcdAdmConfig) -> None:
        """Create the root user, then enable auth.

        The order is fixed: enabling auth without a root user would leave the
        cluster without an identity able to manage it.
        """
        self.create_root_identity(config)
        self.enable_enforcement(config)

    def create_user(self, config: EtcdAdmConfig, name: str) -> str:
        """Create a non-root user with a random password and return the password.

        Clients are expected to authenticate with certificates, so the
        password is not used afterwards.
        """
        client = self._client(config)
        executable = client.resolve(config)
        password = self.password_generator.generate_password()
        client.run(
            executable,
            etcdctl.user_add(name, password, config.secret_channel),
            env=root_user_env(config),
        )
        return password


def setup_root_user_config(config: EtcdAdmConfig) -> None:
    AuthBootstrapper().setup_root_credential(config)


def enable_auth_with_root_user(config: EtcdAdmConfig) -> None:
    AuthBootstrapper().enable_auth_with_root_user(config)
