"""Tenant provisioning.

A tenant named ``<name>`` gets, in this order:

1. ``etcdctl user add <name>:<random password>``
2. ``etcdctl role add <name>``
3. ``etcdctl role grant-permission <name> --prefix=true readwrite /<name>/``
4. ``etcdctl user grant-role <name> <name>``

followed by a client certificate with CN ``<name>``. The password is a
throwaway: the tenant authenticates with the certificate.

Steps are not atomic. By default a failure leaves earlier steps in place.
With rollback enabled, the role and user created so far are deleted in
reverse order before the original error is raised again.

Concurrent provisioning of the same name is not serialized here; callers
must not race two ``create_tenant`` calls for one tenant.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

import structlog

from etcd_auth import etcdctl
from etcd_auth.auth_bootstrapper import root_user_env
from etcd_auth.certs import issue_tenant_client_certificate
from etcd_auth.config_manager import SECRET_CHANNEL_ARGV, EtcdAdmConfig
from etcd_auth.etcdctl import AdminCommand, EtcdctlClient
from etcd_auth.exceptions import EtcdAuthError, InvalidNameError
from etcd_auth.password import PasswordGenerator, default_generator

logger = structlog.get_logger(__name__)

CertificateIssuerFn = Callable[[EtcdAdmConfig, str], object]


@dataclass(frozen=True)
class TenantIdentity:
    """User, role and key prefix derived from a tenant name."""

    name: str
    password: str

    @property
    def role(self) -> str:
        return self.name

    @property
    def prefix(self) -> str:
        return f"/{self.name}/"

    @classmethod
    def for_name(cls, name: str, password: str) -> "TenantIdentity":
        validate_tenant_name(name)
        return cls(name=name, password=password)

    def __repr__(self) -> str:
        return f"TenantIdentity(name={self.name!r}, prefix={self.prefix!r})"


@dataclass(frozen=True)
class ProvisioningStep:
    command: AdminCommand
    compensation: Optional[AdminCommand] = None


def validate_tenant_name(name: str) -> str:
    """Check that ``name`` can be used as user, role and a single prefix segment.

    Other characters are left for etcd to accept or reject. A name containing
    ``:`` is split by etcdctl at the first colon of ``user add <name>:<password>``,
    so such tenants need the stdin secret channel. A name starting with ``-``
    is read by etcdctl as a flag.

    Raises:
        InvalidNameError: If the name is empty or contains ``/``
    """
    if not name:
        raise InvalidNameError("[auth] invalid value for --name: name cannot be empty")
    if "/" in name:
        raise InvalidNameError(
            f"[auth] invalid value for --name: '{name}' cannot contain /", name=name
        )
    return name


def plan_tenant(
    tenant: TenantIdentity, secret_channel: str = SECRET_CHANNEL_ARGV
) -> List[ProvisioningStep]:
    """Return the ordered etcdctl commands that provision ``tenant``."""
    return [
        ProvisioningStep(
            etcdctl.user_add(tenant.name, tenant.password, secret_channel),
            compensation=etcdctl.user_delete(tenant.name),
        ),
        ProvisioningStep(
            etcdctl.role_add(tenant.role),
            compensation=etcdctl.role_delete(tenant.role),
        ),
        # Deleting the role drops its permissions
        ProvisioningStep(
            etcdctl.role_grant_prefix_permission(tenant.role, tenant.prefix)
        ),
        # Deleting the user drops its role bindings
        ProvisioningStep(etcdctl.user_grant_role(tenant.name, tenant.role)),
    ]


class TenantProvisioner:
    """Creates tenant users, roles and prefix permissions with etcdctl."""

    def __init__(
        self,
        client: Optional[EtcdctlClient] = None,
        password_generator: Optional[PasswordGenerator] = None,
        certificate_issuer: Optional[CertificateIssuerFn] = None,
    ) -> None:
        self.client = client
        self.password_generator = password_generator or default_generator()
        self.certificate_issuer = certificate_issuer or issue_tenant_client_certificate

    def create_tenant(
        self,
        config: EtcdAdmConfig,
        name: str,
        rollback: Optional[bool] = None,
        issue_certificate: bool = True,
    ) -> TenantIdentity:
        """Provision tenant ``name`` and issue its client certificate.

        Args:
            config: Admin configuration
            name: Tenant name, used as user, role, prefix and certificate CN
            rollback: Undo completed steps on failure. ``None`` uses
                ``config.rollback_on_failure``.
            issue_certificate: Issue the client certificate after provisioning

        Raises:
            InvalidNameError: Before any command runs, if ``name`` is invalid
            NotFoundError, UnsupportedVersionError: If etcdctl is unusable
            CommandExecutionError: If any etcdctl command fails
        """
        validate_tenant_name(name)
        client = self.client or EtcdctlClient.from_config(config)
        executable = client.resolve(config)

        tenant = TenantIdentity.for_name(name, self.password_generator.generate_password())
        if rollback is None:
            rollback = config.rollback_on_failure

        self._provision(client, executable, config, tenant, rollback)
        logger.info(
            f"[auth] created user and role {tenant.name} with readwrite access to {tenant.prefix}"
        )

        if issue_certificate:
            self.certificate_issuer(config, tenant.name)
        return tenant

    def _provision(
        self,
        client: EtcdctlClient,
        executable: str,
        config: EtcdAdmConfig,
        tenant: TenantIdentity,
        rollback: bool,
    ) -> None:
        env = root_user_env(config)
        completed: List[ProvisioningStep] = []
        for step in plan_tenant(tenant, config.secret_channel):
            try:
                client.run(executable, step.command, env=env)
            except EtcdAuthError as e:
                logger.error(
                    f"[auth] provisioning tenant {tenant.name} failed at: {step.command}"
                )
                if rollback:
                    self._compensate(client, executable, env, completed, e)
                raise
            completed.append(step)

    def _compensate(
        self,
        client: EtcdctlClient,
        executable: str,
        env: dict,
        completed: List[ProvisioningStep],
        error: EtcdAuthError,
    ) -> None:
        rolled_back = []
        failures = []
        for step in reversed(completed):
            if step.compensation is None:
                continue
            try:
                client.run(executable, step.compensation, env=env)
                rolled_back.append(str(step.compensation))
            except EtcdAuthError as e:
                logger.error(f"[auth] rollback `{step.compensation}` failed: {e}")
                failures.append(str(step.compensation))
        error.context["rolled_back"] = rolled_back
        if failures:
            error.context["rollback_failures"] = failures


def create_tenant(config: EtcdAdmConfig, name: str) -> TenantIdentity:
    return TenantProvisioner().create_tenant(config, name)
