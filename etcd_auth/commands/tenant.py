"""Tenant command.

Creates a user and role named after the tenant with readwrite access to the
``/<name>/`` prefix, then issues the tenant's client certificate.
"""

from typing import Optional

import click
from rich.console import Console

from etcd_auth.commands.base import command_context, fail
from etcd_auth.exceptions import EtcdAuthError
from etcd_auth.tenant_provisioner import TenantProvisioner

console = Console()


@click.command("tenant")
@click.option(
    "--name",
    required=True,
    help=(
        "Name used as client cert Common Name (CN), user, role, and prefix. "
        "The user is given readwrite access to the prefix of the same name, "
        "created at the root of etcd."
    ),
)
@click.option(
    "--rollback/--no-rollback",
    default=None,
    help="Delete the user and role created so far if a later step fails",
)
@click.option(
    "--skip-certs",
    is_flag=True,
    default=False,
    help="Do not issue a client certificate for the tenant",
)
@click.pass_context
def tenant(
    ctx: click.Context, name: str, rollback: Optional[bool], skip_certs: bool
) -> None:
    """Create a user with full read/write access to a prefix of the same name."""
    cmd_ctx = command_context(ctx)
    try:
        cmd_ctx.setup_logging()
        config = cmd_ctx.get_config()
    except EtcdAuthError as e:
        fail("[defaults]", e)

    try:
        identity = TenantProvisioner().create_tenant(
            config, name, rollback=rollback, issue_certificate=not skip_certs
        )
    except EtcdAuthError as e:
        fail("[tenant]", e)

    console.print(f"[green]Tenant '{identity.name}' provisioned[/green]")
    console.print(f"  user/role: {identity.name}")
    console.print(f"  prefix:    {identity.prefix} (readwrite)")
    if not skip_certs:
        console.print(
            f"  client certificate: {config.certificates_dir / (identity.name + '.crt')}"
        )
