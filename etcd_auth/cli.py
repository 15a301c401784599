"""
Command-line interface for etcd-auth.

    etcd-auth enable-auth
    etcd-auth tenant --name payments
"""

from typing import Optional

import click

from etcd_auth import __version__
from etcd_auth.commands import enable_auth, tenant


@click.group()
@click.version_option(__version__, prog_name="etcd-auth")
@click.option(
    "--log-level",
    default="INFO",
    help="Logging level (DEBUG, INFO, WARNING, ERROR)",
)
@click.option(
    "--etcdctl-path",
    default=None,
    help="Path to etcdctl or the etcdctl.sh wrapper (defaults to ETCDCTL_PATH)",
)
@click.option(
    "--etcd-version",
    default=None,
    help="etcd version of the cluster (defaults to ETCD_VERSION)",
)
@click.option(
    "--certificates-dir",
    default=None,
    help="Directory holding the cluster CA (defaults to ETCD_CERTIFICATES_DIR)",
)
@click.option(
    "--timeout",
    type=int,
    default=None,
    help="Seconds each etcdctl command may run (defaults to ETCD_AUTH_TIMEOUT_ETCDCTL)",
)
@click.option(
    "--root-env-file",
    default=None,
    help="Env file holding the root password (defaults to ETCD_AUTH_ROOT_ENV_FILE)",
)
@click.option(
    "--secret-channel",
    type=click.Choice(["argv", "stdin"], case_sensitive=False),
    default=None,
    help="How generated passwords are handed to etcdctl (default: argv)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: str,
    etcdctl_path: Optional[str],
    etcd_version: Optional[str],
    certificates_dir: Optional[str],
    timeout: Optional[int],
    root_env_file: Optional[str],
    secret_channel: Optional[str],
) -> None:
    """etcd-auth - bootstrap etcd RBAC and provision tenants."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level.upper()
    ctx.obj["overrides"] = {
        "etcdctl_path": etcdctl_path,
        "version": etcd_version,
        "certificates_dir": certificates_dir,
        "command_timeout": timeout,
        "secret_channel": secret_channel,
        "root_env_file": root_env_file,
    }


cli.add_command(enable_auth)
cli.add_command(tenant)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
