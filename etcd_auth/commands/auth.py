"""Auth enablement command.

Generates the root password, saves it to the etcdctl env file, creates the
root user and enables authentication. Meant to run once per cluster, during
init. Later commands read the root password back from the env file.
"""

import click
from rich.console import Console

from etcd_auth.auth_bootstrapper import AuthBootstrapper
from etcd_auth.commands.base import command_context, fail
from etcd_auth.config_manager import save_root_credential
from etcd_auth.exceptions import EtcdAuthError

console = Console()


@click.command("enable-auth")
@click.option(
    "--show-root-password",
    is_flag=True,
    default=False,
    help="Also print the generated root password (it is always saved to the etcdctl env file)",
)
@click.pass_context
def enable_auth(ctx: click.Context, show_root_password: bool) -> None:
    """Create the etcd root user with a random password and enable auth."""
    cmd_ctx = command_context(ctx)
    try:
        cmd_ctx.setup_logging()
        config = cmd_ctx.get_config()
    except EtcdAuthError as e:
        fail("[defaults]", e)

    bootstrapper = AuthBootstrapper()
    try:
        bootstrapper.setup_root_credential(config)
        env_file = save_root_credential(config)
        bootstrapper.enable_auth_with_root_user(config)
    except EtcdAuthError as e:
        fail("[auth]", e)

    console.print("[green]Root user created and authentication enabled[/green]")
    console.print(f"  root credential: {env_file}")
    if show_root_password:
        click.echo(f"root password: {config.etcdctl_root_user_password}")
