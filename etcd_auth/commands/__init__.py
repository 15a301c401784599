"""CLI commands for etcd-auth."""

from etcd_auth.commands.auth import enable_auth
from etcd_auth.commands.tenant import tenant

__all__ = ["enable_auth", "tenant"]
