"""
etcd-auth

Bootstraps role-based access control for etcd and provisions tenants: a user,
a role with readwrite access to the ``/<tenant>/`` prefix, and a client
certificate, all driven through etcdctl.
"""

__version__ = "0.1.0"
