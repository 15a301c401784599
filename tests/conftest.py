import random
import stat
import subprocess
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from etcd_auth.config_manager import EtcdAdmConfig
from etcd_auth.etcdctl import EtcdctlClient
from etcd_auth.password import PasswordGenerator

# ============================================================================
# etcdctl stand-ins
# ============================================================================


class RecordingRunner:
    """Stand-in for ``subprocess.run`` that records every invocation.

    ``fail_when`` receives the etcdctl arguments (without the executable) and
    returns True for calls that should exit non-zero.
    """

    def __init__(
        self,
        output: str = "ok\n",
        fail_when: Optional[Callable[[List[str]], bool]] = None,
    ):
        self.output = output
        self.fail_when = fail_when
        self.calls: List[dict] = []

    def __call__(self, cmd, **kwargs):
        self.calls.append({"cmd": list(cmd), **kwargs})
        args = list(cmd[1:])
        if self.fail_when and self.fail_when(args):
            return subprocess.CompletedProcess(cmd, 1, stdout="Error: etcdserver: failed\n")
        return subprocess.CompletedProcess(cmd, 0, stdout=self.output)

    @property
    def args(self) -> List[List[str]]:
        """etcdctl arguments of each call, executable stripped."""
        return [call["cmd"][1:] for call in self.calls]


def write_script(path: Path, body: str) -> Path:
    """Write an executable shell script."""
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def etcdctl_stub(tmp_path) -> Path:
    """An etcdctl.sh replacement that echoes its arguments and exits 0."""
    return write_script(tmp_path / "etcdctl.sh", 'echo "$@"')


@pytest.fixture
def admin_config(etcdctl_stub, tmp_path) -> EtcdAdmConfig:
    return EtcdAdmConfig(
        version="3.5",
        etcdctl_path=str(etcdctl_stub),
        etcdctl_root_user_password="",
        certificates_dir=tmp_path / "pki",
        root_env_file=tmp_path / "etcdctl.env",
        command_timeout=10,
        secret_channel="argv",
        rollback_on_failure=False,
    )


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def client(runner) -> EtcdctlClient:
    return EtcdctlClient(timeout=10, runner=runner)


@pytest.fixture
def seeded_generator() -> PasswordGenerator:
    return PasswordGenerator(rng=random.Random(1234))


@pytest.fixture
def make_runner():
    """Factory for RecordingRunner with custom output or failures."""
    return RecordingRunner


@pytest.fixture
def make_script(tmp_path):
    """Factory writing executable shell scripts into tmp_path."""

    def _make(name: str, body: str) -> Path:
        return write_script(tmp_path / name, body)

    return _make


@pytest.fixture
def logging_etcdctl(tmp_path) -> Path:
    """An etcdctl.sh replacement that appends each argument list to calls.log."""
    return write_script(
        tmp_path / "logging-etcdctl.sh", 'echo "$@" >> "$(dirname "$0")/calls.log"'
    )
