"""Tests for etcdctl resolution and execution.

Execution tests run small shell scripts standing in for etcdctl.sh.
"""

import os

import pytest

from etcd_auth import etcdctl
from etcd_auth.config_manager import EtcdAdmConfig
from etcd_auth.etcdctl import AdminCommand, EtcdctlClient
from etcd_auth.exceptions import (
    REDACTED,
    CommandExecutionError,
    CommandTimeoutError,
    NotFoundError,
    UnsupportedVersionError,
)


class TestResolve:
    def test_resolves_configured_path_for_v3(self, etcdctl_stub):
        config = EtcdAdmConfig(version="3.5", etcdctl_path=str(etcdctl_stub))
        assert EtcdctlClient().resolve(config) == str(etcdctl_stub)

    def test_rejects_v2(self, etcdctl_stub):
        config = EtcdAdmConfig(version="2.3", etcdctl_path=str(etcdctl_stub))
        with pytest.raises(UnsupportedVersionError, match="3.x") as excinfo:
            EtcdctlClient().resolve(config)
        assert excinfo.value.context["version"] == "2.3"

    def test_missing_executable(self, tmp_path):
        missing = tmp_path / "nope" / "etcdctl.sh"
        config = EtcdAdmConfig(version="3.5", etcdctl_path=str(missing))
        with pytest.raises(NotFoundError, match="does not exist") as excinfo:
            EtcdctlClient().resolve(config)
        assert excinfo.value.error_code == "ETCDCTL_NOT_FOUND"

    def test_missing_executable_reported_before_version(self, tmp_path):
        config = EtcdAdmConfig(version="2.3", etcdctl_path=str(tmp_path / "missing"))
        with pytest.raises(NotFoundError):
            EtcdctlClient().resolve(config)


class TestExecute:
    def test_returns_combined_output(self, make_script):
        script = make_script("etcdctl.sh", 'echo "out $@"\necho "err" >&2')
        output = EtcdctlClient(timeout=10).execute(str(script), ["role", "add", "a"])
        assert "out role add a" in output
        assert "err" in output

    def test_non_zero_exit_raises(self, make_script):
        script = make_script(
            "etcdctl.sh", 'echo "Error: etcdserver: role name already exists"\nexit 3'
        )
        with pytest.raises(CommandExecutionError) as excinfo:
            EtcdctlClient(timeout=10).execute(str(script), ["role", "add", "a"])

        error = excinfo.value
        assert error.returncode == 3
        assert error.command_args == ["role", "add", "a"]
        assert "role name already exists" in error.output
        assert str(error).startswith("[ETCDCTL_COMMAND_FAILED] [auth]")

    def test_failure_message_redacts_password(self, make_script):
        script = make_script("etcdctl.sh", "exit 1")
        with pytest.raises(CommandExecutionError) as excinfo:
            EtcdctlClient(timeout=10).execute(
                str(script), ["user", "add", "alice:s3cretPassw0rd"]
            )

        error = excinfo.value
        assert "s3cretPassw0rd" not in str(error)
        assert f"alice:{REDACTED}" in str(error)
        # The raw arguments stay available to the caller
        assert error.command_args == ["user", "add", "alice:s3cretPassw0rd"]

    def test_hung_command_times_out(self, make_script):
        script = make_script("etcdctl.sh", "exec sleep 30")
        with pytest.raises(CommandTimeoutError) as excinfo:
            EtcdctlClient(timeout=0.5).execute(str(script), ["auth", "enable"])

        assert excinfo.value.timeout_value == 0.5
        assert excinfo.value.error_code == "ETCDCTL_COMMAND_TIMEOUT"
        assert isinstance(excinfo.value, CommandExecutionError)

    def test_unlaunchable_executable_raises(self, tmp_path):
        not_executable = tmp_path / "etcdctl.sh"
        not_executable.write_text("echo hi\n")
        with pytest.raises(CommandExecutionError) as excinfo:
            EtcdctlClient(timeout=10).execute(str(not_executable), ["auth", "enable"])
        assert isinstance(excinfo.value.cause, OSError)

    def test_env_is_scoped_to_child(self, make_script, monkeypatch):
        monkeypatch.delenv("ETCDCTL_USER", raising=False)
        script = make_script("etcdctl.sh", 'echo "user=$ETCDCTL_USER path=$PATH"')
        output = EtcdctlClient(timeout=10).execute(
            str(script), ["role", "list"], env={"ETCDCTL_USER": "root:pw"}
        )
        assert "user=root:pw" in output
        # The rest of the environment is inherited
        assert f"path={os.environ['PATH']}" in output
        assert "ETCDCTL_USER" not in os.environ

    def test_stdin_is_passed(self, make_script):
        script = make_script("etcdctl.sh", 'read pw\necho "got $pw"')
        output = EtcdctlClient(timeout=10).execute(
            str(script), ["user", "add", "bob", "--interactive=false"], stdin="hunter2\n"
        )
        assert "got hunter2" in output

    def test_runner_receives_bounded_call(self, client, runner):
        client.execute("/opt/bin/etcdctl.sh", ["auth", "enable"])
        call = runner.calls[0]
        assert call["cmd"] == ["/opt/bin/etcdctl.sh", "auth", "enable"]
        assert call["timeout"] == 10
        assert call["env"] is None
        assert call["input"] is None


class TestCommandBuilders:
    def test_user_add_argv(self):
        command = etcdctl.user_add("payments", "abc")
        assert command.args == ("user", "add", "payments:abc")
        assert command.stdin is None
        assert str(command) == f"user add payments:{REDACTED}"

    def test_user_add_stdin(self):
        command = etcdctl.user_add("payments", "abc", secret_channel="stdin")
        assert command.args == ("user", "add", "payments", "--interactive=false")
        assert command.stdin == "abc\n"
        assert "abc" not in repr(command)

    def test_role_grant_prefix_permission(self):
        command = etcdctl.role_grant_prefix_permission("payments", "/payments/")
        assert command.args == (
            "role",
            "grant-permission",
            "payments",
            "--prefix=true",
            "readwrite",
            "/payments/",
        )

    def test_other_builders(self):
        assert etcdctl.role_add("a").args == ("role", "add", "a")
        assert etcdctl.role_delete("a").args == ("role", "delete", "a")
        assert etcdctl.user_delete("a").args == ("user", "delete", "a")
        assert etcdctl.user_grant_role("a", "b").args == ("user", "grant-role", "a", "b")
        assert etcdctl.auth_enable().args == ("auth", "enable")

    def test_run_passes_stdin(self, client, runner):
        client.run("/opt/bin/etcdctl.sh", AdminCommand(("user", "add", "x"), stdin="pw\n"))
        assert runner.calls[0]["input"] == "pw\n"
