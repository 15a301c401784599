"""Tests for the exception hierarchy."""

import pytest

from etcd_auth.exceptions import (
    REDACTED,
    CertificateIssuanceError,
    CommandExecutionError,
    CommandTimeoutError,
    ConfigurationError,
    EtcdAuthError,
    InvalidNameError,
    MissingCredentialError,
    NotFoundError,
    UnsupportedVersionError,
    redact_args,
)


class TestEtcdAuthError:
    def test_str_includes_code_context_cause_and_suggestion(self):
        error = EtcdAuthError(
            "[auth] boom",
            error_code="BOOM",
            context={"name": "a"},
            cause=OSError("disk"),
            recovery_suggestion="retry",
        )
        assert str(error) == (
            "[BOOM] [auth] boom (context: name=a) (caused by: disk) (suggestion: retry)"
        )

    def test_to_dict(self):
        error = InvalidNameError("[auth] bad name", name="a/b")
        assert error.to_dict() == {
            "error_type": "InvalidNameError",
            "message": "[auth] bad name",
            "error_code": "INVALID_TENANT_NAME",
            "context": {"name": "a/b"},
            "cause": None,
            "recovery_suggestion": "Try using a DNS-compliant value",
        }

    @pytest.mark.parametrize(
        "error_class",
        [
            ConfigurationError,
            NotFoundError,
            UnsupportedVersionError,
            InvalidNameError,
            MissingCredentialError,
            CommandExecutionError,
            CommandTimeoutError,
            CertificateIssuanceError,
        ],
    )
    def test_all_errors_share_base(self, error_class):
        assert issubclass(error_class, EtcdAuthError)

    def test_error_codes(self):
        assert NotFoundError("x").error_code == "ETCDCTL_NOT_FOUND"
        assert UnsupportedVersionError("x").error_code == "UNSUPPORTED_ETCD_VERSION"
        assert MissingCredentialError("x").error_code == "ROOT_CREDENTIAL_MISSING"
        assert CommandExecutionError("x").error_code == "ETCDCTL_COMMAND_FAILED"
        assert CommandTimeoutError("x").error_code == "ETCDCTL_COMMAND_TIMEOUT"


class TestCommandExecutionError:
    def test_context_holds_redacted_args_and_output(self):
        error = CommandExecutionError(
            "[auth] failed",
            command_args=["user", "add", "bob:pw123"],
            output="Error: etcdserver: user name already exists\n",
            returncode=1,
        )
        assert error.context["args"] == ["user", "add", f"bob:{REDACTED}"]
        assert error.context["returncode"] == 1
        assert error.context["output"] == "Error: etcdserver: user name already exists"
        assert "pw123" not in str(error)

    def test_long_output_truncated(self):
        error = CommandExecutionError("[auth] failed", output="x" * 500)
        assert len(error.context["output"]) == 203
        assert error.output == "x" * 500

    def test_timeout_context(self):
        error = CommandTimeoutError("[auth] slow", command_args=["auth", "enable"], timeout_value=5)
        assert error.context["timeout"] == "5s"
        assert error.timeout_value == 5


class TestRedactArgs:
    def test_redacts_user_add_password(self):
        assert redact_args(["user", "add", "root:abc"]) == ["user", "add", f"root:{REDACTED}"]

    def test_leaves_other_commands(self):
        args = ["role", "grant-permission", "a", "--prefix=true", "readwrite", "/a/"]
        assert redact_args(args) == args

    def test_leaves_stdin_style_user_add(self):
        args = ["user", "add", "bob", "--interactive=false"]
        assert redact_args(args) == args

    def test_does_not_modify_input(self):
        args = ["user", "add", "root:abc"]
        redact_args(args)
        assert args == ["user", "add", "root:abc"]
