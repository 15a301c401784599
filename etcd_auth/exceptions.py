"""
Custom Exception Hierarchy for etcd-auth

This module provides the exception hierarchy used by the auth bootstrap and
tenant provisioning operations. Every error carries a component tag in its
message, an error code for programmatic handling, and optional context.
"""

from typing import Any, Dict, List, Optional, Sequence

REDACTED = "***REDACTED***"


def redact_args(args: Sequence[str]) -> List[str]:
    """Return a copy of etcdctl arguments with credentials masked.

    ``user add <name>:<password>`` carries the password in the third token.
    """
    redacted = list(args)
    if redacted[:2] == ["user", "add"] and len(redacted) > 2 and ":" in redacted[2]:
        user = redacted[2].split(":", 1)[0]
        redacted[2] = f"{user}:{REDACTED}"
    return redacted


class EtcdAuthError(Exception):
    """
    Base exception class for all etcd-auth related errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


class ConfigurationError(EtcdAuthError):
    """Raised when the admin configuration is invalid."""

    def __init__(
        self, message: str, config_key: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key
        kwargs["context"] = context
        kwargs.setdefault("error_code", "CONFIG_INVALID")
        super().__init__(message, **kwargs)


# etcdctl resolution errors
class NotFoundError(EtcdAuthError):
    """Raised when the etcdctl executable does not exist at the configured path."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "ETCDCTL_NOT_FOUND")
        kwargs.setdefault(
            "recovery_suggestion",
            "Run 'etcdadm init' or 'etcdadm join' first, or set ETCDCTL_PATH",
        )
        super().__init__(message, **kwargs)


class UnsupportedVersionError(EtcdAuthError):
    """Raised when the configured etcd version is not supported by the admin tooling."""

    def __init__(
        self, message: str, version: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if version:
            context["version"] = version
        kwargs["context"] = context
        kwargs.setdefault("error_code", "UNSUPPORTED_ETCD_VERSION")
        super().__init__(message, **kwargs)


# Provisioning input errors
class InvalidNameError(EtcdAuthError):
    """Raised when a tenant name cannot be used as a user, role and prefix."""

    def __init__(self, message: str, name: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if name is not None:
            context["name"] = name
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_TENANT_NAME")
        kwargs.setdefault("recovery_suggestion", "Try using a DNS-compliant value")
        super().__init__(message, **kwargs)


class MissingCredentialError(EtcdAuthError):
    """Raised when the root user password has not been generated yet."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "ROOT_CREDENTIAL_MISSING")
        kwargs.setdefault(
            "recovery_suggestion",
            "Generate the root credential before creating the root user",
        )
        super().__init__(message, **kwargs)


# etcdctl execution errors
class CommandExecutionError(EtcdAuthError):
    """Raised when an etcdctl invocation exits non-zero or cannot be started.

    ``command_args`` holds the attempted arguments as given; the message and
    context only ever show the redacted form.
    """

    def __init__(
        self,
        message: str,
        command_args: Optional[Sequence[str]] = None,
        output: str = "",
        returncode: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        self.command_args = list(command_args or [])
        self.output = output
        self.returncode = returncode
        context = kwargs.get("context", {})
        if command_args:
            context["args"] = redact_args(self.command_args)
        if returncode is not None:
            context["returncode"] = returncode
        if output:
            # Truncate long output for readability
            text = output.strip()
            context["output"] = text[:200] + "..." if len(text) > 200 else text
        kwargs["context"] = context
        kwargs.setdefault("error_code", "ETCDCTL_COMMAND_FAILED")
        super().__init__(message, **kwargs)


class CommandTimeoutError(CommandExecutionError):
    """Raised when an etcdctl invocation does not exit within its timeout."""

    def __init__(
        self,
        message: str,
        timeout_value: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        self.timeout_value = timeout_value
        context = kwargs.get("context", {})
        if timeout_value is not None:
            context["timeout"] = f"{timeout_value}s"
        kwargs["context"] = context
        kwargs.setdefault("error_code", "ETCDCTL_COMMAND_TIMEOUT")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check that etcd is reachable or raise ETCD_AUTH_TIMEOUT_ETCDCTL",
        )
        super().__init__(message, **kwargs)


# PKI errors
class CertificateIssuanceError(EtcdAuthError):
    """Raised when the tenant client certificate cannot be issued."""

    def __init__(
        self,
        message: str,
        common_name: Optional[str] = None,
        path: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if common_name:
            context["common_name"] = common_name
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "CERTIFICATE_ISSUANCE_FAILED")
        super().__init__(message, **kwargs)
