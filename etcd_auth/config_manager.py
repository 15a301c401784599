import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import colorlog
from dotenv import dotenv_values, load_dotenv, set_key

from etcd_auth.exceptions import ConfigurationError, MissingCredentialError
from etcd_auth.logging_config import configure_logging
from etcd_auth.timeout_config import Timeouts

# Load environment variables
load_dotenv()

"""
Configuration Management for etcd-auth

This module provides the admin configuration passed into every auth and
tenant operation, plus logging configuration, both populated from the
environment.
"""

logger = logging.getLogger(__name__)

DEFAULT_ETCD_VERSION = "3.5.9"
DEFAULT_ETCDCTL_PATH = "/opt/bin/etcdctl.sh"
DEFAULT_CERTIFICATES_DIR = "/etc/etcd/pki"
DEFAULT_ROOT_ENV_FILE = "/etc/etcd/etcdctl.env"

ROOT_PASSWORD_ENV = "ETCDCTL_ROOT_PASSWORD"

SECRET_CHANNEL_ARGV = "argv"
SECRET_CHANNEL_STDIN = "stdin"
SECRET_CHANNELS = (SECRET_CHANNEL_ARGV, SECRET_CHANNEL_STDIN)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class EtcdAdmConfig:
    """Configuration consumed by the auth bootstrap and tenant provisioning.

    ``etcdctl_root_user_password`` comes from ``ETCDCTL_ROOT_PASSWORD`` or,
    through ``create_config_from_env``, from the root env file written by
    ``enable-auth``. It is never included in ``repr`` or serialization.
    """

    version: str = field(
        default_factory=lambda: os.getenv("ETCD_VERSION", DEFAULT_ETCD_VERSION)
    )
    etcdctl_path: str = field(
        default_factory=lambda: os.getenv("ETCDCTL_PATH", DEFAULT_ETCDCTL_PATH)
    )
    etcdctl_root_user_password: str = field(
        default_factory=lambda: os.getenv(ROOT_PASSWORD_ENV, ""), repr=False
    )
    certificates_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("ETCD_CERTIFICATES_DIR", DEFAULT_CERTIFICATES_DIR)
        )
    )
    command_timeout: int = field(default_factory=lambda: Timeouts.ETCDCTL_COMMAND)
    secret_channel: str = field(
        default_factory=lambda: os.getenv(
            "ETCD_AUTH_SECRET_CHANNEL", SECRET_CHANNEL_ARGV
        ).lower()
    )
    rollback_on_failure: bool = field(
        default_factory=lambda: _env_flag("ETCD_AUTH_ROLLBACK_ON_FAILURE")
    )
    root_env_file: Path = field(
        default_factory=lambda: Path(
            os.getenv("ETCD_AUTH_ROOT_ENV_FILE", DEFAULT_ROOT_ENV_FILE)
        )
    )

    def __post_init__(self) -> None:
        self.certificates_dir = Path(self.certificates_dir)
        self.root_env_file = Path(self.root_env_file)

    def validate(self) -> None:
        """Validate the admin configuration."""
        if not self.version:
            raise ConfigurationError("[config] etcd version is required", "version")
        if not self.etcdctl_path:
            raise ConfigurationError(
                "[config] etcdctl path is required", "etcdctl_path"
            )
        if self.command_timeout <= 0:
            raise ConfigurationError(
                "[config] command timeout must be a positive number of seconds",
                "command_timeout",
            )
        if self.secret_channel not in SECRET_CHANNELS:
            raise ConfigurationError(
                f"[config] secret channel must be one of: {list(SECRET_CHANNELS)}",
                "secret_channel",
            )

    @property
    def has_root_credential(self) -> bool:
        return bool(self.etcdctl_root_user_password)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization."""
        return {
            "version": self.version,
            "etcdctl_path": self.etcdctl_path,
            # Don't include the root password in serialization
            "root_credential_set": self.has_root_credential,
            "certificates_dir": str(self.certificates_dir),
            "command_timeout": self.command_timeout,
            "secret_channel": self.secret_channel,
            "rollback_on_failure": self.rollback_on_failure,
            "root_env_file": str(self.root_env_file),
        }


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(log_color)s%(levelname)s:%(name)s:%(message)s"
        )
    )
    file_output: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))
    json_output: bool = field(default_factory=lambda: _env_flag("LOG_JSON"))

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ConfigurationError(
                f"[config] log level must be one of: {valid_levels}", "level"
            )
        self.level = self.level.upper()

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        return int(getattr(logging, self.level))


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup logging configuration based on config.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(config.get_log_level())

    console_handler = colorlog.StreamHandler()
    console_handler.setFormatter(colorlog.ColoredFormatter(config.format))
    root_logger.addHandler(console_handler)

    if config.file_output:
        file_handler = logging.FileHandler(config.file_output)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s:%(name)s:%(message)s")
        )
        root_logger.addHandler(file_handler)

    configure_logging(config.get_log_level(), json_output=config.json_output)

    logger.debug(
        f"Logging configured: level={config.level}, file={config.file_output or 'console'}"
    )


def save_root_credential(config: EtcdAdmConfig) -> Path:
    """Write the root password to ``config.root_env_file`` as ``ETCDCTL_ROOT_PASSWORD``.

    Other entries already in the file (e.g. endpoints used by the etcdctl.sh
    wrapper) are kept. The file is left readable by its owner only.

    Raises:
        MissingCredentialError: If no root password has been generated
        ConfigurationError: If the file cannot be written
    """
    if not config.etcdctl_root_user_password:
        raise MissingCredentialError(
            "[config] no root user password to write to the etcdctl env file"
        )
    path = config.root_env_file
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            os.close(os.open(path, os.O_WRONLY | os.O_CREAT, 0o600))
        set_key(
            str(path),
            ROOT_PASSWORD_ENV,
            config.etcdctl_root_user_password,
            quote_mode="never",
        )
        os.chmod(path, 0o600)
    except OSError as e:
        raise ConfigurationError(
            f"[config] failed to write root credential to {path}",
            "root_env_file",
            cause=e,
        ) from e

    logger.debug(f"Root credential written to {path}")
    return path


def load_root_credential(config: EtcdAdmConfig) -> bool:
    """Fill in the root password from ``config.root_env_file`` if it is not set.

    Returns:
        True if a password was loaded from the file
    """
    if config.etcdctl_root_user_password:
        return False
    path = config.root_env_file
    try:
        if not path.is_file():
            return False
        values = dotenv_values(path)
    except OSError as e:
        raise ConfigurationError(
            f"[config] failed to read root credential from {path}",
            "root_env_file",
            cause=e,
        ) from e

    password = values.get(ROOT_PASSWORD_ENV)
    if not password:
        return False
    config.etcdctl_root_user_password = password
    return True


def create_config_from_env(
    version: Optional[str] = None,
    etcdctl_path: Optional[str] = None,
    certificates_dir: Optional[str] = None,
    command_timeout: Optional[int] = None,
    secret_channel: Optional[str] = None,
    rollback_on_failure: Optional[bool] = None,
    root_env_file: Optional[str] = None,
) -> EtcdAdmConfig:
    """
    Factory function to create and validate configuration from environment.

    Explicit arguments override the environment. A root password missing
    from the environment is read from the root env file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = EtcdAdmConfig()
    if version is not None:
        config.version = version
    if etcdctl_path is not None:
        config.etcdctl_path = etcdctl_path
    if certificates_dir is not None:
        config.certificates_dir = Path(certificates_dir)
    if command_timeout is not None:
        config.command_timeout = command_timeout
    if secret_channel is not None:
        config.secret_channel = secret_channel.lower()
    if rollback_on_failure is not None:
        config.rollback_on_failure = rollback_on_failure
    if root_env_file is not None:
        config.root_env_file = Path(root_env_file)
    config.validate()
    load_root_credential(config)
    return config
