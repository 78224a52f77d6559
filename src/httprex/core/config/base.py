"""Enums shared by the configuration models."""

from enum import Enum


class SecretProviderType(str, Enum):
    """Built-in secret provider backends."""

    ENV = "env"
    PROMPT = "prompt"
    ONEPASSWORD_CLI = "onepassword_cli"
    ONEPASSWORD_CONNECT = "onepassword_connect"
    VAULT = "vault"
    AWS_SECRETS_MANAGER = "aws_secrets_manager"
    ENCRYPTED_FILE = "encrypted_file"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
