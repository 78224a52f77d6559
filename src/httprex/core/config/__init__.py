"""Configuration models for httprex.

Sessions are configured declaratively in HOCON, loaded into these
dataclasses with dataconf.
"""

from httprex.core.config.app import EnvironmentsConfig, HttpRexConfig, LoggingConfig
from httprex.core.config.base import LogLevel, SecretProviderType
from httprex.core.config.loader import load_from_env, load_from_file, load_from_string
from httprex.core.config.secrets import SecretProviderConfig, SecretsConfig

__all__ = [
    "EnvironmentsConfig",
    "HttpRexConfig",
    "LogLevel",
    "LoggingConfig",
    "SecretProviderConfig",
    "SecretProviderType",
    "SecretsConfig",
    "load_from_env",
    "load_from_file",
    "load_from_string",
]
