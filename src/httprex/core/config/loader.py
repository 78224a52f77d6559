"""Load :class:`HttpRexConfig` from HOCON via dataconf.

Each loader takes an optional *config_class*; it defaults to
:class:`HttpRexConfig`, and a section model such as
:class:`SecretsConfig` can be passed to load just that section.
"""

from pathlib import Path
from typing import Any, TypeVar, cast

import dataconf

from .app import HttpRexConfig

T = TypeVar("T")

ENV_PREFIX = "HTTPREX_"
"""Default prefix for configuration supplied through environment variables."""


def load_from_file(path: str | Path, config_class: type[T] | None = None) -> T:
    """Load configuration from a HOCON (or JSON) file.

    Example:
        >>> config = load_from_file("httprex.conf")
        >>> config.secrets.providers[0].type
        <SecretProviderType.ENV: 'env'>
    """
    target: Any = config_class or HttpRexConfig
    return cast(T, dataconf.file(str(path), target))


def load_from_string(hocon_str: str, config_class: type[T] | None = None) -> T:
    """Load configuration from a HOCON string.

    Example:
        >>> config = load_from_string('logging { level: DEBUG }')
        >>> config.logging.level.value
        'DEBUG'
    """
    target: Any = config_class or HttpRexConfig
    return cast(T, dataconf.string(hocon_str, target))


def load_from_env(prefix: str = ENV_PREFIX, config_class: type[T] | None = None) -> T:
    """Load configuration from environment variables named ``<prefix><FIELD>``."""
    target: Any = config_class or HttpRexConfig
    return cast(T, dataconf.env(prefix, target))
