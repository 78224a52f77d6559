"""Top-level httprex configuration models."""

from dataclasses import dataclass, field

from .base import LogLevel
from .secrets import SecretsConfig


@dataclass
class EnvironmentsConfig:
    """Where environments come from and which one starts selected."""

    file: str | None = None
    """Path of an http-client.env.json file (optional)"""

    default: str | None = None
    """Environment selected after loading (optional)"""

    auto_select_first: bool = False
    """Select the first environment when no default is given (default: False)"""


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: LogLevel = LogLevel.WARNING
    """Logging level (default: WARNING)"""


@dataclass
class HttpRexConfig:
    """Complete configuration of an httprex session."""

    environments: EnvironmentsConfig = field(default_factory=EnvironmentsConfig)
    """Environment loading (default: no environments)"""

    secrets: SecretsConfig = field(default_factory=SecretsConfig)
    """Secret providers (default: none)"""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    """Logging settings (default: WARNING)"""

    variables: dict[str, str] = field(default_factory=dict)
    """Initial global variables (default: {})"""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.environments.default is not None and not self.environments.file:
            raise ValueError("environments.default requires environments.file")
