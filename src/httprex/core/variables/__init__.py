"""Environments, global storage, system variables and placeholder resolution."""

from httprex.core.variables.environment import Environment, EnvironmentManager
from httprex.core.variables.resolver import VariableContext, VariableResolver
from httprex.core.variables.storage import (
    InMemoryVariableStorage,
    MappingVariableStorage,
    VariableStorage,
)
from httprex.core.variables.system import is_system_variable, resolve_system_variable

__all__ = [
    "Environment",
    "EnvironmentManager",
    "InMemoryVariableStorage",
    "MappingVariableStorage",
    "VariableContext",
    "VariableResolver",
    "VariableStorage",
    "is_system_variable",
    "resolve_system_variable",
]
