"""Placeholder and file-variable extraction.

Placeholders look like ``{{name}}`` and may appear anywhere in a request
document. File variables are ``@name = value`` assignment lines.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from httprex.core.parser.types import VariableReference

VARIABLE_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
"""Regex matching a ``{{name}}`` placeholder; group 1 is the raw name."""

FILE_VARIABLE_PATTERN = re.compile(r"^@(\w+)\s*=\s*(.+)$")
"""Regex matching an ``@name = value`` assignment line."""


@dataclass(frozen=True)
class FileVariable:
    """A file-scope assignment and the 1-based line it was found on."""

    name: str
    value: str
    line: int


def extract_variables(text: str, start_line: int = 1) -> list[VariableReference]:
    """Find every placeholder occurrence in *text*.

    Duplicates are preserved in order of appearance.

    Args:
        text: Source text, possibly multi-line.
        start_line: Line number assigned to the first line of *text*.

    Returns:
        One :class:`VariableReference` per occurrence.
    """
    references: list[VariableReference] = []
    if not text:
        return references

    for offset, line in enumerate(text.split("\n")):
        for match in VARIABLE_PATTERN.finditer(line):
            references.append(
                VariableReference(
                    name=match.group(1).strip(),
                    line=start_line + offset,
                    column=match.start(),
                )
            )
    return references


def extract_file_variables(lines: Iterable[str]) -> list[FileVariable]:
    """Collect ``@name = value`` assignments from *lines*.

    Names are restricted to word characters, so ``@base-url = ...`` is not
    an assignment. Lines that do not match are ignored.
    """
    found: list[FileVariable] = []
    for index, line in enumerate(lines):
        match = FILE_VARIABLE_PATTERN.match(line.strip())
        if match:
            found.append(
                FileVariable(
                    name=match.group(1),
                    value=match.group(2).strip(),
                    line=index + 1,
                )
            )
    return found


def file_variables_to_dict(lines: Iterable[str]) -> dict[str, str]:
    """Fold file variables into a map; a later assignment wins."""
    return {v.name: v.value for v in extract_file_variables(lines)}


def is_file_variable(line: str) -> bool:
    return FILE_VARIABLE_PATTERN.match(line.strip()) is not None


def resolve_variables(text: str, variables: Mapping[str, str]) -> str:
    """Substitute every placeholder whose trimmed name is in *variables*.

    Unknown placeholders are left exactly as written, braces included.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1).strip()
        if name in variables:
            return variables[name]
        return match.group(0)

    return VARIABLE_PATTERN.sub(_replace, text)


def has_unresolved_variables(text: str) -> bool:
    return VARIABLE_PATTERN.search(text) is not None
