"""Read and write claim attributes addressed by a field path.

Paths use dotted attribute names with optional list indices, for example
``payer_id``, ``service_lines[0].units`` or
``service_lines[1].diagnosis_codes[0]``.
"""

from __future__ import annotations

import re
from typing import Any

_SEGMENT_PATTERN = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)((?:\[\d+\])*)$")
_INDEX_PATTERN = re.compile(r"\[(\d+)\]")


def parse_field_path(path: str) -> list[str | int]:
    """Split a field path into attribute names and list indices.

    Raises:
        ValueError: If the path is empty or malformed
    """
    if not path:
        raise ValueError("Field path must not be empty")

    parts: list[str | int] = []
    for segment in path.split("."):
        match = _SEGMENT_PATTERN.match(segment)
        if not match:
            raise ValueError(f"Malformed field path: {path}")
        parts.append(match.group(1))
        parts.extend(int(idx) for idx in _INDEX_PATTERN.findall(match.group(2)))
    return parts


def _step(target: Any, part: str | int, path: str) -> Any:
    if isinstance(part, int):
        if not isinstance(target, list) or part >= len(target):
            raise KeyError(f"Index {part} out of range in {path}")
        return target[part]
    if isinstance(target, dict):
        if part not in target:
            raise KeyError(f"Unknown field {part} in {path}")
        return target[part]
    if not hasattr(target, part):
        raise KeyError(f"Unknown field {part} in {path}")
    return getattr(target, part)


def get_field(obj: Any, path: str) -> Any:
    """Return the value at ``path``.

    Raises:
        KeyError: If any segment does not resolve
    """
    value = obj
    for part in parse_field_path(path):
        value = _step(value, part, path)
    return value


def set_field(obj: Any, path: str, value: Any) -> None:
    """Replace the value at ``path`` in place.

    Raises:
        KeyError: If any segment does not resolve
    """
    parts = parse_field_path(path)
    parent = obj
    for part in parts[:-1]:
        parent = _step(parent, part, path)

    last = parts[-1]
    if isinstance(last, int):
        if not isinstance(parent, list) or last >= len(parent):
            raise KeyError(f"Index {last} out of range in {path}")
        parent[last] = value
    elif isinstance(parent, dict):
        parent[last] = value
    else:
        if not hasattr(parent, last):
            raise KeyError(f"Unknown field {last} in {path}")
        setattr(parent, last, value)
