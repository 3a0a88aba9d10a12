"""
Key conversion between Python snake_case and the camelCase used on the wire
and in Firestore documents.
"""

from __future__ import annotations

import re
from typing import Any, Literal

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_to_camel(value: str) -> str:
    head, *rest = value.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(value: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", value).lower()


def convert_keys(
    data: Any, direction: Literal["snake_to_camel", "camel_to_snake"]
) -> Any:
    """Recursively rename dict keys; values are left untouched."""
    convert = snake_to_camel if direction == "snake_to_camel" else camel_to_snake
    if isinstance(data, dict):
        return {convert(k): convert_keys(v, direction) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item, direction) for item in data]
    return data
