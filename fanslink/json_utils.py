"""
Helpers for moving between stored camelCase documents and snake_case
dataclasses.
"""

from __future__ import annotations

from typing import Any


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def strip_none(data: Any) -> Any:
    """Drops None values from nested dicts (the store rejects undefined)."""
    if isinstance(data, dict):
        return {
            key: strip_none(value) for key, value in data.items() if value is not None
        }
    if isinstance(data, list):
        return [strip_none(item) for item in data]
    return data
