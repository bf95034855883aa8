from __future__ import annotations

from typing import Any

from .errors import InvalidInput


def clean_name(raw: Any, max_length: int = 20) -> str:
    name = str(raw or "").strip()
    if not name:
        raise InvalidInput("Display name is required")
    if len(name) > max_length:
        raise InvalidInput(f"Display name must be at most {max_length} characters")
    # Avoid obvious HTML/script injection.
    if "<" in name or ">" in name:
        raise InvalidInput("Display name contains invalid characters")
    for ch in name:
        if ord(ch) < 32:
            raise InvalidInput("Display name contains control characters")
    return name


def clean_room_code(raw: Any) -> str:
    code = str(raw or "").strip().upper()
    if not code:
        raise InvalidInput("Room id is required")
    return code


def clean_item_id(raw: Any) -> int:
    if isinstance(raw, bool):
        raise InvalidInput("Item id must be an integer")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidInput("Item id must be an integer") from None
