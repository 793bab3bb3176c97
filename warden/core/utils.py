"""
Shared utility functions for the warden package.

This module contains common utilities used across the codebase.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

# Entity identifiers are signed 64-bit integers.
ID_MIN = -(2**63)
ID_MAX = 2**63 - 1


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.
    
    Args:
        prefix: Optional prefix (e.g., "tok")
        
    Returns:
        A unique ID like "tok_a1b2c3d4e5f6"
    """
    uid = str(uuid.uuid4())[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def coerce_identifier(value: Any) -> int | None:
    """
    Interpret a value as a 64-bit entity identifier.
    
    Accepts ints and decimal strings (path and query parameters arrive
    as strings). Returns None for anything else, including bools and
    out-of-range numbers.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text.startswith("-") else text
        if not digits.isdigit() or not digits.isascii():
            return None
        number = int(text)
    else:
        return None
    if number < ID_MIN or number > ID_MAX:
        return None
    return number
