"""
Common utilities and helper functions for the floor arbitrage system.

This module provides centralized helpers for query parameter handling,
decimal arithmetic on marketplace prices, nested payload access and
timestamp formatting.
"""

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


# Timestamp utilities
def timestamp_to_iso(timestamp: float) -> str:
    """Convert Unix timestamp to ISO 8601 string."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


# Query parameter utilities
def sanitize_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Drop unset query parameters and stringify the rest.

    Booleans are lowered to "true"/"false" as the marketplace API expects;
    list values are kept as lists of strings so they encode as repeated keys.
    """
    if not params:
        return {}

    cleaned: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            items = [_stringify(v) for v in value if v is not None]
            if items:
                cleaned[key] = items
            continue
        cleaned[key] = _stringify(value)
    return cleaned


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# Math utilities
def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a numeric payload value to Decimal, or None when unusable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    try:
        # str() keeps float inputs at their shortest repr (1.2 -> "1.2")
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def calculate_percentage(value: Decimal, total: Decimal) -> Decimal:
    """Calculate percentage with zero-division protection."""
    if total == 0:
        return Decimal("0")
    return value / total * 100


def basis_points_to_decimal(bps: Any) -> Decimal:
    """Convert basis points to decimal (100 bps = 0.01)."""
    return Decimal(str(bps)) / Decimal("10000")


# Dictionary utilities
def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        update: Dictionary to merge into base

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in update.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def get_nested_value(data: Any, key_path: str, default: Any = None) -> Any:
    """
    Get nested dictionary value using dot notation.

    Args:
        data: Dictionary to search
        key_path: Dot-separated key path (e.g., 'criteria.data.token.tokenId')
        default: Default value if key not found

    Returns:
        Value at key path or default
    """
    current = data
    for key in key_path.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default
    return current


# Validation utilities
def is_valid_address(value: Any) -> bool:
    """Check if value looks like a 0x-prefixed 20-byte hex address."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))
