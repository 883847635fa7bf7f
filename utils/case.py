"""
Key-case conversion for API payloads.
Storage and services use snake_case; responses go out in camelCase.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic.alias_generators import to_camel


def to_camel_key(s: str) -> str:
    """Convert a single snake_case key to camelCase (first letter lower)."""
    return to_camel(s)


def dict_keys_to_camel(obj: Any) -> Any:
    """Recursively convert dict keys from snake_case to camelCase for API responses."""
    if isinstance(obj, dict):
        return {to_camel_key(k): dict_keys_to_camel(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [dict_keys_to_camel(x) for x in obj]
    return obj


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def money(value: Optional[Decimal]) -> Optional[str]:
    """Decimals go out as strings so no precision is lost in JSON."""
    if value is None:
        return None
    return str(Decimal(value).quantize(Decimal("0.01")))
