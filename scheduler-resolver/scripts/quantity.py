"""Shared parsers for uint256 amounts and unix timestamps."""

from __future__ import annotations

from typing import Any

UINT256_MAX = (1 << 256) - 1


def parse_uint(value: Any, *, field: str) -> int:
    """Parse a non-negative integer from an int, decimal string or 0x hex string."""
    if isinstance(value, bool):
        raise ValueError(f"{field} cannot be boolean")
    if isinstance(value, int):
        out = value
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            raise ValueError(f"{field} cannot be empty")
        if raw.startswith("0x"):
            try:
                out = int(raw, 16)
            except ValueError:
                raise ValueError(f"{field} is not a valid hex quantity: {value!r}") from None
        elif raw.isdigit():
            out = int(raw, 10)
        else:
            raise ValueError(f"{field} must be a decimal integer or 0x-prefixed hex quantity")
    else:
        raise ValueError(f"{field} must be int or string")

    if out < 0:
        raise ValueError(f"{field} must be non-negative")
    if out > UINT256_MAX:
        raise ValueError(f"{field} exceeds uint256")
    return out


def parse_timestamp(value: Any) -> int:
    return parse_uint(value, field="timeStamp")
