"""Typed decoding of scheduled deposit/withdrawal records from the subgraph."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from error_map import RecordShapeError
from quantity import parse_uint

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(frozen=True)
class ScheduledDeposit:
    user: str
    pool: str
    scheduled: int


@dataclass(frozen=True)
class ScheduledWithdrawal:
    user: str
    pool: str


def _require_object(raw: Any, *, kind: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise RecordShapeError(f"{kind} record must be an object, got {type(raw).__name__}")
    return raw


def _require_address(raw: dict[str, Any], key: str, *, kind: str) -> str:
    value = raw.get(key)
    if value is None or value == "":
        raise RecordShapeError(f"{kind} record missing {key}", cause={"record": raw})
    if not isinstance(value, str) or not ADDRESS_RE.fullmatch(value):
        raise RecordShapeError(f"{kind} record {key} is not an address: {value!r}", cause={"record": raw})
    return value.lower()


def decode_deposit(raw: Any) -> ScheduledDeposit:
    obj = _require_object(raw, kind="deposit")
    user = _require_address(obj, "user", kind="deposit")
    pool = _require_address(obj, "pool", kind="deposit")
    scheduled_raw = obj.get("scheduled")
    if scheduled_raw is None or scheduled_raw == "":
        raise RecordShapeError("deposit record missing scheduled", cause={"record": obj})
    try:
        scheduled = parse_uint(scheduled_raw, field="scheduled")
    except ValueError as err:
        raise RecordShapeError(f"deposit record scheduled is invalid: {err}", cause={"record": obj}) from err
    return ScheduledDeposit(user=user, pool=pool, scheduled=scheduled)


def decode_withdrawal(raw: Any) -> ScheduledWithdrawal:
    obj = _require_object(raw, kind="withdrawal")
    return ScheduledWithdrawal(
        user=_require_address(obj, "user", kind="withdrawal"),
        pool=_require_address(obj, "pool", kind="withdrawal"),
    )
