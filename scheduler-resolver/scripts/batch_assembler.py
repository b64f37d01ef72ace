"""Capacity-bounded execute() batching folded into one aggregate() multicall."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from abi_codec import encode_call
from error_map import ConfigError
from scheduler_registry import AGGREGATE_SIGNATURE, EXECUTE_SIGNATURE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckerResult:
    can_exec: bool
    exec_data: str

    def to_dict(self) -> dict[str, Any]:
        return {"canExec": self.can_exec, "execData": self.exec_data}


NO_EXECUTION = CheckerResult(can_exec=False, exec_data="")


def encode_execute(user: str, pool: str) -> str:
    return str(encode_call(EXECUTE_SIGNATURE, [user, pool])["calldata"])


def encode_aggregate(target: str, calldatas: list[str]) -> str:
    calls = [(target, calldata) for calldata in calldatas]
    return str(encode_call(AGGREGATE_SIGNATURE, [calls])["calldata"])


def assemble_batch(
    candidates: Iterable[Any],
    *,
    capacity: int,
    is_eligible: Callable[[Any], bool],
    encode_entry: Callable[[Any], str],
) -> list[str]:
    """Encode eligible candidates in order, stopping as soon as capacity is reached.

    Candidates after the cap are never pulled from the iterable, so a lazy
    iterable is neither decoded nor evaluated past that point.
    """
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
        raise ConfigError("batch capacity must be a positive integer")

    batch: list[str] = []
    for candidate in candidates:
        if is_eligible(candidate):
            batch.append(encode_entry(candidate))
            if len(batch) >= capacity:
                break

    logger.info("Result batch length: %d", len(batch))
    return batch


def build_result(target: str, batch: list[str]) -> CheckerResult:
    if not batch:
        return NO_EXECUTION
    return CheckerResult(can_exec=True, exec_data=encode_aggregate(target, batch))
