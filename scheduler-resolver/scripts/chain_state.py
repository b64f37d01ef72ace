"""Per-run read-through caches over pool and scheduler contract state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from config import Connection
from contract_reader import RpcExecutor, call_view
from eligibility import PoolTiming, in_staking_phase
from error_map import ContractReadError
from quantity import parse_uint
from scheduler_registry import (
    ADDRESS_RETURNS,
    BATCH_SIZE,
    DERIVATIVE_MATURITY_INDEX,
    DERIVATIVE_RETURNS,
    DERIVATIVE_SIGNATURE,
    EPOCH_SIGNATURE,
    PAGE_LIMIT,
    RESERVE_COEFFICIENT_SIGNATURE,
    STAKING_PHASE_SIGNATURE,
    TIME_DELTA_SIGNATURE,
    UINT256_RETURNS,
    UNDERLYING_SIGNATURE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationContext:
    now: int
    scheduler_address: str
    connection: Connection
    batch_size: int = BATCH_SIZE
    page_size: int = PAGE_LIMIT


class ReadThroughCache:
    """First computed value per key wins; nothing is invalidated within a run."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._values: dict[str, Any] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def get_or_compute(self, key: str, compute: Callable[[], Any]) -> Any:
        if key in self._values:
            return self._values[key]
        value = compute()
        self._values[key] = value
        logger.info("%s[%s] = %s", self.name, key, value)
        return value


class ChainStateCache:
    def __init__(self, context: EvaluationContext, execute_rpc: RpcExecutor) -> None:
        self.context = context
        self.execute_rpc = execute_rpc
        self.staking_phase = ReadThroughCache("isStakingPhase")
        self.underlying = ReadThroughCache("underlying")
        self.coefficients = ReadThroughCache("reserveCoefficient")

    def _call(self, to: str, signature: str, args: list[Any], returns: list[str]) -> list[Any]:
        return call_view(
            self.execute_rpc,
            to=to,
            signature=signature,
            args=args,
            returns=returns,
            block_tag=self.context.connection.block_tag,
        )

    def read_uint(self, to: str, signature: str, args: list[Any] | None = None) -> int:
        values = self._call(to, signature, list(args or []), UINT256_RETURNS)
        try:
            return parse_uint(values[0], field=signature)
        except (IndexError, ValueError) as err:
            raise ContractReadError(f"{signature} on {to} did not return a uint256: {err}") from err

    def pool_timing(self, pool: str) -> PoolTiming:
        derivative = self._call(pool, DERIVATIVE_SIGNATURE, [], DERIVATIVE_RETURNS)
        try:
            maturity = parse_uint(derivative[0][DERIVATIVE_MATURITY_INDEX], field="derivative.endTime")
        except (IndexError, TypeError, ValueError) as err:
            raise ContractReadError(f"derivative() on {pool} has no maturity: {err}") from err
        return PoolTiming(
            maturity=maturity,
            epoch_length=self.read_uint(pool, EPOCH_SIGNATURE),
            staking_phase_length=self.read_uint(pool, STAKING_PHASE_SIGNATURE),
            time_delta=self.read_uint(pool, TIME_DELTA_SIGNATURE),
        )

    def is_staking_phase(self, pool: str) -> bool:
        return self.staking_phase.get_or_compute(
            pool,
            lambda: in_staking_phase(self.pool_timing(pool), self.context.now),
        )

    def underlying_of(self, pool: str) -> str:
        def compute() -> str:
            values = self._call(pool, UNDERLYING_SIGNATURE, [], ADDRESS_RETURNS)
            return str(values[0]).lower()

        return self.underlying.get_or_compute(pool, compute)

    def reserve_coefficient(self, key: str) -> int:
        """Keyed by underlying token for deposits and by pool for withdrawals."""
        scheduler = self.context.scheduler_address
        return self.coefficients.get_or_compute(
            key,
            lambda: self.read_uint(scheduler, RESERVE_COEFFICIENT_SIGNATURE, [key]),
        )
