"""Deposit and withdrawal evaluation pipelines.

Both variants share fetch -> decode -> evaluate -> batch; they differ only in
the subgraph entity, record fields, amount rule and reserve coefficient key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from batch_assembler import CheckerResult, assemble_batch, build_result, encode_execute
from chain_state import ChainStateCache, EvaluationContext
from contract_reader import RpcExecutor
from eligibility import exceeds_reserve, withdrawable_amount
from paged_fetcher import fetch_all
from records import ScheduledDeposit, ScheduledWithdrawal, decode_deposit, decode_withdrawal
from scheduler_registry import (
    ALLOWANCE_SIGNATURE,
    BALANCE_OF_SIGNATURE,
    DEPOSITS_ENTITY,
    DEPOSITS_QUERY_TEMPLATE,
    WITHDRAWALS_ENTITY,
    WITHDRAWALS_QUERY_TEMPLATE,
)
from subgraph_client import QueryExecutor

logger = logging.getLogger(__name__)


class SchedulerType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


@dataclass(frozen=True)
class Pipeline:
    scheduler_type: SchedulerType
    entity: str
    query_template: str
    decode: Callable[[Any], Any]
    is_eligible: Callable[[Any, ChainStateCache], bool]


@dataclass(frozen=True)
class RunReport:
    result: CheckerResult
    fetched: int
    batched: int
    scheduler_type: SchedulerType
    cache_sizes: dict[str, int] = field(default_factory=dict)

    def summary(self) -> dict[str, Any]:
        return {
            "scheduler_type": self.scheduler_type.value,
            "fetched_records": self.fetched,
            "batched_calls": self.batched,
            "cache_sizes": dict(self.cache_sizes),
        }


def _deposit_eligible(record: ScheduledDeposit, state: ChainStateCache) -> bool:
    coefficient = state.reserve_coefficient(state.underlying_of(record.pool))
    staking = state.is_staking_phase(record.pool)
    eligible = exceeds_reserve(record.scheduled, coefficient) and staking
    logger.debug(
        "deposit user=%s pool=%s scheduled=%d coefficient=%d staking=%s eligible=%s",
        record.user,
        record.pool,
        record.scheduled,
        coefficient,
        staking,
        eligible,
    )
    return eligible


def _withdrawal_eligible(record: ScheduledWithdrawal, state: ChainStateCache) -> bool:
    coefficient = state.reserve_coefficient(record.pool)
    # Balance and allowance are per user and read on every evaluation.
    balance = state.read_uint(record.pool, BALANCE_OF_SIGNATURE, [record.user])
    allowance = state.read_uint(
        record.pool,
        ALLOWANCE_SIGNATURE,
        [record.user, state.context.scheduler_address],
    )
    amount = withdrawable_amount(balance, allowance)
    staking = state.is_staking_phase(record.pool)
    eligible = exceeds_reserve(amount, coefficient) and staking
    logger.debug(
        "withdrawal user=%s pool=%s balance=%d allowance=%d coefficient=%d staking=%s eligible=%s",
        record.user,
        record.pool,
        balance,
        allowance,
        coefficient,
        staking,
        eligible,
    )
    return eligible


DEPOSIT_PIPELINE = Pipeline(
    scheduler_type=SchedulerType.DEPOSIT,
    entity=DEPOSITS_ENTITY,
    query_template=DEPOSITS_QUERY_TEMPLATE,
    decode=decode_deposit,
    is_eligible=_deposit_eligible,
)

WITHDRAWAL_PIPELINE = Pipeline(
    scheduler_type=SchedulerType.WITHDRAWAL,
    entity=WITHDRAWALS_ENTITY,
    query_template=WITHDRAWALS_QUERY_TEMPLATE,
    decode=decode_withdrawal,
    is_eligible=_withdrawal_eligible,
)

PIPELINES: dict[SchedulerType, Pipeline] = {
    SchedulerType.DEPOSIT: DEPOSIT_PIPELINE,
    SchedulerType.WITHDRAWAL: WITHDRAWAL_PIPELINE,
}


def fetch_records(pipeline: Pipeline, *, page_size: int, execute_query: QueryExecutor) -> list[Any]:
    raw_records = fetch_all(
        query_template=pipeline.query_template,
        entity=pipeline.entity,
        page_size=page_size,
        execute_query=execute_query,
    )
    return [pipeline.decode(raw) for raw in raw_records]


def run_pipeline(
    pipeline: Pipeline,
    context: EvaluationContext,
    *,
    execute_rpc: RpcExecutor,
    execute_query: QueryExecutor,
) -> RunReport:
    raw_records = fetch_all(
        query_template=pipeline.query_template,
        entity=pipeline.entity,
        page_size=context.page_size,
        execute_query=execute_query,
    )

    state = ChainStateCache(context, execute_rpc)
    # Lazy decode: records past the batch cap are never decoded or read.
    candidates = (pipeline.decode(raw) for raw in raw_records)
    batch = assemble_batch(
        candidates,
        capacity=context.batch_size,
        is_eligible=lambda record: pipeline.is_eligible(record, state),
        encode_entry=lambda record: encode_execute(record.user, record.pool),
    )

    return RunReport(
        result=build_result(context.scheduler_address, batch),
        fetched=len(raw_records),
        batched=len(batch),
        scheduler_type=pipeline.scheduler_type,
        cache_sizes={
            "staking_phase": len(state.staking_phase),
            "underlying": len(state.underlying),
            "reserve_coefficient": len(state.coefficients),
        },
    )
