from __future__ import annotations

import logging

import pytest

from abi_codec import function_selector
from chain_state import ChainStateCache, EvaluationContext, ReadThroughCache
from config import Connection
from error_map import ContractReadError
from scheduler_registry import (
    BATCH_SIZE,
    DERIVATIVE_SIGNATURE,
    EPOCH_SIGNATURE,
    PAGE_LIMIT,
    RESERVE_COEFFICIENT_SIGNATURE,
    STAKING_PHASE_SIGNATURE,
    TIME_DELTA_SIGNATURE,
    UNDERLYING_SIGNATURE,
)

from ._resolver_helpers import (
    IN_PHASE,
    OUT_OF_PHASE,
    SCHEDULER,
    TOKEN,
    FakeChain,
    _pool,
)


def _state(chain: FakeChain, now: int = IN_PHASE) -> ChainStateCache:
    context = EvaluationContext(
        now=now,
        scheduler_address=SCHEDULER,
        connection=Connection(rpc_url="http://unused"),
    )
    return ChainStateCache(context, chain)


def test_read_through_cache_computes_once():
    cache = ReadThroughCache("demo")
    calls = []

    def compute():
        calls.append(1)
        return len(calls)

    assert cache.get_or_compute("k", compute) == 1
    assert cache.get_or_compute("k", compute) == 1
    assert "k" in cache
    assert len(cache) == 1
    assert calls == [1]


def test_read_through_cache_does_not_store_failures():
    cache = ReadThroughCache("demo")

    def boom():
        raise ContractReadError("nope")

    with pytest.raises(ContractReadError):
        cache.get_or_compute("k", boom)
    assert "k" not in cache


def test_staking_phase_reads_pool_once_per_run():
    chain = FakeChain()
    pool = _pool(1)
    chain.add_pool(pool)
    state = _state(chain)

    assert state.is_staking_phase(pool) is True
    assert state.is_staking_phase(pool) is True
    for signature in (DERIVATIVE_SIGNATURE, EPOCH_SIGNATURE, STAKING_PHASE_SIGNATURE, TIME_DELTA_SIGNATURE):
        assert chain.count(pool, signature) == 1


def test_staking_phase_outside_window():
    chain = FakeChain()
    pool = _pool(1)
    chain.add_pool(pool)
    assert _state(chain, now=OUT_OF_PHASE).is_staking_phase(pool) is False


def test_pool_timing_read_order():
    chain = FakeChain()
    pool = _pool(1)
    chain.add_pool(pool)
    timing = _state(chain).pool_timing(pool)
    assert (timing.maturity, timing.epoch_length, timing.staking_phase_length, timing.time_delta) == (
        10_000,
        1_000,
        400,
        50,
    )
    assert [data[:10] for _, data in chain.calls] == [
        function_selector(DERIVATIVE_SIGNATURE),
        function_selector(EPOCH_SIGNATURE),
        function_selector(STAKING_PHASE_SIGNATURE),
        function_selector(TIME_DELTA_SIGNATURE),
    ]


def test_underlying_and_coefficient_cached_and_logged_once(caplog):
    caplog.set_level(logging.INFO)
    chain = FakeChain()
    pool = _pool(1)
    chain.add_pool(pool)
    chain.set_coefficient(TOKEN, 500)
    state = _state(chain)

    for _ in range(3):
        token = state.underlying_of(pool)
        assert token == TOKEN
        assert state.reserve_coefficient(token) == 500

    assert chain.count(pool, UNDERLYING_SIGNATURE) == 1
    assert chain.count(SCHEDULER, RESERVE_COEFFICIENT_SIGNATURE) == 1
    messages = [rec.getMessage() for rec in caplog.records]
    assert sum(1 for m in messages if m.startswith(f"underlying[{pool}]")) == 1
    assert sum(1 for m in messages if m.startswith(f"reserveCoefficient[{TOKEN}]")) == 1


def test_empty_eth_call_result_is_contract_read_error():
    chain = FakeChain()
    with pytest.raises(ContractReadError) as exc:
        _state(chain).is_staking_phase(_pool(9))
    assert "empty data" in exc.value.message


def test_reverted_read_is_contract_read_error():
    chain = FakeChain()
    pool = _pool(1)
    chain.add_pool(pool)
    chain.fail_view(pool, EPOCH_SIGNATURE)
    state = _state(chain)
    with pytest.raises(ContractReadError) as exc:
        state.is_staking_phase(pool)
    assert "execution reverted" in exc.value.message
    assert pool not in state.staking_phase


def test_context_defaults_follow_registry_constants():
    context = EvaluationContext(now=0, scheduler_address=SCHEDULER, connection=Connection(rpc_url="http://unused"))
    assert context.batch_size == BATCH_SIZE
    assert context.page_size == PAGE_LIMIT
