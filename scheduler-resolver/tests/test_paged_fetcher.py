from __future__ import annotations

import logging

import pytest

from error_map import ConfigError, IndexerQueryError
from paged_fetcher import fetch_all
from scheduler_registry import DEPOSITS_ENTITY, DEPOSITS_QUERY_TEMPLATE, WITHDRAWALS_QUERY_TEMPLATE

from ._resolver_helpers import FakeSubgraph, _deposit, _pool, _user


def _deposits(n: int) -> list[dict]:
    return [_deposit(_user(i), _pool(i % 3)) for i in range(n)]


def _fetch(subgraph, page_size: int = 100) -> list:
    return fetch_all(
        query_template=DEPOSITS_QUERY_TEMPLATE,
        entity=DEPOSITS_ENTITY,
        page_size=page_size,
        execute_query=subgraph,
    )


def test_query_templates_render_filters_and_paging():
    deposits = DEPOSITS_QUERY_TEMPLATE.format(first=100, skip=200)
    assert "deposits(where: { scheduled_gt: 0 }, first: 100, skip: 200)" in deposits
    assert "scheduled" in deposits
    withdrawals = WITHDRAWALS_QUERY_TEMPLATE.format(first=100, skip=0)
    assert "withdrawals(where: { scheduled: true }, first: 100, skip: 0)" in withdrawals


def test_fetch_stops_on_short_page():
    subgraph = FakeSubgraph(DEPOSITS_ENTITY, _deposits(250))
    records = _fetch(subgraph)
    assert len(records) == 250
    assert subgraph.skips() == [0, 100, 200]
    assert records == subgraph.records


def test_fetch_exact_multiple_reads_one_empty_page():
    subgraph = FakeSubgraph(DEPOSITS_ENTITY, _deposits(200))
    assert len(_fetch(subgraph)) == 200
    assert subgraph.skips() == [0, 100, 200]


def test_fetch_empty_result_single_query():
    subgraph = FakeSubgraph(DEPOSITS_ENTITY, [])
    assert _fetch(subgraph) == []
    assert subgraph.skips() == [0]


def test_fetch_honours_page_size():
    subgraph = FakeSubgraph(DEPOSITS_ENTITY, _deposits(7))
    assert len(_fetch(subgraph, page_size=3)) == 7
    assert subgraph.skips() == [0, 3, 6]


def test_fetch_logs_total(caplog):
    caplog.set_level(logging.INFO)
    _fetch(FakeSubgraph(DEPOSITS_ENTITY, _deposits(5)))
    assert any("Total fetched length: 5" in rec.getMessage() for rec in caplog.records)


def test_graphql_errors_raise_indexer_error():
    subgraph = FakeSubgraph(DEPOSITS_ENTITY, [], errors=[{"message": "indexing_error"}])
    with pytest.raises(IndexerQueryError) as exc:
        _fetch(subgraph)
    assert "indexing_error" in exc.value.message
    assert exc.value.exit_code == 1


def test_missing_entity_array_raises_indexer_error():
    def execute(query):
        return 0, {"ok": True, "result": {"data": {"somethingElse": []}}}

    with pytest.raises(IndexerQueryError):
        _fetch(execute)


def test_raw_json_body_is_parsed():
    def execute(query):
        return 0, {"ok": True, "result": '{"data": {"deposits": []}}'}

    assert _fetch(execute) == []


def test_transport_failure_raises_indexer_error():
    def execute(query):
        return 1, {"ok": False, "error_code": "RPC_TRANSPORT_ERROR", "error_message": "http error 502"}

    with pytest.raises(IndexerQueryError) as exc:
        _fetch(execute)
    assert "http error 502" in exc.value.message
    assert exc.value.cause["error_code"] == "RPC_TRANSPORT_ERROR"


def test_failure_on_later_page_aborts_whole_fetch():
    subgraph = FakeSubgraph(DEPOSITS_ENTITY, _deposits(150))

    def execute(query):
        if "skip: 100" in query:
            return 0, {"ok": True, "result": {"errors": [{"message": "timeout"}]}}
        return subgraph(query)

    with pytest.raises(IndexerQueryError):
        _fetch(execute)


@pytest.mark.parametrize("page_size", [0, -1, True])
def test_invalid_page_size_rejected(page_size):
    with pytest.raises(ConfigError):
        _fetch(FakeSubgraph(DEPOSITS_ENTITY, []), page_size=page_size)
