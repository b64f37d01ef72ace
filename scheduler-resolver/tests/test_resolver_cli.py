from __future__ import annotations

import json

from abi_codec import decode_call_args
from resolver_cli import build_parser
from scheduler_registry import AGGREGATE_SIGNATURE, DEPOSITS_ENTITY, WITHDRAWALS_ENTITY

from ._resolver_helpers import (
    IN_PHASE,
    SCHEDULER,
    TOKEN,
    FakeChain,
    FakeSubgraph,
    _deposit,
    _gelato_args,
    _pool,
    _ResolverHandler,
    _run_cmd,
    _serve,
    _stop,
    _user,
    _user_args,
    _withdrawal,
)


def _check_flags(url: str, *extra: str) -> list[str]:
    return [
        "--scheduler-type",
        "deposit",
        "--scheduler-address",
        SCHEDULER,
        "--subgraph-name",
        "test-scheduler",
        "--timestamp",
        str(IN_PHASE),
        "--rpc-url",
        url,
        *extra,
    ]


def _eligible_chain() -> FakeChain:
    chain = FakeChain()
    chain.add_pool(_pool(1))
    chain.set_coefficient(TOKEN, 0)
    return chain


def test_check_prints_exec_data_envelope():
    subgraph = FakeSubgraph(DEPOSITS_ENTITY, [_deposit(_user(1), _pool(1))])
    server, url = _serve(_eligible_chain(), subgraph)
    try:
        proc = _run_cmd("check", _check_flags(url), extra_env={"SUBGRAPH_BASE_URL": url})
    finally:
        _stop(server)

    assert proc.returncode == 0, proc.stdout + proc.stderr
    payload = json.loads(proc.stdout)
    assert payload["ok"] is True
    assert payload["method"] == "check"
    assert payload["error_code"] is None
    assert payload["result"]["canExec"] is True
    (calls,) = decode_call_args(AGGREGATE_SIGNATURE, payload["result"]["execData"])
    assert len(calls) == 1
    assert payload["summary"]["batched_calls"] == 1
    assert payload["summary"]["fetched_records"] == 1
    assert "/opiumprotocol/test-scheduler" in _ResolverHandler.paths


def test_check_request_json_result_only():
    subgraph = FakeSubgraph(WITHDRAWALS_ENTITY, [_withdrawal(_user(1), _pool(1))])
    chain = FakeChain()
    chain.add_pool(_pool(1), underlying=None)
    chain.set_coefficient(_pool(1), 0)
    chain.set_holding(_pool(1), _user(1), balance=100, allowance=40)
    server, url = _serve(chain, subgraph)
    request = {
        "userArgs": _user_args("withdrawal"),
        "gelatoArgs": _gelato_args(),
        "connection": {"rpc_url": url},
    }
    try:
        proc = _run_cmd(
            "check",
            ["--request-json", json.dumps(request), "--result-only", "--compact"],
            extra_env={"SUBGRAPH_BASE_URL": url},
        )
    finally:
        _stop(server)

    assert proc.returncode == 0, proc.stdout + proc.stderr
    assert json.loads(proc.stdout) == {"canExec": False, "execData": ""}


def test_check_unknown_scheduler_type_is_invalid_request():
    request = {
        "userArgs": {**_user_args(), "schedulerType": "liquidation"},
        "gelatoArgs": _gelato_args(),
        "connection": {"rpc_url": "http://127.0.0.1:9"},
    }
    proc = _run_cmd("check", ["--request-json", json.dumps(request)])
    assert proc.returncode == 2
    payload = json.loads(proc.stdout)
    assert payload["ok"] is False
    assert payload["error_code"] == "INVALID_REQUEST"


def test_check_without_rpc_url_is_config_error():
    proc = _run_cmd(
        "check",
        ["--scheduler-address", SCHEDULER, "--subgraph-name", "test-scheduler", "--timestamp", "1"],
    )
    assert proc.returncode == 2
    assert json.loads(proc.stdout)["error_code"] == "CONFIG_INVALID"


def test_check_subgraph_http_failure_exits_one():
    server, url = _serve(_eligible_chain(), FakeSubgraph(DEPOSITS_ENTITY, []), subgraph_status=500)
    try:
        proc = _run_cmd("check", _check_flags(url), extra_env={"SUBGRAPH_BASE_URL": url})
    finally:
        _stop(server)
    assert proc.returncode == 1
    payload = json.loads(proc.stdout)
    assert payload["error_code"] == "INDEXER_QUERY_FAILED"
    assert "http error 500" in payload["error_message"]


def test_check_reverted_read_is_contract_read_failure():
    chain = FakeChain()
    chain.add_pool(_pool(1))
    subgraph = FakeSubgraph(DEPOSITS_ENTITY, [_deposit(_user(1), _pool(1))])
    server, url = _serve(chain, subgraph)
    try:
        proc = _run_cmd("check", _check_flags(url, "--compact"), extra_env={"SUBGRAPH_BASE_URL": url})
    finally:
        _stop(server)
    assert proc.returncode == 1
    assert json.loads(proc.stdout)["error_code"] == "CONTRACT_READ_FAILED"


def test_check_uses_network_deployment_defaults():
    subgraph = FakeSubgraph(DEPOSITS_ENTITY, [])
    server, url = _serve(FakeChain(), subgraph)
    try:
        proc = _run_cmd(
            "check",
            ["--network", "mainnet", "--timestamp", str(IN_PHASE), "--rpc-url", url],
            extra_env={"SUBGRAPH_BASE_URL": url},
        )
    finally:
        _stop(server)
    assert proc.returncode == 0, proc.stdout + proc.stderr
    assert json.loads(proc.stdout)["result"] == {"canExec": False, "execData": ""}
    assert _ResolverHandler.paths == ["/opiumprotocol/mainnet-withdrawal-scheduler"]


def test_pending_lists_decoded_records():
    records = [_deposit(_user(i), _pool(1), 10 + i) for i in range(3)]
    server, url = _serve(None, FakeSubgraph(DEPOSITS_ENTITY, records))
    try:
        proc = _run_cmd(
            "pending",
            ["--subgraph-name", "test-scheduler", "--log-level", "INFO"],
            extra_env={"SUBGRAPH_BASE_URL": url},
        )
    finally:
        _stop(server)
    assert proc.returncode == 0, proc.stdout + proc.stderr
    payload = json.loads(proc.stdout)
    assert payload["summary"]["records"] == 3
    assert payload["result"][0] == {"user": _user(0), "pool": _pool(1), "scheduled": "10"}
    assert "Total fetched length: 3" in proc.stderr


def test_pending_requires_subgraph():
    proc = _run_cmd("pending", ["--scheduler-type", "withdrawal"])
    assert proc.returncode == 2
    assert json.loads(proc.stdout)["error_code"] == "INVALID_REQUEST"


def test_log_level_accepted_on_either_side_of_subcommand():
    parser = build_parser()
    before = parser.parse_args(["--log-level", "DEBUG", "pending", "--subgraph-name", "x"])
    after = parser.parse_args(["pending", "--subgraph-name", "x", "--log-level", "INFO"])
    default = parser.parse_args(["check", "--rpc-url", "http://x"])
    assert before.log_level == "DEBUG"
    assert after.log_level == "INFO"
    assert default.log_level == "WARNING"
