"""Gelato resolver entry point: decide canExec and build execData."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from batch_assembler import CheckerResult
from chain_state import EvaluationContext
from config import Connection, Settings
from contract_reader import RpcExecutor, make_rpc_executor
from error_map import InvalidRequestError
from pipelines import PIPELINES, RunReport, SchedulerType, run_pipeline
from quantity import parse_timestamp
from records import ADDRESS_RE
from subgraph_client import QueryExecutor, make_subgraph_executor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserArgs:
    scheduler_type: SchedulerType
    scheduler_address: str
    subgraph_name: str


@dataclass(frozen=True)
class GelatoArgs:
    time_stamp: int
    gas_price: str | None = None


def _load_blob(raw: Any, *, name: str) -> dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8")
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as err:
            raise InvalidRequestError(f"{name} is not valid JSON: {err}") from err
        if isinstance(parsed, dict):
            return parsed
    raise InvalidRequestError(f"{name} must be an object")


def decode_user_args(raw: Any) -> UserArgs:
    obj = _load_blob(raw, name="userArgs")

    raw_type = obj.get("schedulerType")
    try:
        scheduler_type = SchedulerType(raw_type)
    except ValueError:
        allowed = "|".join(t.value for t in SchedulerType)
        raise InvalidRequestError(f"userArgs.schedulerType must be one of {allowed}, got {raw_type!r}") from None

    address = obj.get("schedulerAddress")
    if not isinstance(address, str) or not ADDRESS_RE.fullmatch(address):
        raise InvalidRequestError("userArgs.schedulerAddress must be a 20-byte hex address")

    subgraph_name = obj.get("subgraphName")
    if not isinstance(subgraph_name, str) or not subgraph_name.strip():
        raise InvalidRequestError("userArgs.subgraphName must be a non-empty string")

    return UserArgs(
        scheduler_type=scheduler_type,
        scheduler_address=address,
        subgraph_name=subgraph_name.strip(),
    )


def decode_gelato_args(raw: Any) -> GelatoArgs:
    obj = _load_blob(raw, name="gelatoArgs")
    try:
        time_stamp = parse_timestamp(obj.get("timeStamp"))
    except ValueError as err:
        raise InvalidRequestError(f"gelatoArgs.timeStamp is invalid: {err}") from err
    gas_price = obj.get("gasPrice")
    return GelatoArgs(time_stamp=time_stamp, gas_price=None if gas_price is None else str(gas_price))


def coerce_connection(raw: Any, settings: Settings) -> Connection:
    if isinstance(raw, Connection):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidRequestError("connection must be an object with rpc_url")
    rpc_url = raw.get("rpc_url") or raw.get("node")
    if not isinstance(rpc_url, str) or not rpc_url.strip():
        raise InvalidRequestError("connection.rpc_url must be a non-empty string")
    network = raw.get("network")
    return Connection(
        rpc_url=rpc_url.strip(),
        network=None if network is None else str(network),
        timeout_seconds=settings.timeout_seconds,
        block_tag=str(raw.get("block_tag", "latest")),
    )


def evaluate(
    user_args: Any,
    gelato_args: Any,
    connection: Any,
    *,
    execute_rpc: RpcExecutor | None = None,
    execute_query: QueryExecutor | None = None,
    settings: Settings | None = None,
) -> RunReport:
    settings = settings or Settings()
    user = decode_user_args(user_args)
    gelato = decode_gelato_args(gelato_args)
    conn = coerce_connection(connection, settings)

    context = EvaluationContext(
        now=gelato.time_stamp,
        scheduler_address=user.scheduler_address,
        connection=conn,
        batch_size=settings.batch_size,
        page_size=settings.page_size,
    )
    if execute_rpc is None:
        execute_rpc = make_rpc_executor(conn)
    if execute_query is None:
        execute_query = make_subgraph_executor(
            base_url=settings.subgraph_base_url,
            author=settings.subgraph_author,
            name=user.subgraph_name,
            timeout_seconds=settings.timeout_seconds,
        )

    logger.info(
        "checking %s scheduler %s (subgraph %s, now=%d)",
        user.scheduler_type.value,
        user.scheduler_address,
        user.subgraph_name,
        gelato.time_stamp,
    )
    return run_pipeline(
        PIPELINES[user.scheduler_type],
        context,
        execute_rpc=execute_rpc,
        execute_query=execute_query,
    )


def checker(
    user_args: Any,
    gelato_args: Any,
    connection: Any,
    *,
    execute_rpc: RpcExecutor | None = None,
    execute_query: QueryExecutor | None = None,
    settings: Settings | None = None,
) -> CheckerResult:
    """Return CheckerResult(can_exec, exec_data) for one resolver poll."""
    report = evaluate(
        user_args,
        gelato_args,
        connection,
        execute_rpc=execute_rpc,
        execute_query=execute_query,
        settings=settings,
    )
    return report.result
