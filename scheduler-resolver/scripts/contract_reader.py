"""eth_call based contract-view reads."""

from __future__ import annotations

import logging
from typing import Any, Callable

from abi_codec import decode_abi, encode_call, parse_types
from config import Connection
from error_map import ERR_RPC_REMOTE, ContractReadError
from rpc_transport import invoke_rpc

logger = logging.getLogger(__name__)

RpcExecutor = Callable[[dict[str, Any]], tuple[int, dict[str, Any]]]


def make_rpc_executor(connection: Connection) -> RpcExecutor:
    """Bind a Connection to a (req) -> (exit_code, payload) JSON-RPC executor."""
    counter = {"id": 0}

    def execute(req: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        counter["id"] += 1
        transport = invoke_rpc(
            rpc_url=connection.rpc_url,
            method=str(req.get("method", "")),
            params=list(req.get("params", [])),
            timeout_seconds=connection.timeout_seconds,
            request_id=counter["id"],
        )
        if not transport["ok"]:
            return 1, transport
        rpc_response = transport["response"]
        if not isinstance(rpc_response, dict):
            return 1, {
                "ok": False,
                "error_code": ERR_RPC_REMOTE,
                "error_message": "rpc response must be a JSON object",
                "response": rpc_response,
            }
        if "error" in rpc_response:
            error_obj = rpc_response.get("error")
            message = error_obj.get("message") if isinstance(error_obj, dict) else None
            return 1, {
                "ok": False,
                "error_code": ERR_RPC_REMOTE,
                "error_message": f"rpc returned an error response: {message or error_obj}",
                "response": rpc_response,
            }
        return 0, {
            "ok": True,
            "error_code": None,
            "error_message": None,
            "result": rpc_response.get("result"),
        }

    return execute


def call_view(
    execute_rpc: RpcExecutor,
    *,
    to: str,
    signature: str,
    args: list[Any],
    returns: list[str],
    block_tag: str = "latest",
) -> list[Any]:
    """Run one eth_call and decode the output; any failure is a ContractReadError."""
    try:
        calldata = encode_call(signature, args)["calldata"]
    except ValueError as err:
        raise ContractReadError(f"{signature} on {to}: cannot encode arguments: {err}") from err

    req = {
        "method": "eth_call",
        "params": [{"to": to, "data": calldata}, block_tag],
    }
    rc, payload = execute_rpc(req)
    if rc != 0:
        raise ContractReadError(
            f"{signature} on {to} failed: {payload.get('error_message', 'eth_call failed')}",
            cause=payload,
        )

    result = payload.get("result")
    if not isinstance(result, str):
        raise ContractReadError(f"{signature} on {to} returned non-string result", cause=payload)
    if result in {"0x", ""}:
        raise ContractReadError(f"{signature} on {to} returned empty data", cause=payload)

    try:
        values = decode_abi(parse_types(returns), result)
    except ValueError as err:
        raise ContractReadError(f"{signature} on {to} returned undecodable data: {err}", cause=payload) from err

    logger.debug("eth_call %s on %s -> %s", signature, to, values)
    return values
