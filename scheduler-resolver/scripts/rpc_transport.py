"""HTTP JSON transport shared by JSON-RPC and subgraph queries."""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.request
from socket import timeout as SocketTimeout
from typing import Any

from error_map import ERR_RPC_TIMEOUT, ERR_RPC_TRANSPORT


def _failure(error_code: str, message: str, response: Any = None) -> dict[str, Any]:
    return {
        "ok": False,
        "error_code": error_code,
        "error_message": message,
        "response": response,
    }


def _error_body(err: urllib.error.HTTPError) -> str:
    try:
        return err.read().decode("utf-8", errors="replace")
    except (OSError, http.client.HTTPException):
        return ""


def post_json(
    *,
    url: str,
    payload: dict[str, Any],
    timeout_seconds: float,
) -> dict[str, Any]:
    """POST payload as JSON; never raises, failures come back as an error envelope."""
    body = json.dumps(payload).encode("utf-8")
    req = urllib.request.Request(
        url,
        data=body,
        method="POST",
        headers={"Content-Type": "application/json"},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout_seconds) as resp:
            raw = resp.read()
        text = raw.decode("utf-8")
    except SocketTimeout as err:
        return _failure(ERR_RPC_TIMEOUT, str(err) or "request timed out")
    except urllib.error.HTTPError as err:
        return _failure(
            ERR_RPC_TRANSPORT,
            f"http error {err.code}",
            {"status": err.code, "raw": _error_body(err)},
        )
    except urllib.error.URLError as err:
        if isinstance(err.reason, SocketTimeout):
            return _failure(ERR_RPC_TIMEOUT, str(err.reason) or "request timed out")
        return _failure(ERR_RPC_TRANSPORT, str(err))
    except UnicodeDecodeError as err:
        return _failure(ERR_RPC_TRANSPORT, f"endpoint returned non-utf-8 response: {err}")
    except (OSError, http.client.HTTPException) as err:
        # connection resets and truncated bodies
        return _failure(ERR_RPC_TRANSPORT, f"{type(err).__name__}: {err}")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return _failure(ERR_RPC_TRANSPORT, "endpoint returned non-json response", {"raw": text})
    return {
        "ok": True,
        "error_code": None,
        "error_message": None,
        "response": parsed,
    }


def invoke_rpc(
    *,
    rpc_url: str,
    method: str,
    params: list[Any],
    timeout_seconds: float,
    request_id: int = 1,
) -> dict[str, Any]:
    payload = {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": method,
        "params": params,
    }
    return post_json(url=rpc_url, payload=payload, timeout_seconds=timeout_seconds)
