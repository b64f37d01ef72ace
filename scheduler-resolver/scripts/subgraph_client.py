"""GraphQL executor for hosted subgraphs."""

from __future__ import annotations

from typing import Any, Callable

from rpc_transport import post_json

QueryExecutor = Callable[[str], tuple[int, dict[str, Any]]]


def subgraph_url(base_url: str, author: str, name: str) -> str:
    return f"{base_url.rstrip('/')}/{author}/{name}"


def make_subgraph_executor(
    *,
    base_url: str,
    author: str,
    name: str,
    timeout_seconds: float,
) -> QueryExecutor:
    """Bind a subgraph endpoint to a (query) -> (exit_code, payload) executor."""
    url = subgraph_url(base_url, author, name)

    def execute(query: str) -> tuple[int, dict[str, Any]]:
        transport = post_json(url=url, payload={"query": query}, timeout_seconds=timeout_seconds)
        if not transport["ok"]:
            return 1, transport
        return 0, {
            "ok": True,
            "error_code": None,
            "error_message": None,
            "url": url,
            "result": transport["response"],
        }

    return execute
