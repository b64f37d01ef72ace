"""skip-offset pagination over subgraph entity queries."""

from __future__ import annotations

import json
import logging
from typing import Any

from error_map import ConfigError, IndexerQueryError
from subgraph_client import QueryExecutor

logger = logging.getLogger(__name__)


def _extract_page(body: Any, *, entity: str, skip: int) -> list[Any]:
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body)
        except json.JSONDecodeError as err:
            raise IndexerQueryError(f"subgraph page at skip={skip} is not valid JSON: {err}") from err
    if not isinstance(body, dict):
        raise IndexerQueryError(f"subgraph page at skip={skip} must be a JSON object")

    errors = body.get("errors")
    if errors:
        items = errors if isinstance(errors, list) else [errors]
        messages = [str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in items]
        raise IndexerQueryError(
            f"subgraph returned errors at skip={skip}: {'; '.join(messages)}",
            cause={"errors": errors},
        )

    data = body.get("data")
    if not isinstance(data, dict):
        raise IndexerQueryError(f"subgraph page at skip={skip} has no data object", cause={"response": body})
    page = data.get(entity)
    if not isinstance(page, list):
        raise IndexerQueryError(
            f"subgraph page at skip={skip} has no {entity} array",
            cause={"response": body},
        )
    return page


def fetch_all(
    *,
    query_template: str,
    entity: str,
    page_size: int,
    execute_query: QueryExecutor,
) -> list[Any]:
    """Fetch every page until one comes back shorter than page_size."""
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
        raise ConfigError("page_size must be a positive integer")

    records: list[Any] = []
    skip = 0
    pages = 0
    while True:
        query = query_template.format(first=page_size, skip=skip)
        rc, payload = execute_query(query)
        if rc != 0:
            raise IndexerQueryError(
                f"subgraph query for {entity} at skip={skip} failed: "
                f"{payload.get('error_message', 'query failed')}",
                cause=payload,
            )

        page = _extract_page(payload.get("result"), entity=entity, skip=skip)
        pages += 1
        records.extend(page)
        skip += len(page)
        if len(page) < page_size:
            break

    logger.info("Total fetched length: %d (%s, %d pages)", len(records), entity, pages)
    return records
