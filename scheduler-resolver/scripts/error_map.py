"""Error codes and exception taxonomy for resolver runs."""

from __future__ import annotations

from typing import Any

ERR_INDEXER_QUERY = "INDEXER_QUERY_FAILED"
ERR_CONTRACT_READ = "CONTRACT_READ_FAILED"
ERR_RECORD_SHAPE = "RECORD_SHAPE_INVALID"
ERR_INVALID_REQUEST = "INVALID_REQUEST"
ERR_CONFIG = "CONFIG_INVALID"
ERR_RPC_TRANSPORT = "RPC_TRANSPORT_ERROR"
ERR_RPC_TIMEOUT = "RPC_TIMEOUT"
ERR_RPC_REMOTE = "RPC_REMOTE_ERROR"
ERR_INTERNAL = "INTERNAL_ERROR"


class ResolverError(Exception):
    """Base for every failure that aborts a resolver run."""

    error_code = ERR_INTERNAL
    exit_code = 1

    def __init__(self, message: str, *, cause: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class IndexerQueryError(ResolverError):
    error_code = ERR_INDEXER_QUERY


class ContractReadError(ResolverError):
    error_code = ERR_CONTRACT_READ


class RecordShapeError(ResolverError):
    error_code = ERR_RECORD_SHAPE
    exit_code = 2


class InvalidRequestError(ResolverError):
    error_code = ERR_INVALID_REQUEST
    exit_code = 2


class ConfigError(ResolverError):
    error_code = ERR_CONFIG
    exit_code = 2
