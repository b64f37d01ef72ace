"""Deployment settings loaded from YAML with environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from error_map import ConfigError
from scheduler_registry import BATCH_SIZE, DEFAULT_SUBGRAPH_BASE_URL, PAGE_LIMIT, SUBGRAPH_AUTHOR

SCRIPT_DIR = Path(__file__).resolve().parent
DEFAULT_CONFIG_PATH = (SCRIPT_DIR.parent / "references" / "deployments.yaml").resolve()
DEFAULT_TIMEOUT_SECONDS = 20.0

CONFIG_ENV_VAR = "SCHEDULER_RESOLVER_CONFIG"
RPC_URL_ENV_VAR = "ETH_RPC_URL"
SUBGRAPH_URL_ENV_VAR = "SUBGRAPH_BASE_URL"


@dataclass(frozen=True)
class Deployment:
    network: str
    subgraph_name: str | None = None
    rpc_url: str | None = None
    deposit_scheduler: str | None = None
    withdrawal_scheduler: str | None = None


@dataclass(frozen=True)
class Settings:
    subgraph_author: str = SUBGRAPH_AUTHOR
    subgraph_base_url: str = DEFAULT_SUBGRAPH_BASE_URL
    page_size: int = PAGE_LIMIT
    batch_size: int = BATCH_SIZE
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    deployments: dict[str, Deployment] = field(default_factory=dict)

    def deployment(self, network: str) -> Deployment:
        try:
            return self.deployments[network]
        except KeyError:
            known = ", ".join(sorted(self.deployments)) or "none"
            raise ConfigError(f"unknown network {network!r} (configured: {known})") from None


@dataclass(frozen=True)
class Connection:
    """Network selector handed through to contract reads."""

    rpc_url: str
    network: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    block_tag: str = "latest"


def _positive_int(raw: Any, *, field_name: str, default: int) -> int:
    value = default if raw is None else raw
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{field_name} must be a positive integer")
    return value


def _positive_number(raw: Any, *, field_name: str, default: float) -> float:
    value = default if raw is None else raw
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{field_name} must be a positive number")
    return float(value)


def _optional_str(raw: Any, *, field_name: str) -> str | None:
    if raw is None:
        return None
    if not isinstance(raw, str) or not raw.strip():
        raise ConfigError(f"{field_name} must be a non-empty string when provided")
    return raw.strip()


def _parse_deployments(raw: Any) -> dict[str, Deployment]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError("deployments must be a mapping of network name to deployment")
    out: dict[str, Deployment] = {}
    for network, entry in raw.items():
        if not isinstance(entry, dict):
            raise ConfigError(f"deployments.{network} must be a mapping")
        out[str(network)] = Deployment(
            network=str(network),
            subgraph_name=_optional_str(entry.get("subgraph_name"), field_name=f"deployments.{network}.subgraph_name"),
            rpc_url=_optional_str(entry.get("rpc_url"), field_name=f"deployments.{network}.rpc_url"),
            deposit_scheduler=_optional_str(
                entry.get("deposit_scheduler"), field_name=f"deployments.{network}.deposit_scheduler"
            ),
            withdrawal_scheduler=_optional_str(
                entry.get("withdrawal_scheduler"), field_name=f"deployments.{network}.withdrawal_scheduler"
            ),
        )
    return out


def settings_from_mapping(raw: Mapping[str, Any], env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env
    base_url = env.get(SUBGRAPH_URL_ENV_VAR) or raw.get("subgraph_base_url") or DEFAULT_SUBGRAPH_BASE_URL
    author = raw.get("subgraph_author", SUBGRAPH_AUTHOR)
    if not isinstance(author, str) or not author.strip():
        raise ConfigError("subgraph_author must be a non-empty string")
    if not isinstance(base_url, str):
        raise ConfigError("subgraph_base_url must be a string")
    return Settings(
        subgraph_author=author.strip(),
        subgraph_base_url=base_url.rstrip("/"),
        page_size=_positive_int(raw.get("page_size"), field_name="page_size", default=PAGE_LIMIT),
        batch_size=_positive_int(raw.get("batch_size"), field_name="batch_size", default=BATCH_SIZE),
        timeout_seconds=_positive_number(
            raw.get("timeout_seconds"), field_name="timeout_seconds", default=DEFAULT_TIMEOUT_SECONDS
        ),
        deployments=_parse_deployments(raw.get("deployments")),
    )


def load_settings(path: str | Path | None = None, env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env
    config_path = Path(path or env.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH).resolve()
    if not config_path.exists():
        raise ConfigError(f"config file not found: {config_path}")
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as err:
        raise ConfigError(f"config file is not valid YAML: {err}") from err
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("config file must contain a YAML mapping")
    return settings_from_mapping(raw, env=env)


def resolve_connection(
    settings: Settings,
    *,
    network: str | None = None,
    rpc_url: str | None = None,
    env: Mapping[str, str] | None = None,
) -> Connection:
    """Pick an rpc url: explicit value, then ETH_RPC_URL, then the deployment entry."""
    env = os.environ if env is None else env
    deployment = settings.deployment(network) if network else None
    url = rpc_url or env.get(RPC_URL_ENV_VAR) or (deployment.rpc_url if deployment else None)
    if not url:
        raise ConfigError(f"no rpc url configured; pass --rpc-url or set {RPC_URL_ENV_VAR}")
    return Connection(rpc_url=url, network=network, timeout_seconds=settings.timeout_seconds)
