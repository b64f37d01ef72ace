#!/usr/bin/env python3
"""JSON command-line wrapper around the Opium scheduler Gelato resolver."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Local imports for script execution (python3 scripts/resolver_cli.py ...)
SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from checker import evaluate  # noqa: E402
from config import Settings, load_settings, resolve_connection  # noqa: E402
from error_map import InvalidRequestError, ResolverError  # noqa: E402
from pipelines import PIPELINES, SchedulerType, fetch_records  # noqa: E402
from subgraph_client import make_subgraph_executor  # noqa: E402

logger = logging.getLogger("scheduler_resolver")


def _json_dump(payload: Any, pretty: bool = True) -> str:
    return json.dumps(payload, indent=2 if pretty else None, sort_keys=False)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def _build_ok_payload(*, method: str, result: Any) -> dict[str, Any]:
    return {
        "timestamp_utc": _timestamp(),
        "method": method,
        "status": "ok",
        "ok": True,
        "error_code": None,
        "error_message": None,
        "result": result,
    }


def _build_error_payload(*, method: str, err: ResolverError) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "timestamp_utc": _timestamp(),
        "method": method,
        "status": "error",
        "ok": False,
        "error_code": err.error_code,
        "error_message": err.message,
    }
    if err.cause is not None:
        payload["cause"] = err.cause
    return payload


def _render_output(*, payload: dict[str, Any], compact: bool, result_only: bool) -> None:
    if result_only and bool(payload.get("ok", False)):
        print(_json_dump(payload.get("result"), pretty=not compact))
        return
    print(_json_dump(payload, pretty=not compact))


def _render_error(args: argparse.Namespace, *, method: str, err: ResolverError) -> int:
    logger.error("%s failed: %s: %s", method, err.error_code, err.message)
    _render_output(
        payload=_build_error_payload(method=method, err=err),
        compact=bool(args.compact),
        result_only=False,
    )
    return int(err.exit_code)


def _parse_request_from_args(args: argparse.Namespace) -> dict[str, Any] | None:
    try:
        if args.request_file:
            with open(args.request_file, encoding="utf-8") as f:
                req = json.load(f)
        elif args.request_json:
            req = json.loads(args.request_json)
        else:
            return None
    except (OSError, json.JSONDecodeError) as err:
        raise InvalidRequestError(f"cannot read request: {err}") from err
    if not isinstance(req, dict):
        raise InvalidRequestError("request must be an object")
    return req


def _scheduler_defaults(
    settings: Settings,
    *,
    network: str | None,
    scheduler_type: str | None,
) -> tuple[str | None, str | None]:
    """(scheduler_address, subgraph_name) from the deployment entry, if any."""
    if not network:
        return None, None
    deployment = settings.deployment(network)
    address = None
    if scheduler_type == SchedulerType.DEPOSIT.value:
        address = deployment.deposit_scheduler
    elif scheduler_type == SchedulerType.WITHDRAWAL.value:
        address = deployment.withdrawal_scheduler
    return address, deployment.subgraph_name


def _check_inputs_from_args(args: argparse.Namespace, settings: Settings) -> tuple[Any, Any, Any]:
    req = _parse_request_from_args(args)
    if req is not None:
        user_args = req.get("userArgs")
        gelato_args = req.get("gelatoArgs") or {"timeStamp": str(int(time.time()))}
        connection = req.get("connection") or resolve_connection(
            settings,
            network=req.get("network") or args.network,
            rpc_url=args.rpc_url,
        )
        return user_args, gelato_args, connection

    default_address, default_subgraph = _scheduler_defaults(
        settings,
        network=args.network,
        scheduler_type=args.scheduler_type,
    )
    user_args = {
        "schedulerType": args.scheduler_type,
        "schedulerAddress": args.scheduler_address or default_address,
        "subgraphName": args.subgraph_name or default_subgraph,
    }
    gelato_args = {
        "gasPrice": args.gas_price,
        "timeStamp": args.timestamp if args.timestamp is not None else str(int(time.time())),
    }
    connection = resolve_connection(settings, network=args.network, rpc_url=args.rpc_url)
    return user_args, gelato_args, connection


def cmd_check(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(args.config)
        user_args, gelato_args, connection = _check_inputs_from_args(args, settings)
        report = evaluate(user_args, gelato_args, connection, settings=settings)
    except ResolverError as err:
        return _render_error(args, method="check", err=err)

    payload = _build_ok_payload(method="check", result=report.result.to_dict())
    payload["summary"] = report.summary()
    _render_output(payload=payload, compact=bool(args.compact), result_only=bool(args.result_only))
    return 0


def _record_to_json(record: Any) -> dict[str, Any]:
    out = dataclasses.asdict(record)
    if "scheduled" in out:
        out["scheduled"] = str(out["scheduled"])
    return out


def cmd_pending(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(args.config)
        _, default_subgraph = _scheduler_defaults(settings, network=args.network, scheduler_type=None)
        subgraph_name = args.subgraph_name or default_subgraph
        if not subgraph_name:
            raise InvalidRequestError("pending requires --subgraph-name or --network")
        execute_query = make_subgraph_executor(
            base_url=settings.subgraph_base_url,
            author=settings.subgraph_author,
            name=subgraph_name,
            timeout_seconds=settings.timeout_seconds,
        )
        pipeline = PIPELINES[SchedulerType(args.scheduler_type)]
        records = fetch_records(pipeline, page_size=settings.page_size, execute_query=execute_query)
    except ResolverError as err:
        return _render_error(args, method="pending", err=err)

    payload = _build_ok_payload(method="pending", result=[_record_to_json(r) for r in records])
    payload["summary"] = {
        "scheduler_type": pipeline.scheduler_type.value,
        "subgraph_name": subgraph_name,
        "records": len(records),
    }
    _render_output(payload=payload, compact=bool(args.compact), result_only=bool(args.result_only))
    return 0


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--compact", action="store_true", help="compact JSON output")
    parser.add_argument("--result-only", action="store_true", help="print only result field")


def _add_log_level_arg(parser: argparse.ArgumentParser, *, default: str) -> None:
    # Accepted before or after the subcommand; the subparser default must not
    # overwrite a value given on the top-level parser.
    parser.add_argument(
        "--log-level",
        default=default,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="stderr log level",
    )


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    _add_log_level_arg(parser, default=argparse.SUPPRESS)
    parser.add_argument("--config", help="deployments YAML path")
    parser.add_argument("--network", help="deployment name from the config (e.g. mainnet)")
    parser.add_argument(
        "--scheduler-type",
        choices=[t.value for t in SchedulerType],
        default=SchedulerType.DEPOSIT.value,
    )
    parser.add_argument("--subgraph-name", help="subgraph name under the configured author")
    _add_output_args(parser)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    _add_log_level_arg(parser, default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    check_parser = sub.add_parser("check", help="Run the resolver and print canExec/execData")
    _add_common_args(check_parser)
    check_parser.add_argument("--request-file", help="check request JSON file")
    check_parser.add_argument("--request-json", help="check request JSON string")
    check_parser.add_argument("--scheduler-address", help="scheduler contract address")
    check_parser.add_argument("--timestamp", help="evaluation unix timestamp (default: now)")
    check_parser.add_argument("--gas-price", help="gas price passed through in gelatoArgs")
    check_parser.add_argument("--rpc-url", help="JSON-RPC endpoint (default: ETH_RPC_URL)")
    check_parser.set_defaults(func=cmd_check)

    pending_parser = sub.add_parser("pending", help="List scheduled records from the subgraph")
    _add_common_args(pending_parser)
    pending_parser.set_defaults(func=cmd_pending)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
