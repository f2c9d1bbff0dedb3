"""Pipeline CLI entry points.

This module exposes the extraction job entry point and local tooling.
It maps argparse commands onto stage and workload calls.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Sequence

from core.config import EtlConfig
from core.constants import FIELD_DELIMITER
from core.errors import EtlError
from events.publisher import EventPublisher
from events.routing import PIPELINE_RULES
from ingest.extraction_task import run_extraction_task
from stages.concurrency import ConcurrencyGovernor
from stages.local_pipeline import build_local_pipeline
from stages.transform import transform_row
from store.aws_clients import create_aws_client


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="etl", description="Event-driven ETL pipeline CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_extract_task_command(subparsers)
    _add_rules_command(subparsers)
    _add_transform_command(subparsers)
    _add_simulate_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the pipeline CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = EtlConfig.from_env()
        if args.command == "extract-task":
            return _run_extract_task_command(config)
        if args.command == "rules":
            return _run_rules_command(config)
        if args.command == "transform":
            return _run_transform_command(args)
        if args.command == "simulate":
            return _run_simulate_command(config, args)
    except EtlError as error:
        print(f"error[{error.kind.value}]: {error}")
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _run_extract_task_command(config: EtlConfig) -> int:
    """Handle extract-task command, the extraction job's entry point."""
    publisher = EventPublisher(create_aws_client("events", config), config.event_bus_name)
    count = run_extraction_task(config, create_aws_client("s3", config), publisher)
    print(count)
    return 0


def _run_rules_command(config: EtlConfig) -> int:
    """Print subscription patterns and stage concurrency ceilings."""
    governor = ConcurrencyGovernor.from_config(config)
    payload: dict[str, Any] = {
        "rules": [
            {"name": rule.name, "description": rule.description, "pattern": rule.to_pattern()}
            for rule in PIPELINE_RULES
        ],
        "reserved_concurrency": governor.reserved_concurrency(),
    }
    print(json.dumps(payload, indent=2))
    return 0


def _run_transform_command(args: argparse.Namespace) -> int:
    print(json.dumps(transform_row(args.headers, args.data)))
    return 0


def _run_simulate_command(config: EtlConfig, args: argparse.Namespace) -> int:
    """Run a local file through transform, load, and observe in-process.

    Returns:
        Exit code, 1 when any row failed a stage.
    """
    pipeline = build_local_pipeline(ConcurrencyGovernor.from_config(config))
    pipeline.run_file(Path(args.source).expanduser())
    for item in pipeline.store.items.values():
        print(json.dumps(item, sort_keys=True))
    for failure in pipeline.bus.failures:
        print(f"failed[{failure.rule_name}]: {failure.error}")
    print(f"observed={len(pipeline.audit)} loaded={len(pipeline.store.items)}")
    return 1 if pipeline.bus.failures else 0


def _add_extract_task_command(subparsers: Any) -> None:
    subparsers.add_parser(
        "extract-task",
        help="Extract the object named by S3_BUCKET_NAME/S3_OBJECT_KEY into events",
    )


def _add_rules_command(subparsers: Any) -> None:
    subparsers.add_parser("rules", help="Print stage subscription rules as JSON")


def _add_transform_command(subparsers: Any) -> None:
    parser = subparsers.add_parser("transform", help="Map a header line and a data line")
    parser.add_argument("headers", help=f"'{FIELD_DELIMITER}'-delimited header line")
    parser.add_argument("data", help=f"'{FIELD_DELIMITER}'-delimited data line")


def _add_simulate_command(subparsers: Any) -> None:
    parser = subparsers.add_parser(
        "simulate",
        help="Run a local delimited file through the stages with an in-memory store",
    )
    parser.add_argument("source", help="Local delimited file with a header line")
