"""Command line entry point for the coverage gate."""

from __future__ import annotations

import argparse
import os
from pathlib import Path
import sys
from typing import Callable, Iterable, Mapping, Optional

from botocore.exceptions import BotoCoreError
from dotenv import find_dotenv, load_dotenv

from .config import GateSettings, env_float
from .errors import CovgateError, StoreError
from .logging_config import configure_logging, get_logger
from .orchestrator import DEFAULT_DESIRED, GateConfig, GateResult, run_gate
from .store import CoverageStore, DynamoCoverageStore
from .utils.coverage import load_percent

StoreFactory = Callable[[GateConfig], CoverageStore]


def _load_local_dotenv() -> Optional[str]:
    """Load a ``.env`` file from the working directory tree, if one exists."""

    path = find_dotenv(usecwd=True)
    if not path:
        return None
    load_dotenv(dotenv_path=path, override=False)
    return path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="covgate",
        description="Fail the build when coverage drops below the previous build",
    )
    parser.add_argument("-b", "--branch", help="name of branch being built")
    parser.add_argument("-m", "--commit", "--hash", dest="commit", help="commit hash")
    parser.add_argument("-r", "--repository", help="name of repository")
    measured = parser.add_mutually_exclusive_group()
    measured.add_argument(
        "-c", "--coverage", type=float, default=None, help="actual code coverage; 90 == 90%%"
    )
    measured.add_argument(
        "--coverage-report",
        type=Path,
        help="coverage JSON or XML report to read the actual coverage from",
    )
    parser.add_argument(
        "-d",
        "--desired",
        "--minimum",
        dest="desired",
        type=float,
        default=None,
        help=f"minimum desired coverage; 90 == 90%% (default: {DEFAULT_DESIRED:g}); "
        "0 disables the check",
    )
    parser.add_argument("-t", "--table", help="dynamodb table holding stats")
    parser.add_argument("--region", help="AWS region of the table")
    parser.add_argument(
        "--endpoint-url",
        dest="endpoint_url",
        help="alternative DynamoDB endpoint, e.g. http://localhost:8000",
    )
    parser.add_argument(
        "--config",
        help="path to a covgate.yaml file (defaults to ./covgate.yaml if present)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    return parser


def _first(*values):
    for value in values:
        if value is not None and value != "":
            return value
    return None


def build_config(
    args: argparse.Namespace,
    settings: GateSettings,
    env: Mapping[str, str] | None = None,
) -> GateConfig:
    """Merge flags, environment and file settings into a validated :class:`GateConfig`.

    Flags win over environment variables, which win over ``covgate.yaml``.
    """

    source = os.environ if env is None else env

    if args.coverage_report is not None:
        actual = load_percent(args.coverage_report)
    else:
        actual = args.coverage if args.coverage is not None else 0.0

    desired = _first(args.desired, env_float("COVGATE_DESIRED", source), settings.desired)
    config = GateConfig(
        branch=_first(args.branch, source.get("COVGATE_BRANCH")) or "",
        commit=_first(args.commit, source.get("COVGATE_COMMIT")) or "",
        repository=_first(args.repository, source.get("COVGATE_REPOSITORY")) or "",
        actual=actual,
        desired=DEFAULT_DESIRED if desired is None else desired,
        table=_first(args.table, source.get("COVGATE_TABLE"), settings.table) or "",
        region=_first(
            args.region,
            source.get("AWS_REGION"),
            source.get("AWS_DEFAULT_REGION"),
            settings.region,
        ),
        endpoint_url=_first(
            args.endpoint_url, source.get("COVGATE_ENDPOINT_URL"), settings.endpoint_url
        ),
    )
    return config.validate()


def dynamo_store_factory(config: GateConfig) -> CoverageStore:
    try:
        return DynamoCoverageStore.from_settings(
            config.table, region=config.region, endpoint_url=config.endpoint_url
        )
    except BotoCoreError as exc:
        raise StoreError(f"unable to connect to dynamodb: {exc}") from exc


def _summary(result: GateResult) -> str:
    record = result.record
    if result.previous is None:
        prior = "no prior build"
    else:
        prior = f"prior={result.previous.coverage:.1f}% #{result.previous.number}"
    return f"coverage={record.coverage:.1f}% build=#{record.number} key={record.key} ({prior})"


def main(
    argv: Optional[Iterable[str]] = None,
    *,
    store_factory: StoreFactory = dynamo_store_factory,
) -> int:
    _load_local_dotenv()
    parser = build_parser()
    args = parser.parse_args(None if argv is None else list(argv))
    configure_logging(args.log_level)
    logger = get_logger(__name__)

    try:
        settings = GateSettings.discover(args.config)
        config = build_config(args, settings)
        store = store_factory(config)
        if store.ensure_table_exists():
            logger.info("Provisioned coverage table", extra={"table": config.table})
        result = run_gate(config, store)
    except CovgateError as exc:
        logger.error("Coverage gate failed", extra={"error": str(exc), **exc.context})
        print(str(exc), file=sys.stderr)
        return 1

    print(_summary(result))
    return 0


__all__ = ["build_config", "build_parser", "dynamo_store_factory", "main"]
