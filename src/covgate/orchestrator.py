"""Fetch, evaluate and append: the coverage gate sequence."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Optional

from .errors import ConfigurationError, RecordNotFoundError, RecordWriteError, StoreError
from .logging_config import get_logger
from .policy import check_coverage
from .records import CoverageRecord, make_key, utc_now_iso
from .store import CoverageStore

LOGGER = get_logger(__name__)

DEFAULT_DESIRED = 90.0


@dataclass(frozen=True)
class GateConfig:
    """Settings for one gate invocation, built once by the CLI."""

    branch: str
    commit: str
    repository: str
    actual: float = 0.0
    desired: float = DEFAULT_DESIRED
    table: str = ""
    region: Optional[str] = None
    endpoint_url: Optional[str] = None

    @property
    def key(self) -> str:
        return make_key(self.repository, self.branch)

    def validate(self) -> "GateConfig":
        if not self.branch:
            raise ConfigurationError("branch missing.  use --branch to specify branch name")
        if not self.commit:
            raise ConfigurationError(
                "commit hash missing.  use --commit to specify the commit hash"
            )
        if not self.repository:
            raise ConfigurationError(
                "repository missing.  use --repository to specify repository name"
            )
        if not self.table:
            raise ConfigurationError("table missing.  use --table to specify the table name")
        if not math.isfinite(self.actual):
            raise ConfigurationError(f"coverage must be a finite number, got {self.actual}")
        if not math.isfinite(self.desired):
            raise ConfigurationError(
                f"desired coverage must be a finite number, got {self.desired}"
            )
        return self


@dataclass(frozen=True)
class GateResult:
    record: CoverageRecord
    previous: Optional[CoverageRecord] = None


def _find_previous(store: CoverageStore, key: str) -> Optional[CoverageRecord]:
    try:
        return store.find_last(key)
    except RecordNotFoundError:
        LOGGER.info("No prior coverage record", extra={"key": key})
        return None


def run_gate(
    config: GateConfig, store: CoverageStore, *, now: Optional[str] = None
) -> GateResult:
    """Compare ``config.actual`` with the last record and append the new one.

    A key without records counts as number 0 with 0% coverage. Store errors,
    regressions and lost conditional writes propagate as :class:`CovgateError`
    subclasses; nothing is written unless the policy passes.
    """

    key = config.key
    previous = _find_previous(store, key)
    last_number = previous.number if previous else 0
    last_coverage = previous.coverage if previous else 0.0

    LOGGER.debug(
        "Evaluating coverage",
        extra={
            "key": key,
            "actual": config.actual,
            "last": last_coverage,
            "desired": config.desired,
        },
    )
    check_coverage(config.actual, last_coverage, config.desired)

    record = CoverageRecord(
        key=key,
        number=last_number + 1,
        coverage=config.actual,
        created_at=now or utc_now_iso(),
        commit_hash=config.commit,
    )
    try:
        store.put(record)
    except StoreError as exc:
        raise RecordWriteError(
            f"unable to save coverage record: {exc}", context=dict(exc.context)
        ) from exc

    LOGGER.info(
        "Recorded coverage",
        extra={"key": key, "number": record.number, "coverage": record.coverage},
    )
    return GateResult(record=record, previous=previous)


__all__ = ["DEFAULT_DESIRED", "GateConfig", "GateResult", "run_gate"]
