"""Coverage regression gate for CI builds backed by DynamoDB."""

from __future__ import annotations

from .orchestrator import GateConfig, GateResult, run_gate
from .policy import check_coverage
from .records import CoverageRecord, make_key

__all__ = [
    "CoverageRecord",
    "GateConfig",
    "GateResult",
    "check_coverage",
    "make_key",
    "run_gate",
]
