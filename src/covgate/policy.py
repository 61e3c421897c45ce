"""Coverage regression policy."""

from __future__ import annotations

from .errors import CoverageRegressionError


def check_coverage(actual: float, last: float, threshold: float) -> None:
    """Reject ``actual`` when it falls below ``last`` and a threshold is configured.

    A ``threshold`` of zero or less disables the comparison entirely. Callers
    pass ``last=0`` when no prior build exists, so a first build passes.
    """

    if threshold <= 0:
        return
    if actual < last:
        raise CoverageRegressionError(
            "build coverage targets not met.  "
            f"build coverage, {actual:.1f}%, below prior build coverage, {last:.1f}% "
            f"(desired coverage: {threshold:.1f}%)",
            context={"actual": actual, "last": last, "threshold": threshold},
        )


__all__ = ["check_coverage"]
