"""Read the total coverage percentage out of an existing coverage report."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from xml.etree import ElementTree

from ..errors import CovgateError


class CoverageReportError(CovgateError):
    """Raised when a coverage report cannot be parsed."""


def _coerce_float(value: Any, *, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise CoverageReportError("coverage JSON value is not numeric") from exc


def _percent_from_json(data: Any) -> float:
    if not isinstance(data, dict):
        raise CoverageReportError("coverage JSON payload must be a dictionary")

    totals = data.get("totals")
    if not isinstance(totals, dict):
        raise CoverageReportError("coverage JSON missing 'totals'")

    raw_percent: Any = totals.get("percent_covered")
    if raw_percent is None:
        raw_percent = totals.get("percent_covered_display")
    if raw_percent is not None:
        return _coerce_float(raw_percent)

    covered = _coerce_float(totals.get("covered_lines", totals.get("covered_statements", 0)))
    total = _coerce_float(totals.get("num_statements", totals.get("statements", 0)))
    return 100.0 if total == 0 else (covered / total) * 100.0


def _percent_from_xml(text: str) -> float:
    try:
        root = ElementTree.fromstring(text)
    except ElementTree.ParseError as exc:
        raise CoverageReportError("coverage XML is not valid") from exc

    line_rate = root.attrib.get("line-rate")
    if line_rate is None:
        raise CoverageReportError("coverage XML missing line-rate attribute")
    try:
        return float(line_rate) * 100.0
    except ValueError as exc:
        raise CoverageReportError("coverage XML line-rate is not numeric") from exc


def load_percent(report: Path) -> float:
    """Return the overall coverage percentage recorded in ``report``.

    Supports ``coverage json`` output and the Cobertura schema written by
    ``coverage xml``.
    """

    if not report.exists():
        raise CoverageReportError(f"coverage report {report} does not exist")

    suffix = report.suffix.lower()
    try:
        text = report.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CoverageReportError(f"unable to read coverage report {report}: {exc}") from exc

    if suffix == ".json":
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CoverageReportError(f"coverage report {report} is not valid JSON") from exc
        return _percent_from_json(payload)

    if suffix == ".xml":
        return _percent_from_xml(text)

    raise CoverageReportError("unsupported coverage report format; expected JSON or XML")


__all__ = ["CoverageReportError", "load_percent"]
