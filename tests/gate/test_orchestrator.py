from __future__ import annotations

from dataclasses import replace

import pytest

from covgate.errors import (
    ConditionFailedError,
    ConfigurationError,
    CoverageRegressionError,
    RecordWriteError,
    StoreError,
)
from covgate.orchestrator import GateConfig, run_gate
from covgate.records import CoverageRecord, make_key
from covgate.store import InMemoryCoverageStore

NOW = "2024-01-01T12:00:00Z"


def _seed(store: InMemoryCoverageStore, config: GateConfig, coverage: float, number: int = 1) -> None:
    store.put(
        CoverageRecord(
            key=make_key(config.repository, config.branch),
            number=number,
            coverage=coverage,
            created_at=NOW,
            commit_hash="blah",
        )
    )


def test_first_build_writes_record_one(memory_store, gate_config) -> None:
    result = run_gate(gate_config, memory_store, now=NOW)

    assert result.previous is None
    assert result.record == CoverageRecord(
        key="blah:main", number=1, coverage=5.0, created_at=NOW, commit_hash="abc123"
    )
    assert memory_store.records("blah:main") == [result.record]


def test_first_build_without_threshold(memory_store, gate_config) -> None:
    result = run_gate(replace(gate_config, desired=0.0), memory_store, now=NOW)

    assert result.record.number == 1


def test_second_build_passes_when_coverage_improves(memory_store, gate_config) -> None:
    _seed(memory_store, gate_config, coverage=1.0)

    result = run_gate(gate_config, memory_store, now=NOW)

    assert result.previous is not None and result.previous.number == 1
    assert result.record.number == 2
    assert result.record.coverage == 5.0


def test_second_build_fails_on_regression_without_writing(memory_store, gate_config) -> None:
    _seed(memory_store, gate_config, coverage=8.0)

    with pytest.raises(CoverageRegressionError):
        run_gate(gate_config, memory_store, now=NOW)

    assert [record.number for record in memory_store.records("blah:main")] == [1]


def test_regression_ignored_when_threshold_disabled(memory_store, gate_config) -> None:
    _seed(memory_store, gate_config, coverage=8.0)

    result = run_gate(replace(gate_config, desired=0.0), memory_store, now=NOW)

    assert result.record.number == 2


def test_sequential_builds_increment_number(memory_store, gate_config) -> None:
    numbers = [
        run_gate(replace(gate_config, actual=float(value)), memory_store).record.number
        for value in (10, 20, 30)
    ]

    assert numbers == [1, 2, 3]


def test_keys_are_isolated_per_branch(memory_store, gate_config) -> None:
    _seed(memory_store, gate_config, coverage=80.0, number=4)

    result = run_gate(replace(gate_config, branch="feature"), memory_store, now=NOW)

    assert result.record.key == "blah:feature"
    assert result.record.number == 1


class _RacingStore(InMemoryCoverageStore):
    """Another build writes the same number between our read and write."""

    def find_last(self, key: str) -> CoverageRecord:
        last = super().find_last(key)
        super().put(replace(last, number=last.number + 1, commit_hash="other"))
        return last


def test_lost_race_surfaces_write_error(gate_config) -> None:
    store = _RacingStore()
    _seed(store, gate_config, coverage=1.0)

    with pytest.raises(RecordWriteError) as exc:
        run_gate(gate_config, store, now=NOW)

    assert str(exc.value).startswith("unable to save coverage record:")
    assert isinstance(exc.value.__cause__, ConditionFailedError)
    assert store.records("blah:main")[-1].commit_hash == "other"


class _BrokenStore(InMemoryCoverageStore):
    def find_last(self, key: str) -> CoverageRecord:
        raise StoreError("unable to find record: boom")


def test_query_failure_is_fatal(gate_config) -> None:
    store = _BrokenStore()

    with pytest.raises(StoreError, match="unable to find record"):
        run_gate(gate_config, store, now=NOW)

    assert store.records("blah:main") == []


@pytest.mark.parametrize(
    "field,message",
    [
        ("branch", "branch missing"),
        ("commit", "commit hash missing"),
        ("repository", "repository missing"),
        ("table", "table missing"),
    ],
)
def test_validate_rejects_missing_fields(gate_config, field: str, message: str) -> None:
    with pytest.raises(ConfigurationError, match=message):
        replace(gate_config, **{field: ""}).validate()


@pytest.mark.parametrize("field", ["actual", "desired"])
@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_validate_rejects_non_finite_numbers(gate_config, field: str, value: float) -> None:
    with pytest.raises(ConfigurationError, match="must be a finite number"):
        replace(gate_config, **{field: value}).validate()


def test_serialisation_failure_surfaces_write_error(gate_config) -> None:
    class _RejectingStore(InMemoryCoverageStore):
        def put(self, record: CoverageRecord) -> None:
            raise StoreError("unable to serialise record: Infinity and NaN not supported")

    with pytest.raises(RecordWriteError, match="unable to save coverage record"):
        run_gate(gate_config, _RejectingStore(), now=NOW)


def test_validate_returns_config(gate_config) -> None:
    assert gate_config.validate() is gate_config
    assert gate_config.key == "blah:main"
