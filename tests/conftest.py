"""Shared pytest fixtures for covgate tests."""

from __future__ import annotations

import socket

import pytest

from covgate.orchestrator import GateConfig
from covgate.store import InMemoryCoverageStore


@pytest.fixture(scope="session", autouse=True)
def block_network() -> None:
    """Prevent network access during the entire test session."""

    original_socket = socket.socket
    original_create_connection = socket.create_connection

    def _guard(*args: object, **kwargs: object) -> socket.socket:  # type: ignore[override]
        raise RuntimeError("Network access is disabled during tests.")

    socket.socket = _guard  # type: ignore[assignment]
    socket.create_connection = _guard  # type: ignore[assignment]

    try:
        yield
    finally:
        socket.socket = original_socket
        socket.create_connection = original_create_connection


@pytest.fixture(autouse=True)
def _aws_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-west-2")
    for name in (
        "COVGATE_BRANCH",
        "COVGATE_COMMIT",
        "COVGATE_REPOSITORY",
        "COVGATE_DESIRED",
        "COVGATE_TABLE",
        "COVGATE_ENDPOINT_URL",
        "AWS_REGION",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def memory_store() -> InMemoryCoverageStore:
    return InMemoryCoverageStore()


@pytest.fixture
def gate_config() -> GateConfig:
    """Return a valid config; tests override fields with ``dataclasses.replace``."""

    return GateConfig(
        branch="main",
        commit="abc123",
        repository="blah",
        actual=5.0,
        desired=10.0,
        table="coverage-test",
    )
