"""File and environment backed defaults for the gate CLI."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .errors import ConfigurationError

DEFAULT_CONFIG_FILE = "covgate.yaml"


@dataclass(frozen=True)
class GateSettings:
    """Infrastructure defaults read from ``covgate.yaml``."""

    table: Optional[str] = None
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    desired: Optional[float] = None

    @classmethod
    def load(cls, path: Path) -> "GateSettings":
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle) or {}
        except OSError as exc:
            raise ConfigurationError(f"unable to read config file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"config file {path} is not valid YAML: {exc}") from exc

        if not isinstance(payload, Mapping):
            raise ConfigurationError(f"config file {path} must contain a mapping")

        desired = payload.get("desired")
        try:
            desired_value = float(desired) if desired is not None else None
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"config file {path}: desired must be a number") from exc

        return cls(
            table=_optional_str(payload.get("table")),
            region=_optional_str(payload.get("region")),
            endpoint_url=_optional_str(payload.get("endpoint_url")),
            desired=desired_value,
        )

    @classmethod
    def discover(cls, explicit: Optional[str] = None) -> "GateSettings":
        """Load ``explicit`` or ``./covgate.yaml`` when present, else empty settings."""

        if explicit:
            return cls.load(Path(explicit))
        default = Path.cwd() / DEFAULT_CONFIG_FILE
        if default.is_file():
            return cls.load(default)
        return cls()


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def env_float(name: str, env: Mapping[str, str] | None = None) -> Optional[float]:
    source = os.environ if env is None else env
    raw = source.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


__all__ = ["DEFAULT_CONFIG_FILE", "GateSettings", "env_float"]
