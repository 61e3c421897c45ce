"""Coverage record model and its DynamoDB item representation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

KEY_ATTR = "key"
NUMBER_ATTR = "number"
COMMIT_ATTR = "commit_hash"
COVERAGE_ATTR = "coverage"
CREATED_AT_ATTR = "at"


def make_key(repository: str, branch: str) -> str:
    """Return the partition key shared by every build of ``repository``/``branch``."""

    return f"{repository}:{branch}"


def utc_now_iso() -> str:
    """Return the current time as an RFC3339 string with seconds precision."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class CoverageRecord:
    """One persisted coverage measurement for a repository branch."""

    key: str
    number: int
    coverage: float
    created_at: str
    commit_hash: str | None = None

    def to_item(self) -> dict[str, Any]:
        """Serialise to a DynamoDB item; boto3 requires ``Decimal`` for numbers."""

        item: dict[str, Any] = {
            KEY_ATTR: self.key,
            NUMBER_ATTR: self.number,
            COVERAGE_ATTR: Decimal(str(self.coverage)),
            CREATED_AT_ATTR: self.created_at,
        }
        if self.commit_hash:
            item[COMMIT_ATTR] = self.commit_hash
        return item

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "CoverageRecord":
        return cls(
            key=str(item[KEY_ATTR]),
            number=int(item[NUMBER_ATTR]),
            coverage=float(item.get(COVERAGE_ATTR, 0)),
            created_at=str(item.get(CREATED_AT_ATTR, "")),
            commit_hash=item.get(COMMIT_ATTR) or None,
        )


__all__ = ["CoverageRecord", "make_key", "utc_now_iso"]
