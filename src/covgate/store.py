"""Persistence for coverage records.

``DynamoCoverageStore`` keeps records in a DynamoDB table keyed by ``key``
(partition) and ``number`` (sort). ``InMemoryCoverageStore`` honours the same
contract without any AWS dependency and is what the tests run against.
"""

from __future__ import annotations

from decimal import DecimalException
from typing import Any, Dict, Optional, Protocol

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from .errors import ConditionFailedError, RecordNotFoundError, StoreError
from .logging_config import get_logger
from .records import KEY_ATTR, NUMBER_ATTR, CoverageRecord

LOGGER = get_logger(__name__)

_PUT_CONDITION = "attribute_not_exists(#number)"


class CoverageStore(Protocol):
    def find_last(self, key: str) -> CoverageRecord: ...

    def put(self, record: CoverageRecord) -> None: ...

    def ensure_table_exists(self) -> bool: ...


def _error_code(exc: ClientError) -> str:
    return (exc.response.get("Error", {}) or {}).get("Code", "")


class DynamoCoverageStore:
    """Coverage store backed by a boto3 DynamoDB table resource."""

    def __init__(self, table_name: str, *, resource: Any = None) -> None:
        if not table_name:
            raise ValueError("Table name must be provided")
        self.table_name = table_name
        self._resource = resource if resource is not None else boto3.resource("dynamodb")
        self._table = self._resource.Table(table_name)

    @classmethod
    def from_settings(
        cls,
        table_name: str,
        *,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ) -> "DynamoCoverageStore":
        kwargs: Dict[str, Any] = {}
        if region:
            kwargs["region_name"] = region
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        return cls(table_name, resource=boto3.resource("dynamodb", **kwargs))

    def ensure_table_exists(self) -> bool:
        """Create the table with on-demand billing unless it already exists.

        Returns ``True`` when the table was created by this call.
        """

        try:
            self._table.load()
            return False
        except ClientError as exc:
            if _error_code(exc) != "ResourceNotFoundException":
                raise StoreError(
                    f"unable to describe table {self.table_name}: {exc}",
                    context={"table": self.table_name},
                ) from exc
        except BotoCoreError as exc:
            raise StoreError(
                f"unable to describe table {self.table_name}: {exc}",
                context={"table": self.table_name},
            ) from exc

        LOGGER.info("Creating coverage table", extra={"table": self.table_name})
        try:
            table = self._resource.create_table(
                TableName=self.table_name,
                KeySchema=[
                    {"AttributeName": KEY_ATTR, "KeyType": "HASH"},
                    {"AttributeName": NUMBER_ATTR, "KeyType": "RANGE"},
                ],
                AttributeDefinitions=[
                    {"AttributeName": KEY_ATTR, "AttributeType": "S"},
                    {"AttributeName": NUMBER_ATTR, "AttributeType": "N"},
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            table.wait_until_exists()
        except ClientError as exc:
            # lost a race with another build creating the same table
            if _error_code(exc) == "ResourceInUseException":
                self._table.wait_until_exists()
                return False
            raise StoreError(
                f"unable to create table {self.table_name}: {exc}",
                context={"table": self.table_name},
            ) from exc
        except BotoCoreError as exc:
            raise StoreError(
                f"unable to create table {self.table_name}: {exc}",
                context={"table": self.table_name},
            ) from exc

        self._table = table
        return True

    def delete_table_if_exists(self) -> bool:
        try:
            self._table.delete()
            self._table.wait_until_not_exists()
        except ClientError as exc:
            if _error_code(exc) == "ResourceNotFoundException":
                return False
            raise StoreError(
                f"unable to delete table {self.table_name}: {exc}",
                context={"table": self.table_name},
            ) from exc
        LOGGER.info("Deleted coverage table", extra={"table": self.table_name})
        return True

    def find_last(self, key: str) -> CoverageRecord:
        """Return the highest-numbered record for ``key`` using a consistent read."""

        try:
            response = self._table.query(
                KeyConditionExpression=Key(KEY_ATTR).eq(key),
                ConsistentRead=True,
                ScanIndexForward=False,
                Limit=1,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"unable to find record: {exc}", context={"key": key}) from exc

        items = response.get("Items") or []
        if not items:
            raise RecordNotFoundError(
                f"unable to find record: no coverage record for {key}", context={"key": key}
            )
        return CoverageRecord.from_item(items[0])

    def put(self, record: CoverageRecord) -> None:
        """Insert ``record`` unless an item with the same key and number exists."""

        try:
            self._table.put_item(
                Item=record.to_item(),
                ConditionExpression=_PUT_CONDITION,
                ExpressionAttributeNames={"#number": NUMBER_ATTR},
            )
        except ClientError as exc:
            context = {"key": record.key, "number": record.number}
            if _error_code(exc) == "ConditionalCheckFailedException":
                raise ConditionFailedError(
                    f"record {record.key}#{record.number} already exists", context=context
                ) from exc
            raise StoreError(f"unable to put record: {exc}", context=context) from exc
        except BotoCoreError as exc:
            raise StoreError(
                f"unable to put record: {exc}",
                context={"key": record.key, "number": record.number},
            ) from exc
        except (TypeError, DecimalException) as exc:
            # boto3's serializer rejects NaN, Infinity and out-of-range numbers
            raise StoreError(
                f"unable to serialise record: {exc}",
                context={"key": record.key, "number": record.number},
            ) from exc


class InMemoryCoverageStore:
    """Dictionary-backed store with the same conditional-write semantics."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict[int, CoverageRecord]] = {}
        self.table_created = False

    def ensure_table_exists(self) -> bool:
        created = not self.table_created
        self.table_created = True
        return created

    def find_last(self, key: str) -> CoverageRecord:
        records = self._records.get(key)
        if not records:
            raise RecordNotFoundError(
                f"unable to find record: no coverage record for {key}", context={"key": key}
            )
        return records[max(records)]

    def put(self, record: CoverageRecord) -> None:
        records = self._records.setdefault(record.key, {})
        if record.number in records:
            raise ConditionFailedError(
                f"record {record.key}#{record.number} already exists",
                context={"key": record.key, "number": record.number},
            )
        records[record.number] = record

    def records(self, key: str) -> list[CoverageRecord]:
        """Return every record for ``key`` ordered by number (testing helper)."""

        return [record for _, record in sorted(self._records.get(key, {}).items())]


__all__ = ["CoverageStore", "DynamoCoverageStore", "InMemoryCoverageStore"]
