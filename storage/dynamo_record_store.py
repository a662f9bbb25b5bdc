import logging
from datetime import datetime, timezone
from decimal import Decimal

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from storage.dynamo_client import DynamoClient
from storage.record_store import RecordNotFound, RecordStore, StoreError, VersionConflict

logger = logging.getLogger(__name__)

# DynamoDB limits
MAX_BATCH_GET_KEYS = 100
MAX_TRANSACTION_ITEMS = 100

_UNPROCESSED_KEY_ROUNDS = 3

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


class DynamoRecordStore(RecordStore):
    """
    Stores one DynamoDB item per code, keyed by the code string.

    Item shape:
    {
        "code": "ABC123",
        "record_type": "InviteCode",
        "used": false,
        "generated_by_user_id": "alice",
        "created_at": "2024-01-15T10:30:00+00:00",
        "version": 1
    }

    Optimistic concurrency relies on the "version" attribute: every write is
    conditioned on the version the writer last read, so of two racing writers
    exactly one succeeds.
    """

    def __init__(self, dynamo_client: DynamoClient):
        self._boto = dynamo_client.client
        self._table = dynamo_client.table

    # ------------------------------------------------------------------
    # RecordStore interface
    # ------------------------------------------------------------------

    def fetch_record(self, record_id: str) -> dict:
        try:
            response = self._boto.get_item(
                TableName=self._table,
                Key=_key(record_id),
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to fetch {record_id!r}: {e}") from e

        item = response.get("Item")
        if item is None:
            raise RecordNotFound(record_id)
        return _deserialize(item)

    def batch_fetch(self, record_ids: list[str]) -> dict[str, dict | None]:
        unique_ids = list(dict.fromkeys(record_ids))
        results: dict[str, dict | None] = {record_id: None for record_id in unique_ids}

        for start in range(0, len(unique_ids), MAX_BATCH_GET_KEYS):
            chunk = unique_ids[start:start + MAX_BATCH_GET_KEYS]
            for record in self._batch_get_chunk(chunk):
                results[record["code"]] = record

        return results

    def conditional_save(self, record: dict, expected_version: int) -> dict:
        saved = {**record, "version": expected_version + 1}
        if expected_version == 0:
            # Covers both a brand-new item and an existing unversioned one
            condition = "attribute_not_exists(#v)"
            names = {"#v": "version"}
            values = None
        else:
            condition = "#v = :expected"
            names = {"#v": "version"}
            values = {":expected": {"N": str(expected_version)}}

        request = {
            "TableName": self._table,
            "Item": _serialize(saved),
            "ConditionExpression": condition,
            "ExpressionAttributeNames": names,
        }
        if values is not None:
            request["ExpressionAttributeValues"] = values

        try:
            self._boto.put_item(**request)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise VersionConflict(record["code"], expected_version) from e
            raise StoreError(f"Failed to save {record['code']!r}: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to save {record['code']!r}: {e}") from e

        return saved

    def batch_save(self, records: list[dict]) -> list[dict]:
        if not records:
            return []
        if len(records) > MAX_TRANSACTION_ITEMS:
            raise ValueError(
                f"Cannot save more than {MAX_TRANSACTION_ITEMS} records atomically"
            )

        created_at = datetime.now(timezone.utc).isoformat()
        saved = [
            {**record, "created_at": record.get("created_at") or created_at, "version": 1}
            for record in records
        ]
        transact_items = [
            {
                "Put": {
                    "TableName": self._table,
                    "Item": _serialize(record),
                    "ConditionExpression": "attribute_not_exists(#k)",
                    "ExpressionAttributeNames": {"#k": "code"},
                }
            }
            for record in saved
        ]

        try:
            self._boto.transact_write_items(TransactItems=transact_items)
        except ClientError as e:
            if e.response["Error"]["Code"] == "TransactionCanceledException":
                reasons = [
                    reason.get("Code", "None")
                    for reason in e.response.get("CancellationReasons", [])
                ]
                logger.warning("Batch save cancelled: %s", reasons)
            raise StoreError(f"Failed to save batch of {len(records)}: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to save batch of {len(records)}: {e}") from e

        return saved

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _batch_get_chunk(self, record_ids: list[str]) -> list[dict]:
        request = {
            self._table: {
                "Keys": [_key(record_id) for record_id in record_ids],
                "ConsistentRead": True,
            }
        }
        found: list[dict] = []

        for _ in range(_UNPROCESSED_KEY_ROUNDS):
            try:
                response = self._boto.batch_get_item(RequestItems=request)
            except (ClientError, BotoCoreError) as e:
                raise StoreError(f"Failed to fetch {len(record_ids)} records: {e}") from e

            found.extend(
                _deserialize(item) for item in response.get("Responses", {}).get(self._table, [])
            )
            request = response.get("UnprocessedKeys") or {}
            if not request:
                return found
            logger.info("Re-requesting %d unprocessed keys", len(request[self._table]["Keys"]))

        raise StoreError(
            f"{len(request[self._table]['Keys'])} keys still unprocessed "
            f"after {_UNPROCESSED_KEY_ROUNDS} rounds"
        )


def _key(record_id: str) -> dict:
    return {"code": {"S": record_id}}


def _serialize(record: dict) -> dict:
    return {
        name: _serializer.serialize(value)
        for name, value in record.items()
        if value is not None
    }


def _deserialize(item: dict) -> dict:
    record = {name: _deserializer.deserialize(value) for name, value in item.items()}
    # Numbers come back as Decimal
    if isinstance(record.get("version"), Decimal):
        record["version"] = int(record["version"])
    return record
