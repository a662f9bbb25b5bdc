import copy
import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from storage.dynamo_client import DynamoClient
from storage.record_store import RecordNotFound, RecordStore, StoreError, VersionConflict

TEST_CONFIG = {
    "aws_access_key": "fake_key",
    "aws_secret_key": "fake_secret",
    "aws_region": "us-east-1",
    "table_name": "test-table",
}


class InMemoryRecordStore(RecordStore):
    """RecordStore double with the same compare-and-swap rules as DynamoDB."""

    def __init__(self, records: dict | None = None):
        self.records: dict[str, dict] = {}
        self.calls: list[str] = []
        self._lock = threading.Lock()
        for code, record in (records or {}).items():
            self.records[code] = {"code": code, "version": 1, **record}

    def fetch_record(self, record_id: str) -> dict:
        self.calls.append("fetch_record")
        with self._lock:
            if record_id not in self.records:
                raise RecordNotFound(record_id)
            return copy.deepcopy(self.records[record_id])

    def batch_fetch(self, record_ids: list[str]) -> dict[str, dict | None]:
        self.calls.append("batch_fetch")
        with self._lock:
            return {
                record_id: copy.deepcopy(self.records.get(record_id))
                for record_id in record_ids
            }

    def conditional_save(self, record: dict, expected_version: int) -> dict:
        self.calls.append("conditional_save")
        with self._lock:
            current = self.records.get(record["code"])
            current_version = current.get("version", 0) if current else 0
            if current_version != expected_version:
                raise VersionConflict(record["code"], expected_version)
            saved = {**record, "version": expected_version + 1}
            self.records[record["code"]] = saved
            return copy.deepcopy(saved)

    def batch_save(self, records: list[dict]) -> list[dict]:
        self.calls.append("batch_save")
        created_at = datetime.now(timezone.utc).isoformat()
        with self._lock:
            if any(record["code"] in self.records for record in records):
                raise StoreError("Transaction cancelled")
            saved = [{**record, "created_at": created_at, "version": 1} for record in records]
            for record in saved:
                self.records[record["code"]] = record
            return copy.deepcopy(saved)


def sequence_generator(*codes: str):
    """Code generator that hands out the given codes in order."""
    iterator = iter(codes)
    return lambda: next(iterator)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def mock_boto(monkeypatch):
    mock_instance = MagicMock()
    monkeypatch.setattr("storage.dynamo_client.boto3.client", lambda *a, **kw: mock_instance)
    return mock_instance


@pytest.fixture
def mock_dynamo_client(mock_boto):
    return DynamoClient(TEST_CONFIG)
