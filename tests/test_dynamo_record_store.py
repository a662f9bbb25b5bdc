import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from storage.dynamo_record_store import DynamoRecordStore
from storage.record_store import RecordNotFound, RecordStore, StoreError, VersionConflict


def _client_error(code: str, **extra) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "test"}, **extra}, "Op")


def _item(code: str, used: bool = False, version: int = 1) -> dict:
    return {
        "code": {"S": code},
        "record_type": {"S": "InviteCode"},
        "used": {"BOOL": used},
        "version": {"N": str(version)},
    }


@pytest.fixture
def record_store(mock_dynamo_client):
    return DynamoRecordStore(mock_dynamo_client)


# ---------------------------------------------------------------------------
# RecordStore ABC
# ---------------------------------------------------------------------------

def test_record_store_is_abstract():
    """Cannot instantiate RecordStore directly."""
    with pytest.raises(TypeError):
        RecordStore()


def test_concrete_must_implement_all_methods():
    class Incomplete(RecordStore):
        def fetch_record(self, record_id): return {}
        # missing batch_fetch, conditional_save and batch_save

    with pytest.raises(TypeError):
        Incomplete()


# ---------------------------------------------------------------------------
# fetch_record
# ---------------------------------------------------------------------------

def test_fetch_record_decodes_item(record_store, mock_boto):
    mock_boto.get_item.return_value = {"Item": _item("ABC123", version=3)}

    record = record_store.fetch_record("ABC123")

    assert record == {"code": "ABC123", "record_type": "InviteCode", "used": False, "version": 3}
    assert isinstance(record["version"], int)
    mock_boto.get_item.assert_called_once_with(
        TableName="test-table",
        Key={"code": {"S": "ABC123"}},
        ConsistentRead=True,
    )


def test_fetch_record_raises_not_found_when_item_missing(record_store, mock_boto):
    mock_boto.get_item.return_value = {}

    with pytest.raises(RecordNotFound):
        record_store.fetch_record("ZZZZZZ")


def test_fetch_record_wraps_client_error(record_store, mock_boto):
    mock_boto.get_item.side_effect = _client_error("ProvisionedThroughputExceededException")

    with pytest.raises(StoreError) as exc_info:
        record_store.fetch_record("ABC123")
    assert not isinstance(exc_info.value, RecordNotFound)


def test_fetch_record_wraps_connection_error(record_store, mock_boto):
    mock_boto.get_item.side_effect = EndpointConnectionError(endpoint_url="https://dynamodb")

    with pytest.raises(StoreError):
        record_store.fetch_record("ABC123")


# ---------------------------------------------------------------------------
# batch_fetch
# ---------------------------------------------------------------------------

def test_batch_fetch_maps_missing_ids_to_none(record_store, mock_boto):
    mock_boto.batch_get_item.return_value = {
        "Responses": {"test-table": [_item("AAAAAA")]},
        "UnprocessedKeys": {},
    }

    result = record_store.batch_fetch(["AAAAAA", "BBBBBB"])

    assert result["AAAAAA"]["code"] == "AAAAAA"
    assert result["BBBBBB"] is None
    request = mock_boto.batch_get_item.call_args.kwargs["RequestItems"]
    assert request["test-table"]["Keys"] == [{"code": {"S": "AAAAAA"}}, {"code": {"S": "BBBBBB"}}]
    assert request["test-table"]["ConsistentRead"] is True


def test_batch_fetch_retries_unprocessed_keys(record_store, mock_boto):
    unprocessed = {"test-table": {"Keys": [{"code": {"S": "BBBBBB"}}], "ConsistentRead": True}}
    mock_boto.batch_get_item.side_effect = [
        {"Responses": {"test-table": [_item("AAAAAA")]}, "UnprocessedKeys": unprocessed},
        {"Responses": {"test-table": [_item("BBBBBB")]}, "UnprocessedKeys": {}},
    ]

    result = record_store.batch_fetch(["AAAAAA", "BBBBBB"])

    assert result["AAAAAA"] is not None
    assert result["BBBBBB"] is not None
    assert mock_boto.batch_get_item.call_count == 2
    assert mock_boto.batch_get_item.call_args_list[1].kwargs["RequestItems"] == unprocessed


def test_batch_fetch_gives_up_on_persistent_unprocessed_keys(record_store, mock_boto):
    unprocessed = {"test-table": {"Keys": [{"code": {"S": "AAAAAA"}}], "ConsistentRead": True}}
    mock_boto.batch_get_item.return_value = {"Responses": {}, "UnprocessedKeys": unprocessed}

    with pytest.raises(StoreError):
        record_store.batch_fetch(["AAAAAA"])


def test_batch_fetch_chunks_large_requests(record_store, mock_boto):
    mock_boto.batch_get_item.return_value = {"Responses": {"test-table": []}}
    ids = [f"{i:06d}" for i in range(150)]

    result = record_store.batch_fetch(ids)

    assert len(result) == 150
    assert mock_boto.batch_get_item.call_count == 2


def test_batch_fetch_wraps_client_error(record_store, mock_boto):
    mock_boto.batch_get_item.side_effect = _client_error("InternalServerError")

    with pytest.raises(StoreError):
        record_store.batch_fetch(["AAAAAA"])


# ---------------------------------------------------------------------------
# conditional_save
# ---------------------------------------------------------------------------

def test_conditional_save_checks_expected_version(record_store, mock_boto):
    record = {"code": "ABC123", "used": True, "used_by_user_id": "bob", "generated_by_user_id": None}

    saved = record_store.conditional_save(record, expected_version=2)

    assert saved["version"] == 3
    kwargs = mock_boto.put_item.call_args.kwargs
    assert kwargs["ConditionExpression"] == "#v = :expected"
    assert kwargs["ExpressionAttributeNames"] == {"#v": "version"}
    assert kwargs["ExpressionAttributeValues"] == {":expected": {"N": "2"}}
    assert kwargs["Item"]["version"] == {"N": "3"}
    assert kwargs["Item"]["used"] == {"BOOL": True}
    # None values are not stored
    assert "generated_by_user_id" not in kwargs["Item"]


def test_conditional_save_of_unversioned_record_requires_no_version(record_store, mock_boto):
    saved = record_store.conditional_save({"code": "ABC123"}, expected_version=0)

    assert saved["version"] == 1
    kwargs = mock_boto.put_item.call_args.kwargs
    # Conditioned on the version, not the key, so existing unversioned items can be saved
    assert kwargs["ConditionExpression"] == "attribute_not_exists(#v)"
    assert kwargs["ExpressionAttributeNames"] == {"#v": "version"}
    assert "ExpressionAttributeValues" not in kwargs
    assert kwargs["Item"]["version"] == {"N": "1"}


def test_conditional_save_raises_version_conflict(record_store, mock_boto):
    mock_boto.put_item.side_effect = _client_error("ConditionalCheckFailedException")

    with pytest.raises(VersionConflict):
        record_store.conditional_save({"code": "ABC123"}, expected_version=1)


def test_conditional_save_wraps_other_errors(record_store, mock_boto):
    mock_boto.put_item.side_effect = _client_error("InternalServerError")

    with pytest.raises(StoreError) as exc_info:
        record_store.conditional_save({"code": "ABC123"}, expected_version=1)
    assert not isinstance(exc_info.value, VersionConflict)


# ---------------------------------------------------------------------------
# batch_save
# ---------------------------------------------------------------------------

def test_batch_save_uses_one_transaction(record_store, mock_boto):
    records = [{"code": "AAAAAA", "used": False}, {"code": "BBBBBB", "used": False}]

    saved = record_store.batch_save(records)

    mock_boto.transact_write_items.assert_called_once()
    items = mock_boto.transact_write_items.call_args.kwargs["TransactItems"]
    assert len(items) == 2
    for item in items:
        put = item["Put"]
        assert put["TableName"] == "test-table"
        assert put["ConditionExpression"] == "attribute_not_exists(#k)"
        assert put["Item"]["version"] == {"N": "1"}
        assert "created_at" in put["Item"]
    assert all(record["version"] == 1 and record["created_at"] for record in saved)


def test_batch_save_empty_is_noop(record_store, mock_boto):
    assert record_store.batch_save([]) == []
    mock_boto.transact_write_items.assert_not_called()


def test_batch_save_rejects_oversized_batches(record_store, mock_boto):
    records = [{"code": f"{i:06d}"} for i in range(101)]

    with pytest.raises(ValueError):
        record_store.batch_save(records)
    mock_boto.transact_write_items.assert_not_called()


def test_batch_save_cancelled_transaction_raises_store_error(record_store, mock_boto):
    mock_boto.transact_write_items.side_effect = _client_error(
        "TransactionCanceledException",
        CancellationReasons=[{"Code": "ConditionalCheckFailed"}, {"Code": "None"}],
    )

    with pytest.raises(StoreError):
        record_store.batch_save([{"code": "AAAAAA"}, {"code": "BBBBBB"}])
