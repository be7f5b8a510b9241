"""
Tests for the DynamoDB search-history and profile stores.
"""
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from models import HealthSearchCreate, ProfileUpdate, SeverityLevel
from storage.dynamodb import (
    USER_INDEX_NAME,
    ProfileStore,
    RecordNotFoundError,
    SearchHistoryStore,
    StorageError,
    decimal_to_native,
    native_to_dynamodb,
)


def client_error(code, operation="PutItem"):
    return ClientError({"Error": {"Code": code, "Message": "test"}}, operation)


def stored_search(search_id, created_at, **overrides):
    item = {
        "id": search_id,
        "user_id": "user-1",
        "symptoms": "headache",
        "severity_level": "low",
        "predicted_diseases": ["Migraine"],
        "recommendations": {"diet": "Water"},
        "emergency_triggered": False,
        "created_at": created_at,
    }
    item.update(overrides)
    return item


class TestConversions:

    def test_decimal_to_native(self):
        assert decimal_to_native({"a": Decimal("3"), "b": [Decimal("1.5")]}) == {"a": 3, "b": [1.5]}

    def test_native_to_dynamodb_drops_none_and_converts_floats(self):
        assert native_to_dynamodb({"height": 180.5, "gender": None, "age": 30}) == {
            "height": Decimal("180.5"),
            "age": 30,
        }


class TestSearchHistoryStore:

    def setup_method(self):
        self.table = MagicMock()
        self.store = SearchHistoryStore("health_searches", table=self.table)

    def test_create_search_writes_item(self):
        search = HealthSearchCreate(
            user_id="user-1",
            symptoms="fever",
            severity_level=SeverityLevel.HIGH,
            predicted_diseases=["Flu"],
            recommendations={"diet": "Soup"},
            emergency_triggered=True,
        )

        record = self.store.create_search(search)

        item = self.table.put_item.call_args.kwargs["Item"]
        assert item["id"] == record.id
        assert item["user_id"] == "user-1"
        assert item["severity_level"] == "high"
        assert item["emergency_triggered"] is True
        assert item["created_at"] == record.created_at
        assert "search_location" not in item

    def test_list_searches_queries_index_newest_first(self):
        self.table.query.return_value = {
            "Items": [
                stored_search("b", "2026-10-02T00:00:00+00:00"),
                stored_search("a", "2026-10-01T00:00:00+00:00"),
            ]
        }

        results = self.store.list_searches("user-1", limit=5)

        kwargs = self.table.query.call_args.kwargs
        assert kwargs["IndexName"] == USER_INDEX_NAME
        assert kwargs["ScanIndexForward"] is False
        assert kwargs["Limit"] == 5
        assert [r.id for r in results] == ["b", "a"]

    def test_list_searches_follows_pagination(self):
        self.table.query.side_effect = [
            {"Items": [stored_search("b", "2026-10-02")], "LastEvaluatedKey": {"id": "b"}},
            {"Items": [stored_search("a", "2026-10-01")]},
        ]

        results = self.store.list_searches("user-1")

        assert [r.id for r in results] == ["b", "a"]
        assert self.table.query.call_args.kwargs["ExclusiveStartKey"] == {"id": "b"}

    def test_delete_search_is_conditional_on_owner(self):
        self.store.delete_search("abc", "user-1")

        kwargs = self.table.delete_item.call_args.kwargs
        assert kwargs["Key"] == {"id": "abc"}
        assert "user_id = :uid" in kwargs["ConditionExpression"]
        assert kwargs["ExpressionAttributeValues"] == {":uid": "user-1"}

    def test_delete_missing_search(self):
        self.table.delete_item.side_effect = client_error("ConditionalCheckFailedException", "DeleteItem")

        with pytest.raises(RecordNotFoundError):
            self.store.delete_search("abc", "user-2")

    def test_other_client_errors_become_storage_errors(self):
        self.table.query.side_effect = client_error("ProvisionedThroughputExceededException", "Query")

        with pytest.raises(StorageError) as exc_info:
            self.store.list_searches("user-1")

        assert not isinstance(exc_info.value, RecordNotFoundError)


class TestProfileStore:

    def setup_method(self):
        self.table = MagicMock()
        self.store = ProfileStore("profiles", table=self.table)

    def test_get_profile(self):
        self.table.get_item.return_value = {
            "Item": {"id": "user-1", "full_name": "Asha", "age": Decimal("34"), "height": Decimal("162.5")}
        }

        profile = self.store.get_profile("user-1")

        assert profile.full_name == "Asha"
        assert profile.age == 34
        assert profile.height == 162.5
        assert profile.weight is None

    def test_get_missing_profile(self):
        self.table.get_item.return_value = {}

        with pytest.raises(RecordNotFoundError):
            self.store.get_profile("user-1")

    def test_upsert_replaces_whole_profile(self):
        profile = self.store.upsert_profile("user-1", ProfileUpdate(full_name="Asha", weight=61.2))

        item = self.table.put_item.call_args.kwargs["Item"]
        assert item["id"] == "user-1"
        assert item["weight"] == Decimal("61.2")
        assert "age" not in item
        assert profile.updated_at == item["updated_at"]


@patch("storage.dynamodb.boto3.resource")
def test_table_is_created_lazily(mock_resource):
    store = ProfileStore("profiles", region="eu-west-1")
    mock_resource.assert_not_called()

    store.table

    mock_resource.assert_called_once_with("dynamodb", region_name="eu-west-1")
    mock_resource.return_value.Table.assert_called_once_with("profiles")
