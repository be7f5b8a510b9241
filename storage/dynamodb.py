"""
DynamoDB-backed stores for health-search history and user profiles.
"""

import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from logging_config import get_logger, log_service_call
from models import HealthSearch, HealthSearchCreate, Profile, ProfileUpdate

logger = get_logger(__name__)

USER_INDEX_NAME = "user_id-created_at-index"


class StorageError(Exception):
    """A DynamoDB call failed."""


class RecordNotFoundError(StorageError):
    """The requested item does not exist (or belongs to another user)."""


def decimal_to_native(obj):
    """Convert DynamoDB Decimals back to int or float."""
    if isinstance(obj, list):
        return [decimal_to_native(i) for i in obj]
    elif isinstance(obj, dict):
        return {k: decimal_to_native(v) for k, v in obj.items()}
    elif isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        else:
            return float(obj)
    else:
        return obj


def native_to_dynamodb(obj):
    """DynamoDB rejects floats; store them as Decimal and drop None attributes."""
    if isinstance(obj, list):
        return [native_to_dynamodb(i) for i in obj]
    elif isinstance(obj, dict):
        return {k: native_to_dynamodb(v) for k, v in obj.items() if v is not None}
    elif isinstance(obj, float):
        return Decimal(str(obj))
    else:
        return obj


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class _DynamoTable:
    """Shared plumbing: lazy table handle plus timed, logged calls."""

    def __init__(self, table_name: str, region: str = "us-east-1", table=None):
        self.table_name = table_name
        self.region = region
        self._table = table

    @property
    def table(self):
        if self._table is None:
            self._table = boto3.resource("dynamodb", region_name=self.region).Table(self.table_name)
        return self._table

    def _call(self, operation: str, **kwargs) -> Dict[str, Any]:
        start_time = time.time()
        try:
            response = getattr(self.table, operation)(**kwargs)
        except ClientError as e:
            duration_ms = (time.time() - start_time) * 1000
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ConditionalCheckFailedException":
                raise RecordNotFoundError(f"Item not found in {self.table_name}") from e
            log_service_call(logger, "dynamodb", operation, False, duration_ms=duration_ms,
                             error=e, extra={"table": self.table_name, "error_code": error_code})
            raise StorageError(f"DynamoDB {operation} failed ({error_code})") from e
        except BotoCoreError as e:
            duration_ms = (time.time() - start_time) * 1000
            log_service_call(logger, "dynamodb", operation, False, duration_ms=duration_ms,
                             error=e, extra={"table": self.table_name})
            raise StorageError(f"AWS SDK error: {e}") from e

        duration_ms = (time.time() - start_time) * 1000
        log_service_call(logger, "dynamodb", operation, True, duration_ms=duration_ms,
                         extra={"table": self.table_name})
        return response


class SearchHistoryStore(_DynamoTable):
    """
    One item per completed analysis.

    Schema:
    - Partition Key: id (S)
    - GSI user_id-created_at-index: user_id (S) / created_at (S)
    """

    def create_search(self, search: HealthSearchCreate) -> HealthSearch:
        record = HealthSearch(
            id=str(uuid.uuid4()),
            created_at=utc_now_iso(),
            **search.model_dump(),
        )
        self._call("put_item", Item=native_to_dynamodb(record.model_dump(mode="json")))
        return record

    def list_searches(self, user_id: str, limit: Optional[int] = None) -> List[HealthSearch]:
        """The user's searches, newest first."""
        query = {
            "IndexName": USER_INDEX_NAME,
            "KeyConditionExpression": Key("user_id").eq(user_id),
            "ScanIndexForward": False,
        }
        if limit:
            query["Limit"] = limit

        items = []
        while True:
            response = self._call("query", **query)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key or (limit and len(items) >= limit):
                break
            query["ExclusiveStartKey"] = last_key

        if limit:
            items = items[:limit]
        return [HealthSearch(**decimal_to_native(item)) for item in items]

    def delete_search(self, search_id: str, user_id: str) -> None:
        """
        Raises:
            RecordNotFoundError: No such search for this user
        """
        self._call(
            "delete_item",
            Key={"id": search_id},
            ConditionExpression="attribute_exists(id) AND user_id = :uid",
            ExpressionAttributeValues={":uid": user_id},
        )


class ProfileStore(_DynamoTable):
    """
    One item per user, keyed by the user id.

    Schema:
    - Partition Key: id (S)
    """

    def get_profile(self, user_id: str) -> Profile:
        response = self._call("get_item", Key={"id": user_id})
        item = response.get("Item")
        if not item:
            raise RecordNotFoundError(f"Profile {user_id} not found")
        return Profile(**decimal_to_native(item))

    def upsert_profile(self, user_id: str, update: ProfileUpdate) -> Profile:
        """Replace the whole profile; fields left out are cleared."""
        profile = Profile(id=user_id, updated_at=utc_now_iso(), **update.model_dump())
        self._call("put_item", Item=native_to_dynamodb(profile.model_dump(mode="json")))
        return profile
