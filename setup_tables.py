#!/usr/bin/env python3
"""
DynamoDB Table Setup Script

Creates the tables used by the Medi Portal health analysis API:
- health_searches: one item per completed analysis, indexed by user and time
- profiles: one item per user

Both tables use PAY_PER_REQUEST billing mode.
"""

import argparse
import os
import sys
from typing import Any, Dict, List

import boto3
from botocore.exceptions import ClientError

from logging_config import setup_logging, get_logger, log_error
from storage.dynamodb import USER_INDEX_NAME

logger = get_logger(__name__)


def get_dynamodb_client(region: str = None):
    """
    Get DynamoDB client for the specified region.

    Args:
        region: AWS region (defaults to AWS_REGION env var or us-east-1)
    """
    if region is None:
        region = os.getenv("AWS_REGION", "us-east-1")

    return boto3.client("dynamodb", region_name=region)


def _tags() -> List[Dict[str, str]]:
    return [
        {"Key": "Application", "Value": "MediPortalHealthAnalysis"},
        {"Key": "Environment", "Value": os.getenv("ENVIRONMENT", "development")},
    ]


def table_exists(client, table_name: str) -> bool:
    try:
        client.describe_table(TableName=table_name)
        return True
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceNotFoundException":
            return False
        raise


def create_health_searches_table(client, table_name: str = "health_searches") -> Dict[str, Any]:
    """
    Create the health_searches table.

    Schema:
    - Partition Key: id (S)
    - GSI user_id-created_at-index: user_id (S) HASH, created_at (S) RANGE,
      so a user's history can be listed newest first
    """
    logger.info(f"Creating table: {table_name}")

    response = client.create_table(
        TableName=table_name,
        KeySchema=[
            {"AttributeName": "id", "KeyType": "HASH"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "id", "AttributeType": "S"},
            {"AttributeName": "user_id", "AttributeType": "S"},
            {"AttributeName": "created_at", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": USER_INDEX_NAME,
                "KeySchema": [
                    {"AttributeName": "user_id", "KeyType": "HASH"},
                    {"AttributeName": "created_at", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
        Tags=_tags(),
    )

    logger.info(f"Table {table_name} created successfully")
    return response


def create_profiles_table(client, table_name: str = "profiles") -> Dict[str, Any]:
    """
    Create the profiles table.

    Schema:
    - Partition Key: id (S) - the user id
    """
    logger.info(f"Creating table: {table_name}")

    response = client.create_table(
        TableName=table_name,
        KeySchema=[
            {"AttributeName": "id", "KeyType": "HASH"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "id", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
        Tags=_tags(),
    )

    logger.info(f"Table {table_name} created successfully")
    return response


def wait_for_table_active(client, table_name: str, max_attempts: int = 30):
    logger.info(f"Waiting for {table_name} to become active...")
    waiter = client.get_waiter("table_exists")
    waiter.wait(
        TableName=table_name,
        WaiterConfig={"Delay": 2, "MaxAttempts": max_attempts},
    )
    logger.info(f"Table {table_name} is active")


def required_tables() -> Dict[str, Any]:
    """Table name -> creator, honoring the *_TABLE_NAME overrides."""
    return {
        os.getenv("SEARCHES_TABLE_NAME", "health_searches"): create_health_searches_table,
        os.getenv("PROFILES_TABLE_NAME", "profiles"): create_profiles_table,
    }


def validate_required_tables(client, table_names: List[str]) -> Dict[str, bool]:
    """
    Returns:
        Dictionary mapping table names to existence status
    """
    results = {}
    for table_name in table_names:
        results[table_name] = table_exists(client, table_name)
        status = "EXISTS" if results[table_name] else "MISSING"
        logger.info(f"{status}: {table_name}")
    return results


def setup_all_tables(region: str = None, skip_existing: bool = True) -> Dict[str, List[str]]:
    """
    Create all required DynamoDB tables.

    Args:
        region: AWS region (defaults to AWS_REGION env var or us-east-1)
        skip_existing: If True, skip tables that already exist

    Returns:
        {"created": [...], "skipped": [...]}
    """
    client = get_dynamodb_client(region)

    created_tables = []
    skipped_tables = []

    for table_name, create_func in required_tables().items():
        if skip_existing and table_exists(client, table_name):
            logger.info(f"Table {table_name} already exists, skipping")
            skipped_tables.append(table_name)
            continue

        try:
            create_func(client, table_name)
            created_tables.append(table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceInUseException":
                logger.info(f"Table {table_name} already exists")
                skipped_tables.append(table_name)
            else:
                log_error(logger, e, f"Error creating table {table_name}")
                raise

    for table_name in created_tables:
        wait_for_table_active(client, table_name)

    logger.info(
        f"Setup complete: created={created_tables}, skipped={skipped_tables}"
    )
    return {"created": created_tables, "skipped": skipped_tables}


def main(argv: List[str] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Create DynamoDB tables for the Medi Portal health analysis API"
    )
    parser.add_argument(
        "--region",
        help="AWS region (default: AWS_REGION env var or us-east-1)",
        default=None,
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Attempt to create tables even if they exist (will fail if they exist)",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Only validate that required tables exist, do not create",
    )
    args = parser.parse_args(argv)

    setup_logging()

    try:
        if args.validate:
            client = get_dynamodb_client(args.region)
            results = validate_required_tables(client, list(required_tables()))
            return 0 if all(results.values()) else 1

        setup_all_tables(region=args.region, skip_existing=not args.force)
        return 0
    except ClientError as e:
        log_error(logger, e, "DynamoDB table setup failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
