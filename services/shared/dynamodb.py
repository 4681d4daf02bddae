"""
DynamoDB Helpers
================
Thin wrappers around boto3 shared by the repositories:
- Table handles bound to an injectable resource (moto in tests, an optional
  private endpoint in production)
- Recognising failed ConditionExpressions, which the callers use as their
  atomic "only if" guard
- Converting DynamoDB's Decimals back to plain Python numbers
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any

import boto3
from botocore.exceptions import ClientError


def get_resource(endpoint_url: str | None = None):
    if endpoint_url:
        return boto3.resource("dynamodb", endpoint_url=endpoint_url)
    return boto3.resource("dynamodb")


def get_table(table_name: str, resource=None):
    dynamodb = resource or get_resource()
    return dynamodb.Table(table_name)


def is_conditional_check_failure(error: ClientError) -> bool:
    """True when a write was rejected by its ConditionExpression."""
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def decimal_to_python(obj: Any) -> Any:
    """
    DynamoDB returns Decimals for all numbers.
    Recursively convert to int or float for JSON serialization.
    """
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    if isinstance(obj, dict):
        return {k: decimal_to_python(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [decimal_to_python(v) for v in obj]
    return obj
