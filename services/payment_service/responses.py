"""API Gateway proxy responses."""
from __future__ import annotations

import json
from typing import Any


def build_response(status_code: int, body: str | dict[str, Any] | list[Any]) -> dict:
    """
    Plain strings go out verbatim (the client shows them as-is); anything
    else is JSON-encoded.
    """
    return {
        "isBase64Encoded": False,
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": body if isinstance(body, str) else json.dumps(body, default=str),
    }
