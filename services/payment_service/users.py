"""
User Repository
===============
All DynamoDB access to the users table.

Table design:
  PK: user_id
  GSI email-index: email → the token's identity claim is an email address

payment_methods and bid_view_permissions are embedded lists; the user record
owns them.
"""
from __future__ import annotations

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError
from pydantic import ValidationError

from shared.dynamodb import decimal_to_python, is_conditional_check_failure
from shared.logger import get_logger
from shared.schemas import BidViewPermission, SavedPaymentMethod, User

from .errors import UserLookupError, UserNotFoundError

logger = get_logger(__name__)


class UserNotUpdatedError(Exception):
    """The conditional write found no user record with this id."""


class UserRepository:
    def __init__(self, table, email_index: str = "email-index"):
        self._table = table
        self._email_index = email_index

    def find_by_email(self, email: str) -> User:
        try:
            resp = self._table.query(
                IndexName=self._email_index,
                KeyConditionExpression=Key("email").eq(email),
                Limit=1,
            )
        except ClientError as e:
            logger.error("User lookup failed", extra={"email": email, "error": str(e)})
            raise UserLookupError() from e

        items = resp.get("Items", [])
        if not items:
            logger.info("No user found for token identity", extra={"email": email})
            raise UserNotFoundError()
        try:
            return User.model_validate(decimal_to_python(items[0]))
        except ValidationError as e:
            logger.error("Stored user record is malformed", extra={"email": email, "error": str(e)})
            raise UserLookupError() from e

    def append_payment_method(self, user_id: str, method: SavedPaymentMethod) -> None:
        """
        Atomically append to payment_methods. Raises UserNotUpdatedError if the
        user no longer exists; other ClientErrors propagate.
        """
        try:
            self._table.update_item(
                Key={"user_id": user_id},
                UpdateExpression="SET payment_methods = list_append(if_not_exists(payment_methods, :empty), :new)",
                ConditionExpression="attribute_exists(user_id)",
                ExpressionAttributeValues={
                    ":empty": [],
                    ":new": [method.model_dump()],
                },
            )
        except ClientError as e:
            if is_conditional_check_failure(e):
                raise UserNotUpdatedError(user_id) from e
            raise

    def replace_bid_view_permissions(self, user_id: str, permissions: list[BidViewPermission]) -> None:
        """Overwrite the whole permission list. Same error contract as append_payment_method."""
        try:
            self._table.update_item(
                Key={"user_id": user_id},
                UpdateExpression="SET bid_view_permissions = :p",
                ConditionExpression="attribute_exists(user_id)",
                ExpressionAttributeValues={":p": [p.to_item() for p in permissions]},
            )
        except ClientError as e:
            if is_conditional_check_failure(e):
                raise UserNotUpdatedError(user_id) from e
            raise
