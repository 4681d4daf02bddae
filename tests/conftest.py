"""
Pytest configuration and shared fixtures.
DynamoDB and KMS are mocked in-process with moto; Stripe is patched per test.
"""
import base64
import os

# Must be set before aws_xray_sdk is imported: no X-Ray daemon in tests
os.environ.setdefault("AWS_XRAY_SDK_ENABLED", "false")

import boto3
import jwt
import pytest
from moto import mock_aws

REGION = "us-east-1"
SIGNING_KEY = "test-signing-key-0123456789abcdef-0123456789abcdef"
STRIPE_KEY = "sk_test_0123456789"

USER_ID = "user-1"
USER_EMAIL = "bidder@example.com"
AUCTION_ID = "auction-1"


@pytest.fixture(autouse=True)
def aws_env(monkeypatch):
    """Set fake AWS credentials so boto3 doesn't error in tests."""
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "test")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "test")
    monkeypatch.setenv("USERS_TABLE", "test-users")
    monkeypatch.setenv("USERS_EMAIL_INDEX", "email-index")
    monkeypatch.setenv("AUCTIONS_TABLE", "test-auctions")
    monkeypatch.setenv("PAYMENTS_TABLE", "test-payments")
    for name in ("DATABASE_ENDPOINT_URL", "JWT_SECRET_KEY", "STRIPE_SECRET_KEY"):
        monkeypatch.delenv(name, raising=False)


class MockedAws:
    """Handles onto the moto-backed resources created for one test."""

    def __init__(self):
        self.dynamodb = boto3.resource("dynamodb", region_name=REGION)
        self.kms = boto3.client("kms", region_name=REGION)
        self.key_id = self.kms.create_key(Description="ambr-config")["KeyMetadata"]["KeyId"]
        self.users = self.dynamodb.Table("test-users")
        self.auctions = self.dynamodb.Table("test-auctions")
        self.payments = self.dynamodb.Table("test-payments")

    def encrypt(self, plaintext: str) -> str:
        """Return base64 ciphertext, the way values are stored in the Lambda environment."""
        blob = self.kms.encrypt(KeyId=self.key_id, Plaintext=plaintext.encode())["CiphertextBlob"]
        return base64.b64encode(blob).decode()

    def put_user(self, user_id=USER_ID, email=USER_EMAIL, **attrs):
        item = {
            "user_id": user_id,
            "email": email,
            "payment_methods": [],
            "bid_view_permissions": [],
            **attrs,
        }
        self.users.put_item(Item=item)
        return item

    def put_auction(self, auction_id=AUCTION_ID, highest_amount=None, highest_user="user-0"):
        item = {"auction_id": auction_id}
        if highest_amount is not None:
            item["highest_bid"] = {"user_id": highest_user, "amount": highest_amount}
        self.auctions.put_item(Item=item)
        return item

    def get_user(self, user_id=USER_ID):
        return self.users.get_item(Key={"user_id": user_id}).get("Item")

    def get_auction(self, auction_id=AUCTION_ID):
        return self.auctions.get_item(Key={"auction_id": auction_id}).get("Item")

    def all_payments(self):
        return self.payments.scan()["Items"]


def _create_tables(client):
    client.create_table(
        TableName="test-users",
        AttributeDefinitions=[
            {"AttributeName": "user_id", "AttributeType": "S"},
            {"AttributeName": "email", "AttributeType": "S"},
        ],
        KeySchema=[{"AttributeName": "user_id", "KeyType": "HASH"}],
        GlobalSecondaryIndexes=[{
            "IndexName": "email-index",
            "KeySchema": [{"AttributeName": "email", "KeyType": "HASH"}],
            "Projection": {"ProjectionType": "ALL"},
        }],
        BillingMode="PAY_PER_REQUEST",
    )
    for table_name, pk in (("test-auctions", "auction_id"), ("test-payments", "payment_id")):
        client.create_table(
            TableName=table_name,
            AttributeDefinitions=[{"AttributeName": pk, "AttributeType": "S"}],
            KeySchema=[{"AttributeName": pk, "KeyType": "HASH"}],
            BillingMode="PAY_PER_REQUEST",
        )


@pytest.fixture
def aws(aws_env):
    """Create the users/auctions/payments tables and a KMS key inside moto."""
    with mock_aws():
        _create_tables(boto3.client("dynamodb", region_name=REGION))
        yield MockedAws()


@pytest.fixture
def service(aws, monkeypatch):
    """A ServiceContext wired to moto, with encrypted keys in the environment."""
    from payment_service.context import ServiceContext
    from shared.secrets import SecretsResolver

    monkeypatch.setenv("JWT_SECRET_KEY", aws.encrypt(SIGNING_KEY))
    monkeypatch.setenv("STRIPE_SECRET_KEY", aws.encrypt(STRIPE_KEY))
    return ServiceContext(
        secrets=SecretsResolver(kms_client=aws.kms),
        dynamodb=aws.dynamodb,
    )


@pytest.fixture
def make_token():
    def _make(claims=None, key=SIGNING_KEY):
        if claims is None:
            claims = {"id": USER_EMAIL}
        return jwt.encode(claims, key, algorithm="HS256")
    return _make
