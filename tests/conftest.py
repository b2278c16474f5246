import json
import pytest
import httpx
from decimal import Decimal
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient
import os

# Add project root to sys.path to allow imports from preorder
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))


from preorder.main import app
from preorder.core.config import Settings, get_settings
from preorder.core.dependencies import get_sms_client
from preorder.core.security import create_access_token
from preorder.core.sms import NotificationDispatcher, TextLkClient
from preorder.db.base_class import Base
from preorder.db.session import build_engine, get_db

# Use a separate SQLite database for testing
TEST_SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = build_engine(TEST_SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base.metadata.create_all(bind=engine)

TEST_SETTINGS = Settings(
    DATABASE_URL=TEST_SQLALCHEMY_DATABASE_URL,
    SECRET_KEY="test-jwt-secret",
    ADMIN_USERNAME="admin",
    ADMIN_PASSWORD="correct-horse-battery",
    BASE_URL="http://testserver",
    PAYHERE_MERCHANT_ID="1211149",
    PAYHERE_MERCHANT_SECRET="test-merchant-secret",
    CURRENCY="LKR",
    PRODUCT_PRICE=Decimal("2500"),
    DELIVERY_FEE=Decimal("350"),
    TEXTLK_API_TOKEN="test-sms-token",
    TEXTLK_API_BASE="https://sms.test/api/v3",
    ADMIN_PHONE="0719999999",
    SMS_TIMEOUT_SECONDS=2.0,
)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS


class SmsOutbox:
    """
    Stands in for the Text.lk API through httpx.MockTransport and records
    every message posted to it.
    """

    def __init__(self):
        self.messages = []
        self.fail_with = None  # None, "error" (HTTP 500) or "connect"

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail_with == "connect":
            raise httpx.ConnectError("connection refused", request=request)
        body = json.loads(request.content)
        self.messages.append(body)
        if self.fail_with == "error":
            return httpx.Response(500, json={"status": "error", "message": "provider down"})
        return httpx.Response(200, json={"status": "success", "data": {"uid": f"msg-{len(self.messages)}"}})

    def recipients(self):
        return [m["recipient"] for m in self.messages]

    def client(self) -> TextLkClient:
        return TextLkClient.from_settings(TEST_SETTINGS, transport=httpx.MockTransport(self.handler))


@pytest.fixture(scope="session")
def test_engine():
    Base.metadata.create_all(bind=engine)
    yield engine

@pytest.fixture(scope="function")
def db_session(test_engine):
    """
    Provides a database session for each test function, on freshly
    recreated tables.
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture(scope="function")
def settings() -> Settings:
    return TEST_SETTINGS

@pytest.fixture(scope="function")
def sms_outbox():
    outbox = SmsOutbox()
    app.dependency_overrides[get_sms_client] = outbox.client
    yield outbox
    app.dependency_overrides.pop(get_sms_client, None)

@pytest.fixture(scope="function")
def dispatcher(sms_outbox: SmsOutbox) -> NotificationDispatcher:
    return NotificationDispatcher(sms_outbox.client(), TEST_SETTINGS)

@pytest.fixture(scope="function")
def client(db_session, sms_outbox):
    # db_session resets the tables; sms_outbox keeps SMS off the network
    with TestClient(app) as c:
        yield c

@pytest.fixture(scope="function")
def admin_token_headers(client: TestClient):
    login_data = {"username": TEST_SETTINGS.ADMIN_USERNAME, "password": TEST_SETTINGS.ADMIN_PASSWORD}
    response = client.post("/api/v1/auth/login", data=login_data)
    if response.status_code != 200:
        raise Exception(f"Failed to log in admin during fixture setup. Status: {response.status_code}, Detail: {response.text}")
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture(scope="function")
def non_admin_token_headers():
    token = create_access_token(data={"sub": "not-the-admin"}, settings=TEST_SETTINGS)
    return {"Authorization": f"Bearer {token}"}
