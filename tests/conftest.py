"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any, Callable
from unittest.mock import MagicMock, patch
from uuid import uuid4

import httpx
import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_paystack_secret")

TEST_PAYSTACK_SECRET = "sk_test_paystack_secret"
TEST_BASE_URL = "https://api.paystack.co"


class FakeResponse:
    """Stand-in for a postgrest APIResponse."""

    def __init__(self, data: list[dict[str, Any]] | dict[str, Any]) -> None:
        self.data = data


class FakeQuery:
    """Minimal postgrest query builder over in-memory rows."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.filters: list[tuple[str, Any]] = []
        self.single = False

    def insert(self, payload: Any) -> "FakeQuery":
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload: dict[str, Any]) -> "FakeQuery":
        self.op, self.payload = "update", payload
        return self

    def select(self, *_: Any) -> "FakeQuery":
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((column, value))
        return self

    def limit(self, _: int) -> "FakeQuery":
        return self

    def maybe_single(self) -> "FakeQuery":
        self.single = True
        return self

    def execute(self) -> FakeResponse | None:
        if (self.table, self.op) in self.db.failures:
            raise RuntimeError(f"{self.table} {self.op} failed")

        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for payload in payloads:
                row = dict(payload)
                row.setdefault("id", str(uuid4()))
                rows.append(row)
                inserted.append(dict(row))
            self.db.writes.append((self.table, "insert", self.payload))
            return FakeResponse(inserted)

        matched = [
            row for row in rows
            if all(str(row.get(column)) == str(value) for column, value in self.filters)
        ]

        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            self.db.writes.append((self.table, "update", dict(self.payload), list(self.filters)))

        if self.single:
            # postgrest returns no response at all when maybe_single finds nothing
            return FakeResponse(dict(matched[0])) if matched else None

        return FakeResponse([dict(row) for row in matched])


class FakeSupabase:
    """In-memory Supabase client covering the calls the order service makes."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.failures: set[tuple[str, str]] = set()
        self.writes: list[tuple] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def seed(self, table: str, *rows: dict[str, Any]) -> None:
        self.tables.setdefault(table, []).extend(dict(row) for row in rows)

    def row(self, table: str, row_id: str) -> dict[str, Any]:
        return next(r for r in self.tables.get(table, []) if r["id"] == row_id)

    def updates(self) -> list[tuple]:
        return [w for w in self.writes if w[1] == "update"]


class FakePaystack:
    """Scripted Paystack API served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.init_response: tuple[int, dict[str, Any]] = (
            200,
            {
                "status": True,
                "message": "Authorization URL created",
                "data": {
                    "authorization_url": "https://checkout.paystack.com/abc123",
                    "access_code": "abc123",
                    "reference": "ref_abc123",
                },
            },
        )
        self.verify_response: tuple[int, dict[str, Any]] = (
            200,
            {
                "status": True,
                "message": "Verification successful",
                "data": {
                    "status": "success",
                    "reference": "ref_abc123",
                    "channel": "bank_transfer",
                    "amount": 1050000,
                    "currency": "NGN",
                    "metadata": {},
                },
            },
        )
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if request.url.path == "/transaction/initialize":
            status_code, body = self.init_response
        elif request.url.path.startswith("/transaction/verify/"):
            status_code, body = self.verify_response
        else:
            status_code, body = 404, {"status": False, "message": "Not found"}
        return httpx.Response(status_code, json=body)

    def calls_to(self, path_prefix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith(path_prefix)]


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("src.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def fake_db() -> FakeSupabase:
    """In-memory orders database."""
    return FakeSupabase()


@pytest.fixture
def fake_paystack() -> FakePaystack:
    """Scripted Paystack API."""
    return FakePaystack()


@pytest.fixture
def paystack_client(fake_paystack: FakePaystack) -> Any:
    """PaystackClient routed to the scripted API."""
    from src.core.paystack import PaystackClient

    return PaystackClient(
        secret_key=TEST_PAYSTACK_SECRET,
        base_url=TEST_BASE_URL,
        transport=httpx.MockTransport(fake_paystack.handler),
    )


@pytest.fixture
def sign_payload() -> Callable[[bytes], str]:
    """Sign a raw body the way Paystack does."""
    from src.core.paystack import compute_signature

    return lambda body: compute_signature(body, TEST_PAYSTACK_SECRET)


@pytest.fixture
def client(
    mock_supabase_client: MagicMock,
    fake_db: FakeSupabase,
    paystack_client: Any,
) -> Generator[TestClient, None, None]:
    """Provide a test client with Paystack and the orders table faked.

    Args:
        mock_supabase_client: Mocked Supabase client fixture (health checks).
        fake_db: In-memory orders database used by the order service.
        paystack_client: Paystack client on a mock transport.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.api.deps import get_order_service
    from src.core.paystack import get_paystack_client
    from src.main import app
    from src.services.order_service import OrderService

    app.dependency_overrides[get_paystack_client] = lambda: paystack_client
    app.dependency_overrides[get_order_service] = lambda: OrderService(client=fake_db)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
