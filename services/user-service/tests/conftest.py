"""
Pytest configuration for user-service tests
"""

import os
import tempfile

import pytest

# Settings are read when app.config is first imported
os.environ.setdefault("DATA_SOURCE", "memory")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("NOTIFICATION_SERVICE_URL", "")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_DIRECTORY", tempfile.mkdtemp(prefix="user-service-logs-"))
os.environ.setdefault("LOG_CONSOLE_ENABLED", "false")
os.environ.setdefault("LOG_FLUSH_INTERVAL_MS", "0")

from fastapi.testclient import TestClient

from shared.schemas.user import UserCreateSchema, UserRole, UserStatus

PASSWORD = "Passw0rdOK"


@pytest.fixture
def client():
    """Test client with a fresh in-memory store per test"""
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(client):
    """Create a user directly through the service and log them in"""

    def _make_user(email, role=UserRole.USER, status=UserStatus.ACTIVE):
        user_service = client.app.state.user_service
        user = client.portal.call(
            user_service.create_user,
            UserCreateSchema(email=email, password=PASSWORD, role=role, status=status)
        )
        response = client.post("/auth/login", json={"email": email, "password": PASSWORD})
        assert response.status_code == 200, response.text
        token = response.json()["tokens"]["access_token"]
        return user, {"Authorization": f"Bearer {token}"}

    return _make_user
