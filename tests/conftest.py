"""Pytest configuration and fixtures"""
import os
import re
from typing import Callable, Generator, List

# Settings are read at import time, so the test environment goes in first
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ["REDIS_URL"] = "memory://"
os.environ["DATABASE_AUTO_CREATE"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("SMTP_HOST", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from user_service.cache import MemoryStore, get_cache
from user_service.database import Base, get_db
from user_service.main import app
from user_service.models.user import User, UserRole
from user_service.services.email import EmailService, get_mailer
from user_service.services.user_store import UserStore
from user_service.utils.auth import hash_password

TEST_DATABASE_URL = os.environ["DATABASE_URL"]

engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TOKEN_IN_LINK = re.compile(r"token=([0-9a-f]{64})")


class RecordingEmailService(EmailService):
    """Collects outgoing mail instead of talking to an SMTP relay"""

    def __init__(self):
        super().__init__(frontend_url="http://frontend.test")
        self.outbox: List[dict] = []

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> None:
        self.outbox.append({"to": to_email, "subject": subject, "html": html_body, "text": text_body})

    def sent_to(self, email: str, subject_prefix: str) -> List[dict]:
        return [m for m in self.outbox if m["to"] == email and m["subject"].startswith(subject_prefix)]

    def last_token(self, email: str, subject_prefix: str) -> str:
        messages = self.sent_to(email, subject_prefix)
        assert messages, f"no '{subject_prefix}' email sent to {email}"
        return TOKEN_IN_LINK.search(messages[-1]["text"]).group(1)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def cache() -> MemoryStore:
    return MemoryStore()


@pytest.fixture(scope="function")
def mailer() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture(scope="function")
def client(db: Session, cache: MemoryStore, mailer: RecordingEmailService) -> Generator[TestClient, None, None]:
    """Create test client with database, cache and mailer overrides"""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def registration_data() -> dict:
    """Sample registration payload"""
    return {
        "email": "jane@example.com",
        "password": "secret123",
        "firstName": "Jane",
        "lastName": "Doe",
        "phone": "+15550100",
        "role": "customer",
    }


@pytest.fixture
def register(client: TestClient, registration_data: dict) -> Callable[..., dict]:
    """Register an account through the API and return the response body"""

    def _register(**overrides) -> dict:
        payload = {**registration_data, **overrides}
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def admin_user(db: Session) -> User:
    """Admins cannot self-register; create one directly in the store"""
    return UserStore(db).create_user(
        email="admin@example.com",
        password=hash_password("adminpass", 4),
        first_name="Ada",
        last_name="Admin",
        phone="+15550000",
        role=UserRole.ADMIN,
        is_verified=True,
    )


@pytest.fixture
def admin_headers(client: TestClient, admin_user: User) -> dict:
    """Admin authentication headers"""
    response = client.post("/api/auth/login", json={"email": admin_user.email, "password": "adminpass"})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['data']['tokens']['accessToken']}"}
