import os
import tempfile
from datetime import datetime, timedelta

# Point the app at a throwaway database before anything imports db.py
_db_dir = tempfile.mkdtemp(prefix="docuchat-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

import models
from auth import create_access_token
from completion import get_completion_client
from db import Base, SessionLocal, engine
from main import app
from rate_limiter import RateLimiter


class FakeCompletionClient:
    """Stands in for the AI gateway; records every call."""

    def __init__(self, reply="Hello from the assistant."):
        self.reply = reply
        self.error = None
        self.calls = []

    def complete(self, messages, options=None):
        self.calls.append((messages, options))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def fake_llm():
    fake = FakeCompletionClient()
    app.dependency_overrides[get_completion_client] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_completion_client, None)


@pytest.fixture
def client(fake_llm):
    app.state.rate_limiter = RateLimiter()
    with TestClient(app) as c:
        yield c


def make_user(db, email):
    # Password hashing is not exercised here; tokens are minted directly
    user = models.User(email=email, hashed_password="not-a-real-hash")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    token = create_access_token({"user_id": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(db):
    return make_user(db, "alice@example.com")


@pytest.fixture
def other_user(db):
    return make_user(db, "bob@example.com")


@pytest.fixture
def headers(user):
    return auth_headers(user)


def make_document(db, user, content="Quarterly revenue grew by 12 percent.", file_type="text/plain", **fields):
    doc = models.Document(
        user_id=user.id,
        title="report",
        file_name="report.txt",
        file_type=file_type,
        file_size=len(content),
        content=content,
        status=fields.pop("status", "processing"),
        **fields,
    )
    db.add(doc)
    db.commit()
    db.refresh(doc)
    return doc


def make_conversation(db, user, n_messages=0, **fields):
    conv = models.Conversation(user_id=user.id, title="New Chat", **fields)
    db.add(conv)
    db.commit()
    start = datetime(2025, 1, 1, 12, 0, 0)
    for i in range(n_messages):
        db.add(models.Message(
            conversation_id=conv.id,
            role="user" if i % 2 == 0 else "assistant",
            content=f"message {i + 1}",
            created_at=start + timedelta(minutes=i),
        ))
    db.commit()
    db.refresh(conv)
    return conv
