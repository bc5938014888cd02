"""
Pytest configuration and shared fixtures for the survey backend tests.

This module provides:
- Database fixtures (a temporary SQLite file per test, async + sync engines)
- A fake language-model client that records every call
- An app/TestClient pair wired to those fakes
"""

import copy
from typing import Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.pool import NullPool

from survey_python_backend.backend import create_app
from survey_python_backend.db_session import build_engine
from survey_python_backend.errors import GatewayError
from survey_python_backend.services.conversation_store import InMemoryConversationStore


# ============================================================================
# Test Database Configuration
# ============================================================================

@pytest.fixture
def database_path(tmp_path):
    return tmp_path / "survey_test.db"


@pytest.fixture
def test_engine(database_path):
    """Async engine for the app. NullPool keeps connections off the event loop between requests."""
    return build_engine(f"sqlite+aiosqlite:///{database_path}", poolclass=NullPool)


@pytest.fixture
def sync_engine(database_path):
    """Synchronous engine for inspecting what the app wrote."""
    engine = create_engine(f"sqlite:///{database_path}")
    yield engine
    engine.dispose()


@pytest.fixture
def fetch_rows(sync_engine):
    """Return all rows of a table as dicts, ordered by insertion."""
    def _fetch(table: str, order_by: str = "rowid") -> List[Dict]:
        with sync_engine.connect() as conn:
            result = conn.execute(text(f"SELECT * FROM {table} ORDER BY {order_by}"))
            return [dict(row._mapping) for row in result]
    return _fetch


# ============================================================================
# Fake Language Model
# ============================================================================

class FakeLLMClient:
    """Stands in for LocalLLMClient; replies with canned text or fails like the gateway."""

    def __init__(self, replies: Optional[List[str]] = None, fail: bool = False):
        self.replies = list(replies or ["Certainly..."])
        self.fail = fail
        self.calls: List[List[Dict[str, str]]] = []

    async def chat(self, messages, model=None):
        self.calls.append(copy.deepcopy(messages))
        if self.fail:
            try:
                raise httpx.ConnectError("connection refused by internal-llm-host:11434")
            except httpx.ConnectError as exc:
                raise GatewayError("Chat failed") from exc
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def conversation_store():
    return InMemoryConversationStore()


# ============================================================================
# App / Client
# ============================================================================

@pytest.fixture
def static_dir(tmp_path):
    directory = tmp_path / "public"
    directory.mkdir()
    (directory / "index.html").write_text("<h1>Drafting study</h1>")
    (directory / "survey.js").write_text("console.log('survey');")
    return directory


@pytest.fixture
def app(test_engine, conversation_store, fake_llm, static_dir):
    return create_app(
        engine=test_engine,
        conversation_store=conversation_store,
        llm_client=fake_llm,
        static_dir=static_dir,
    )


@pytest.fixture
def client(app):
    # Entering the context runs the lifespan, which creates the tables.
    with TestClient(app) as test_client:
        yield test_client
