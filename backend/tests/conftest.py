"""
Prompt Builder - Test Configuration and Fixtures

This module provides pytest fixtures for testing the Prompt Builder API.
All AI calls go through the offline mock provider.
"""
import os
import sys
import uuid
import pytest
from typing import Generator

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment
os.environ['TESTING'] = 'true'
os.environ['DATABASE_URL'] = 'sqlite:///./test_prompt_builder.db'
os.environ.setdefault('SECRET_KEY', 'test-secret-key-for-pytest-do-not-use-in-prod')
os.environ['SKIP_AI_REQUEST'] = 'true'
os.environ['MOCK_MIN_LATENCY_MS'] = '0'
os.environ['MOCK_MAX_LATENCY_MS'] = '0'
os.environ['LLM_INITIAL_HEALTH_CHECK'] = 'false'
os.environ.pop('OPENAI_API_KEY', None)
os.environ.pop('ANTHROPIC_API_KEY', None)

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient


# ==============================================================================
# Database Fixtures
# ==============================================================================

TEST_DATABASE_URL = "sqlite:///./test_prompt_builder.db"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="session")
def engine():
    """Create a test database engine."""
    from database import Base
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    # Cleanup after all tests
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def db_session(engine) -> Generator:
    """Create a new database session for each test."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def override_get_db():
    """Dependency override for FastAPI's get_db."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="module")
def test_client(engine) -> Generator:
    """Create a test client for the FastAPI application with database override."""
    from main import app, get_db
    from database import Base

    Base.metadata.create_all(bind=test_engine)
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ==============================================================================
# LLM Fixtures
# ==============================================================================

@pytest.fixture(autouse=True)
def fresh_llm_manager():
    """Rebuild the LLM manager singleton for every test so stats do not leak."""
    from llm_factory import reset_llm_manager
    reset_llm_manager()
    yield
    reset_llm_manager()


# ==============================================================================
# Auth Fixtures
# ==============================================================================

@pytest.fixture
def make_user(engine):
    """Factory that inserts a user with the given tier and returns its email."""
    from database import User

    def _make(tier: str = "free") -> str:
        email = f"user-{uuid.uuid4().hex[:8]}@example.com"
        session = TestingSessionLocal()
        try:
            session.add(User(email=email, subscription_tier=tier, is_active=True))
            session.commit()
        finally:
            session.close()
        return email

    return _make


@pytest.fixture
def headers_for():
    """Factory returning Authorization headers for an email."""
    from auth import auth_manager

    def _headers(email: str) -> dict:
        token = auth_manager.create_access_token({"sub": email})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def auth_headers(headers_for):
    """Headers for a brand-new free-tier user (created on first request)."""
    return headers_for(f"user-{uuid.uuid4().hex[:8]}@example.com")


@pytest.fixture
def pro_headers(make_user, headers_for):
    return headers_for(make_user("pro"))


# ==============================================================================
# Mock Fixtures
# ==============================================================================

@pytest.fixture
def mock_openai_response():
    """Mock OpenAI chat completion payload (model_dump() shape)."""
    return {
        "id": "chatcmpl-test",
        "model": "gpt-4o-mini",
        "choices": [{
            "index": 0,
            "message": {
                "role": "assistant",
                "content": "  Write a haiku about autumn leaves.  "
            },
            "finish_reason": "stop",
        }],
        "usage": {
            "prompt_tokens": 100,
            "completion_tokens": 50,
            "total_tokens": 150
        }
    }


@pytest.fixture
def mock_anthropic_response():
    """Mock Anthropic messages payload (model_dump() shape)."""
    return {
        "id": "msg_test",
        "model": "claude-3-haiku-20240307",
        "content": [{"type": "text", "text": " Hello there. "}],
        "usage": {"input_tokens": 200, "output_tokens": 80},
    }


# ==============================================================================
# Utility Functions
# ==============================================================================

def assert_valid_response(response, expected_status=200):
    """Assert that an API response is valid."""
    assert response.status_code == expected_status, f"Expected {expected_status}, got {response.status_code}: {response.text}"
    return response.json()
