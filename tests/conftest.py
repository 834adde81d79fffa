"""
Pytest configuration and shared fixtures for tests.

WHAT: Centralized test configuration with markers and shared fixtures
WHY: Enable test organization, filtering, and isolated test state
HOW: Point settings at a test database before import, define markers and fixtures
"""

import os

# Must happen before llm_playground.core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite:///./data/test_playground.db")
os.environ.setdefault("LOG_FILE", "./data/logs/test.log")

import pytest

from llm_playground.core.database import Base, engine, init_db
from llm_playground.core import models  # noqa: F401
from llm_playground.api.v1 import dependencies
from llm_playground.llm.types import Model


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (isolated component tests)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (multiple components)"
    )


@pytest.fixture(autouse=True)
def reset_playground_singleton():
    """
    Reset the playground singleton around each test.

    WHAT: Drop the process-wide PlaygroundService
    WHY: Its tasks are bound to the event loop of the test that created it
    HOW: Clear the module global before and after each test
    """
    dependencies._playground = None
    yield
    dependencies._playground = None


@pytest.fixture
def fresh_db():
    """
    Recreate all tables for a test.

    WHAT: Empty configuration store
    WHY: Prevent test pollution between store/API tests
    HOW: drop_all then init_db
    """
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def priced_model():
    """Model priced $1/M input, $2/M output."""
    return Model(id="m1", name="gpt-4o-mini", input_token_price=1.0, output_token_price=2.0)


@pytest.fixture
def unpriced_model():
    """Model without price data."""
    return Model(id="m2", name="deepseek-chat")
