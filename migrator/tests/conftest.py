"""Shared fixtures for migration tests"""

import pytest

from migrator.core.config import settings
from migrator.storage.memory import InMemoryStore


@pytest.fixture
def store():
    """Empty in-memory store"""
    return InMemoryStore()


@pytest.fixture
def config():
    """Settings without start-up delays or yield pauses"""
    return settings.model_copy(
        update={
            "FALLBACK_DELAY_SECONDS": 0.0,
            "IDLE_TIMEOUT_SECONDS": 0.2,
            "BACKGROUND_YIELD_SECONDS": 0.0,
        }
    )
