"""
Shared pytest fixtures and configuration for docspine tests.

This module provides:
- Settings cache and logging context cleanup for test isolation
- Store factories for the blog scenarios (posts, users, tags, link rows)
- A fixed timestamp shared by every seeded record

Usage:
    Fixtures are auto-discovered by pytest:

    def test_something(blog_store, now):
        ...
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import pytest
import structlog

# Ensure docspine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from docspine.adapters import MemoryAdapter, MemoryStore
from docspine.core.settings import clear_settings_cache

NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if "scenarios" in str(test_path):
            item.add_marker(pytest.mark.integration)
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_fixture() -> Generator[None, None, None]:
    """Reset cached settings and bound log context around each test."""
    clear_settings_cache()
    structlog.contextvars.clear_contextvars()
    yield
    clear_settings_cache()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def now() -> datetime:
    return NOW


def users() -> list[dict]:
    return [
        {"id": 1, "username": "jdoe", "name": {"first": "John", "last": "Doe"}, "dateCreated": NOW},
        {"id": 2, "username": "twaits", "name": {"first": "Tom", "last": "Waits"}, "dateCreated": NOW},
    ]


def posts() -> list[dict]:
    return [
        {"id": 1, "title": "Post 1", "content": "This is the first post", "dateCreated": NOW, "author": 1},
        {"id": 2, "title": "Post 2", "content": "This is the second post", "dateCreated": NOW, "author": 1},
    ]


def tags() -> list[dict]:
    return [
        {"id": 1, "title": "Sevr", "dateCreated": NOW},
        {"id": 2, "title": "MongoDB", "dateCreated": NOW},
        {"id": 3, "title": "React", "dateCreated": NOW},
    ]


@pytest.fixture
def blog_store() -> MemoryStore:
    """Posts and users; both posts written by user 1."""
    return MemoryStore({"posts": posts(), "users": users()})


@pytest.fixture
def tagged_store() -> MemoryStore:
    """
    Posts, tags and post/tag link rows.

    Link rows all share ``id`` 1 so deleting by identifier would be wrong;
    links must be matched by ``post``.
    """
    return MemoryStore(
        {
            "posts": posts(),
            "tags": tags(),
            "postTags": [
                {"id": 1, "post": 1, "tag": 1},
                {"id": 1, "post": 1, "tag": 2},
                {"id": 1, "post": 2, "tag": 3},
            ],
        }
    )


@pytest.fixture
def adapters():
    """Factory: ``adapters(store)`` → dict of MemoryAdapter per collection."""

    def build(store: MemoryStore) -> dict[str, MemoryAdapter]:
        return {name: MemoryAdapter(store, name) for name in store.collection_names}

    return build
