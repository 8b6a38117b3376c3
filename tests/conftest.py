"""Root conftest: shared test configuration and registry fixtures.

Invariants:
    - Every test gets a fresh MappingRegistry (fresh caches, default codec chain)
    - Settings never read a developer's .env file during tests
"""

import os

import pytest

# Ensure tests don't pick up a host application's overrides
os.environ.setdefault("RECORDBIND_ENUM_STRATEGY", "by_name")
os.environ.setdefault("RECORDBIND_BEAN_FALLBACK", "true")

from recordbind.config import Settings  # noqa: E402
from recordbind.services.mapping_registry import MappingRegistry  # noqa: E402


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def registry(settings):
    return MappingRegistry(settings)
