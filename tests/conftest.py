"""Shared pytest fixtures for spanql unit tests."""
from __future__ import annotations

import pytest

from spanql.config import BuilderConfig
from tests.fixtures import load_table_schemas


@pytest.fixture(scope="session")
def schemas() -> dict[str, dict[str, str]]:
    """Sample column-type maps shared across all tests."""
    return load_table_schemas()


@pytest.fixture(scope="session")
def users_schema(schemas: dict[str, dict[str, str]]) -> dict[str, str]:
    return schemas["users"]


@pytest.fixture(scope="session")
def orders_schema(schemas: dict[str, dict[str, str]]) -> dict[str, str]:
    return schemas["orders"]


@pytest.fixture
def lenient_config() -> BuilderConfig:
    """Configuration with schema column checks turned off."""
    return BuilderConfig(check_schema_columns=False)
