"""Test fixtures: sample table schemas, SQLite DDL and SQL helpers."""

from __future__ import annotations

import json
import re
from pathlib import Path

from spanql.compile.base import CompiledQuery

_FIXTURES_DIR = Path(__file__).parent

PLACEHOLDER_RE = re.compile(r"@(param\d+)")


def load_table_schemas() -> dict[str, dict[str, str]]:
    """Load the sample ``{table: {column: SPANNER_TYPE}}`` map from schema.json."""
    return json.loads((_FIXTURES_DIR / "schema.json").read_text())


def load_ddl() -> str:
    """Return the sample SQLite DDL used by the converter tests."""
    return (_FIXTURES_DIR / "ddl_sqlite.sql").read_text()


def placeholders(sql: str) -> set[str]:
    """Return the parameter names referenced in ``sql`` (without ``@``)."""
    return set(PLACEHOLDER_RE.findall(sql))


def assert_placeholders_complete(compiled: CompiledQuery) -> None:
    """Every placeholder has a value and every value has a placeholder."""
    assert placeholders(compiled.sql) == set(compiled.parameters)
