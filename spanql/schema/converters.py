"""Build table column-type maps from SQLAlchemy metadata.

The maps are the ``column_types`` carried by
:class:`~spanql.schema.query_tree.TableRef`; pass them as ``schema=`` to
``from_()`` and the join methods so SELECT / GROUP BY columns are checked.

Install the optional dependency before using this module::

    pip install "spanql[sqlalchemy]"

Example::

    from sqlalchemy import create_engine
    from spanql.schema.converters import schemas_from_sqlalchemy

    engine = create_engine("spanner+spanner:///projects/p/instances/i/databases/d")
    schemas = schemas_from_sqlalchemy(engine, include_tables=["users"])
    query = create_select().select("id").from_("users", schema=schemas["users"]).build()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy import Engine, Table
    from sqlalchemy.types import TypeEngine


# Checked in order; subclasses (DateTime, Boolean) precede their bases.
_TYPE_NAMES: tuple[tuple[str, str], ...] = (
    ("Boolean", "BOOL"),
    ("DateTime", "TIMESTAMP"),
    ("Date", "DATE"),
    ("Integer", "INT64"),
    ("Float", "FLOAT64"),
    ("Numeric", "NUMERIC"),
    ("LargeBinary", "BYTES"),
    ("ARRAY", "ARRAY"),
    ("JSON", "JSON"),
    ("String", "STRING"),
)


def table_schema_from_sqlalchemy(table: Table) -> dict[str, str]:
    """Return ``{column_name: SPANNER_TYPE}`` for a SQLAlchemy ``Table``.

    Types without a Spanner equivalent fall back to their SQLAlchemy string
    representation.

    Args:
        table: A declared or reflected :class:`sqlalchemy.Table`.

    Returns:
        Column-type map in column declaration order.
    """
    return {col.name: _spanner_type_name(col.type) for col in table.columns}


def schemas_from_sqlalchemy(
    engine: Engine,
    *,
    include_tables: list[str] | None = None,
) -> dict[str, dict[str, str]]:
    """Reflect ``engine`` and return a column-type map per table.

    Args:
        engine: A connected :class:`sqlalchemy.engine.Engine`.
        include_tables: Optional allowlist of table names to reflect.

    Returns:
        ``{table_name: {column_name: SPANNER_TYPE}}``.

    Raises:
        ImportError: If ``sqlalchemy`` is not installed.
    """
    try:
        from sqlalchemy import MetaData as _MetaData
    except ImportError as exc:
        raise ImportError(
            "SQLAlchemy is required for schemas_from_sqlalchemy(). "
            'Install it with: pip install "spanql[sqlalchemy]"'
        ) from exc

    metadata = _MetaData()
    with engine.connect() as conn:
        metadata.reflect(bind=conn, only=include_tables)

    return {table.name: table_schema_from_sqlalchemy(table) for table in metadata.sorted_tables}


def _spanner_type_name(sa_type: TypeEngine) -> str:
    mro_names = {cls.__name__ for cls in type(sa_type).__mro__}
    for sa_name, spanner_name in _TYPE_NAMES:
        if sa_name in mro_names:
            return spanner_name
    return str(sa_type)
