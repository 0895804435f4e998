"""
Column reference resolution.

Turns a ById or ByName reference into the predicate appended to the
columns catalog query, and into the message used when nothing matches.
"""

from functools import singledispatch
from typing import Optional, Tuple, Union

from ..database.quoting import quote_literal
from ..exceptions import ColumnValidationError
from .models import COLUMN_ID_PATTERN, ById, ByName


ColumnRef = Union[ById, ByName]


def parse_column_id(column_id: str) -> Tuple[int, int]:
    """Split ``"<table_id>.<ordinal_position>"`` into its two integers."""
    match = COLUMN_ID_PATTERN.fullmatch(column_id or "")
    if match is None:
        raise ColumnValidationError("Invalid format for column ID", details={"id": column_id})
    return int(match.group(1)), int(match.group(2))


def column_ref(
    id: Optional[str] = None,
    name: Optional[str] = None,
    table: Optional[str] = None,
    schema: Optional[str] = None,
) -> ColumnRef:
    """Build a column reference from keyword input."""
    if id and not (name or table):
        return ById(id)
    if name and table and not id:
        return ByName(name=name, table=table, schema=schema or "public")
    raise ColumnValidationError("Invalid parameters on column retrieve")


@singledispatch
def column_predicate(ref) -> str:
    raise ColumnValidationError("Invalid parameters on column retrieve")


@column_predicate.register
def _(ref: ById) -> str:
    table_id, ordinal_position = parse_column_id(ref.id)
    return f"AND c.oid = {table_id} AND a.attnum = {ordinal_position}"


@column_predicate.register
def _(ref: ByName) -> str:
    return (
        f"AND a.attname = {quote_literal(ref.name)} "
        f"AND c.relname = {quote_literal(ref.table)} "
        f"AND nc.nspname = {quote_literal(ref.schema)}"
    )


def describe_missing(ref: ColumnRef) -> str:
    """Message for a reference that matched no column."""
    if isinstance(ref, ById):
        return f"Cannot find a column with ID {ref.id}"
    return f"Cannot find a column named {ref.name} in table {ref.schema}.{ref.table}"
