"""
Column management for pgmeta.

ColumnManager is the public surface: list, retrieve, create, update and
remove. Each operation reads the catalog, composes one script, runs it
through the execution channel and reads the catalog again. Results come
back as MetaResult values; nothing is cached between calls.
"""

import logging
from functools import wraps
from typing import List, Optional

from ..database.quoting import quote_literal
from ..exceptions import (
    ColumnNotFoundError,
    ColumnValidationError,
    PgMetaError,
    TableNotFoundError,
    UpstreamError,
    ValidationError,
)
from .identifiers import ColumnRef, column_predicate, describe_missing
from .models import ById, ByName, Column, ColumnPatch, ColumnSpec, ErrorKind, MetaResult
from .queries import COLUMNS_SQL, DEFAULT_SYSTEM_SCHEMAS
from .statements import (
    DdlFragment,
    compose_create,
    compose_remove,
    compose_update,
    render_script,
    validate_column_spec,
)
from .tables import TableLocator


logger = logging.getLogger(__name__)


def _error_kind(error: PgMetaError) -> ErrorKind:
    if isinstance(error, ValidationError):
        return ErrorKind.VALIDATION
    if isinstance(error, (ColumnNotFoundError, TableNotFoundError)):
        return ErrorKind.NOT_FOUND
    return ErrorKind.UPSTREAM


def returns_result(func):
    """Wrap a coroutine so pgmeta errors come back as MetaResult failures."""
    @wraps(func)
    async def wrapper(*args, **kwargs) -> MetaResult:
        try:
            return MetaResult.success(await func(*args, **kwargs))
        except PgMetaError as e:
            return MetaResult.failure(e.message, _error_kind(e))
    return wrapper


class ColumnManager:
    """Reads and mutates table columns through an execution channel.

    The channel is anything with ``query(sql)`` and ``run_script(sql)``
    coroutines returning QueryResult, normally a ConnectionPool.
    """

    def __init__(self, channel, tables: Optional[TableLocator] = None):
        self.channel = channel
        self.tables = tables or TableLocator(channel)

    async def _fetch(self, sql: str) -> List[Column]:
        result = await self.channel.query(sql)
        if not result.ok:
            raise UpstreamError(result.error, sqlstate=result.sqlstate)
        return [Column.model_validate(row) for row in result.rows]

    async def _execute(self, fragments: List[DdlFragment]) -> None:
        script = render_script(fragments)
        logger.debug(f"Executing script:\n{script}")
        result = await self.channel.run_script(script)
        if not result.ok:
            raise UpstreamError(result.error, sqlstate=result.sqlstate)

    async def _retrieve(self, ref: ColumnRef) -> Column:
        columns = await self._fetch(f"{COLUMNS_SQL} {column_predicate(ref)}")
        if not columns:
            raise ColumnNotFoundError(describe_missing(ref))
        return columns[0]

    @returns_result
    async def list(
        self,
        include_system_schemas: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Column]:
        """List columns, excluding system schemas unless asked."""
        sql = COLUMNS_SQL
        if not include_system_schemas:
            schemas = ", ".join(quote_literal(s) for s in DEFAULT_SYSTEM_SCHEMAS)
            sql = f"{sql} AND NOT (nc.nspname IN ({schemas}))"
        for keyword, value in (("LIMIT", limit), ("OFFSET", offset)):
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ColumnValidationError(f"Invalid {keyword.lower()}: {value}")
            if value:
                sql = f"{sql} {keyword} {value}"
        return await self._fetch(sql)

    @returns_result
    async def retrieve(self, ref: ColumnRef) -> Column:
        """Find one column by id or by schema, table and name."""
        return await self._retrieve(ref)

    @returns_result
    async def create(self, spec: ColumnSpec) -> Column:
        """
        Add a column to the table ``spec.table_id``.

        The ADD COLUMN statement and the optional comment run as one
        transaction, so a failed constraint or type leaves no column behind.
        """
        validate_column_spec(spec)
        table = await self.tables.retrieve(spec.table_id)

        logger.info(f"Adding column {spec.name} to {table.full_name}")
        await self._execute(compose_create(spec, table.schema, table.name))

        return await self._retrieve(ByName(name=spec.name, table=table.name, schema=table.schema))

    @returns_result
    async def update(self, id: str, patch: ColumnPatch) -> Column:
        """
        Apply ``patch`` to the column ``id``.

        Only supplied fields that change something produce a statement. A
        patch that produces none is not sent and the current column is
        returned as is.
        """
        ref = ById(id)
        old = await self._retrieve(ref)

        fragments = compose_update(old, patch)
        if not fragments:
            logger.debug(f"No changes for column {old.full_name}")
            return old

        logger.info(
            f"Updating column {old.full_name}: "
            f"{', '.join(fragment.kind.value for fragment in fragments)}"
        )
        await self._execute(fragments)

        return await self._retrieve(ref)

    @returns_result
    async def remove(self, id: str, cascade: bool = False) -> Column:
        """Drop the column ``id`` and return its last known state."""
        column = await self._retrieve(ById(id))

        logger.info(f"Dropping column {column.full_name}")
        await self._execute(compose_remove(column, cascade=cascade))

        return column
