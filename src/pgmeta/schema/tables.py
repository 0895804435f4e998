"""
Table lookup by oid, used when adding a column to a table.
"""

import logging
from dataclasses import dataclass

from ..exceptions import TableNotFoundError, UpstreamError
from .queries import TABLE_BY_ID_SQL


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableRef:
    """A table's oid and qualified name."""

    id: int
    schema: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.schema}.{self.name}"


class TableLocator:
    """Resolves a table id to its schema and name."""

    def __init__(self, channel):
        self.channel = channel

    async def retrieve(self, table_id: int) -> TableRef:
        result = await self.channel.query(TABLE_BY_ID_SQL.format(table_id=int(table_id)))
        if not result.ok:
            raise UpstreamError(result.error, sqlstate=result.sqlstate)
        if not result.rows:
            raise TableNotFoundError(table_id)

        row = result.rows[0]
        return TableRef(id=int(row["id"]), schema=row["schema"], name=row["name"])
