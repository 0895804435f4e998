"""
DDL composition for column create and update.

Each clause is produced by a pure function as a typed DdlFragment, and a
single serializer turns the ordered fragments into one BEGIN/COMMIT script.

Update clauses are always emitted in UPDATE_CLAUSE_ORDER:

- nullability before the type change
- type change before the default, which may depend on the new type
- default before identity, since the two conflict
- uniqueness after identity
- rename last, because every earlier clause names the column by its old name
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from ..database.quoting import qualified_name, quote_ident, quote_literal
from ..exceptions import ColumnValidationError
from .identity import IdentityAction, resolve_identity_transition
from .models import Column, ColumnPatch, ColumnSpec
from .queries import DROP_UNIQUE_CONSTRAINTS_SQL


logger = logging.getLogger(__name__)

IDENTITY_DEFAULT_CONFLICT = "Columns cannot both be identity and have a default value"

# Type names can't go through quote_ident ("double precision", "int4[]",
# "varchar(20)"), so they are inserted as written, restricted to these characters.
_TYPE_PATTERN = re.compile(r'^[A-Za-z_"][\w\s."\[\](),]*$')


class ClauseKind(str, Enum):
    """Kinds of DDL fragment."""

    ADD_COLUMN = "add_column"
    DROP_COLUMN = "drop_column"
    NULLABILITY = "nullability"
    TYPE = "type"
    DEFAULT = "default"
    IDENTITY = "identity"
    UNIQUENESS = "uniqueness"
    COMMENT = "comment"
    RENAME = "rename"


UPDATE_CLAUSE_ORDER = (
    ClauseKind.NULLABILITY,
    ClauseKind.TYPE,
    ClauseKind.DEFAULT,
    ClauseKind.IDENTITY,
    ClauseKind.UNIQUENESS,
    ClauseKind.COMMENT,
    ClauseKind.RENAME,
)


@dataclass(frozen=True)
class DdlFragment:
    """One statement of a mutation script."""

    kind: ClauseKind
    sql: str


def validate_type(type_name: str) -> str:
    """Reject type text that could carry more than a type name."""
    if not type_name or not _TYPE_PATTERN.match(type_name) or "--" in type_name:
        raise ColumnValidationError("Invalid column type", details={"type": type_name})
    return type_name.strip()


def render_default(value: Any, value_format: str) -> str:
    """Render a default value: verbatim expression or quoted literal."""
    if value_format == "expression":
        return str(value)
    return quote_literal(value)


def render_script(fragments: List[DdlFragment]) -> str:
    """Serialize fragments into one transactional script."""
    body = "\n".join(f"  {fragment.sql}" for fragment in fragments)
    return f"BEGIN;\n{body}\nCOMMIT;"


# ============================================================================
# Create
# ============================================================================

def validate_column_spec(spec: ColumnSpec) -> None:
    """Checks that need no catalog access. Raises before any SQL is sent."""
    if spec.is_identity and spec.has_default:
        raise ColumnValidationError(IDENTITY_DEFAULT_CONFLICT)
    validate_type(spec.type)


def compose_create(spec: ColumnSpec, schema: str, table: str) -> List[DdlFragment]:
    """Fragments adding ``spec`` to ``schema.table``."""
    validate_column_spec(spec)

    parts = [
        f"ALTER TABLE {qualified_name(schema, table)}",
        f"ADD COLUMN {quote_ident(spec.name)} {validate_type(spec.type)}",
    ]

    if spec.is_identity:
        parts.append(f"GENERATED {spec.identity_generation} AS IDENTITY")
    elif spec.has_default:
        parts.append(f"DEFAULT {render_default(spec.default_value, spec.default_value_format)}")

    if spec.is_nullable is not None:
        parts.append("NULL" if spec.is_nullable else "NOT NULL")
    if spec.is_primary_key:
        parts.append("PRIMARY KEY")
    if spec.is_unique:
        parts.append("UNIQUE")
    if spec.check is not None:
        parts.append(f"CHECK ({spec.check})")

    fragments = [DdlFragment(ClauseKind.ADD_COLUMN, " ".join(parts) + ";")]

    if spec.comment is not None:
        fragments.append(
            DdlFragment(
                ClauseKind.COMMENT,
                f"COMMENT ON COLUMN {qualified_name(schema, table, spec.name)} "
                f"IS {quote_literal(spec.comment)};",
            )
        )

    return fragments


# ============================================================================
# Update
# ============================================================================

def _alter_column(old: Column) -> str:
    return f"ALTER TABLE {qualified_name(old.schema, old.table)} ALTER COLUMN {quote_ident(old.name)}"


def nullability_clause(old: Column, patch: ColumnPatch) -> Optional[str]:
    if not patch.supplied("is_nullable") or patch.is_nullable == old.is_nullable:
        return None
    action = "DROP NOT NULL" if patch.is_nullable else "SET NOT NULL"
    return f"{_alter_column(old)} {action};"


def type_clause(old: Column, patch: ColumnPatch) -> Optional[str]:
    if not patch.supplied("type"):
        return None
    new_type = validate_type(patch.type)
    # USING allows conversions with no implicit cast (e.g. text -> int4)
    return (
        f"{_alter_column(old)} SET DATA TYPE {new_type} "
        f"USING {quote_ident(old.name)}::{new_type};"
    )


def default_clause(old: Column, patch: ColumnPatch) -> Optional[str]:
    if patch.drop_default:
        return f"{_alter_column(old)} DROP DEFAULT;"
    if not patch.supplied("default_value"):
        return None
    rendered = render_default(patch.default_value, patch.default_value_format)
    return f"{_alter_column(old)} SET DEFAULT {rendered};"


def identity_clause(old: Column, patch: ColumnPatch) -> Optional[str]:
    transition = resolve_identity_transition(
        old.is_identity,
        patch.is_identity if patch.supplied("is_identity") else None,
        patch.identity_generation if patch.supplied("identity_generation") else None,
    )
    if transition.is_noop:
        return None
    if transition.action == IdentityAction.DROP:
        return f"{_alter_column(old)} DROP IDENTITY IF EXISTS;"
    if transition.action == IdentityAction.SET_GENERATION:
        return f"{_alter_column(old)} SET GENERATED {transition.generation};"
    return f"{_alter_column(old)} ADD GENERATED {transition.generation} AS IDENTITY;"


def uniqueness_clause(old: Column, patch: ColumnPatch) -> Optional[str]:
    if not patch.supplied("is_unique") or patch.is_unique == old.is_unique:
        return None
    if patch.is_unique:
        return (
            f"ALTER TABLE {qualified_name(old.schema, old.table)} "
            f"ADD UNIQUE ({quote_ident(old.name)});"
        )
    return DROP_UNIQUE_CONSTRAINTS_SQL.format(
        table_id=int(old.table_id),
        ordinal_position=int(old.ordinal_position),
        schema=quote_literal(old.schema),
        table=quote_literal(old.table),
    )


def comment_clause(old: Column, patch: ColumnPatch) -> Optional[str]:
    if not patch.supplied("comment") or patch.comment == old.comment:
        return None
    return (
        f"COMMENT ON COLUMN {qualified_name(old.schema, old.table, old.name)} "
        f"IS {quote_literal(patch.comment)};"
    )


def rename_clause(old: Column, patch: ColumnPatch) -> Optional[str]:
    if not patch.supplied("name") or patch.name == old.name:
        return None
    return (
        f"ALTER TABLE {qualified_name(old.schema, old.table)} "
        f"RENAME COLUMN {quote_ident(old.name)} TO {quote_ident(patch.name)};"
    )


_UPDATE_BUILDERS: Tuple[Tuple[ClauseKind, Callable[[Column, ColumnPatch], Optional[str]]], ...] = (
    (ClauseKind.NULLABILITY, nullability_clause),
    (ClauseKind.TYPE, type_clause),
    (ClauseKind.DEFAULT, default_clause),
    (ClauseKind.IDENTITY, identity_clause),
    (ClauseKind.UNIQUENESS, uniqueness_clause),
    (ClauseKind.COMMENT, comment_clause),
    (ClauseKind.RENAME, rename_clause),
)


def validate_column_patch(old: Column, patch: ColumnPatch) -> None:
    """Reject patches that would leave an identity column with a default."""
    if patch.drop_default or not patch.supplied("default_value"):
        return
    if patch.is_identity is True or old.is_identity:
        raise ColumnValidationError(IDENTITY_DEFAULT_CONFLICT)


def compose_update(old: Column, patch: ColumnPatch) -> List[DdlFragment]:
    """Fragments turning ``old`` into the patched column, in clause order."""
    validate_column_patch(old, patch)

    fragments = []
    for kind, build in _UPDATE_BUILDERS:
        sql = build(old, patch)
        if sql:
            fragments.append(DdlFragment(kind, sql))

    logger.debug(
        f"Composed {len(fragments)} clause(s) for {old.full_name}: "
        f"{[fragment.kind.value for fragment in fragments]}"
    )
    return fragments


# ============================================================================
# Remove
# ============================================================================

def compose_remove(column: Column, cascade: bool = False) -> List[DdlFragment]:
    """Fragment dropping ``column``."""
    sql = (
        f"ALTER TABLE {qualified_name(column.schema, column.table)} "
        f"DROP COLUMN {quote_ident(column.name)}"
    )
    if cascade:
        sql += " CASCADE"
    return [DdlFragment(ClauseKind.DROP_COLUMN, sql + ";")]
