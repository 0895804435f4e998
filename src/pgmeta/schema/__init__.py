"""
Column management package for pgmeta.

This package provides:
- Column, ColumnSpec and ColumnPatch models
- Column reference resolution (by id or by name)
- Identity transition rules for updates
- Ordered DDL composition for create, update and remove
- ColumnManager, the public list/retrieve/create/update/remove surface
"""

from .columns import ColumnManager
from .identifiers import ColumnRef, column_ref, parse_column_id
from .identity import IdentityAction, IdentityTransition, resolve_identity_transition
from .models import (
    ById,
    ByName,
    Column,
    ColumnPatch,
    ColumnSpec,
    ErrorKind,
    MetaError,
    MetaResult,
)
from .statements import ClauseKind, DdlFragment, compose_create, compose_update, render_script
from .tables import TableLocator, TableRef

__all__ = [
    "ColumnManager",
    "ColumnRef",
    "column_ref",
    "parse_column_id",
    "IdentityAction",
    "IdentityTransition",
    "resolve_identity_transition",
    "ById",
    "ByName",
    "Column",
    "ColumnPatch",
    "ColumnSpec",
    "ErrorKind",
    "MetaError",
    "MetaResult",
    "ClauseKind",
    "DdlFragment",
    "compose_create",
    "compose_update",
    "render_script",
    "TableLocator",
    "TableRef",
]
