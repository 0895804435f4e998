"""
Identifier and literal quoting for SQL text.

Every name and text value the engine interpolates into DDL goes through
one of these two functions.
"""

import json
from typing import Any


def quote_ident(name: str) -> str:
    """Quote a PostgreSQL identifier."""
    return '"' + str(name).replace('"', '""') + '"'


def quote_literal(value: Any) -> str:
    """Quote a value as a PostgreSQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "'t'" if value else "'f'"
    if isinstance(value, (dict, list)):
        text = json.dumps(value)
    else:
        text = str(value)

    quoted = "'" + text.replace("'", "''") + "'"
    if "\\" in text:
        # E'' strings treat backslash as an escape character
        return "E" + quoted.replace("\\", "\\\\")
    return quoted


def qualified_name(*parts: str) -> str:
    """Join quoted identifiers with dots, e.g. schema.table.column."""
    return ".".join(quote_ident(part) for part in parts)
