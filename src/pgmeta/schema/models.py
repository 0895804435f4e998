"""
Column models for pgmeta.

Column is a decoded catalog row. ColumnSpec describes a column to create;
ColumnPatch describes changes to an existing one. Which patch fields the
caller actually supplied is read from pydantic's fields-set record, so an
omitted field and an explicit ``False`` stay distinguishable.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


COLUMN_ID_PATTERN = re.compile(r"^(\d+)\.(\d+)$")

IdentityGeneration = Literal["BY DEFAULT", "ALWAYS"]
DefaultValueFormat = Literal["literal", "expression"]

# An explicit null is a real patch value for these: SET DEFAULT NULL, clear the comment
NULL_SUPPLIED_FIELDS = frozenset({"default_value", "comment"})

T = TypeVar("T")


class Column(BaseModel):
    """A table column as described by the catalog."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Column id, <table_id>.<ordinal_position>")
    table_id: int
    # BaseModel already has a schema() method
    schema_: str = Field(..., alias="schema")
    table: str
    ordinal_position: int
    name: str
    default_value: Optional[str] = None
    data_type: str
    format: str = Field(..., description="Type name, e.g. int4 or text")
    is_identity: bool = False
    identity_generation: Optional[IdentityGeneration] = None
    is_generated: bool = False
    is_nullable: bool = True
    is_updatable: bool = True
    is_unique: bool = False
    is_primary_key: bool = False
    enums: List[str] = Field(default_factory=list)
    check: Optional[str] = None
    comment: Optional[str] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not COLUMN_ID_PATTERN.fullmatch(v):
            raise ValueError(f"Invalid column id: {v}")
        return v

    @field_validator("enums", mode="before")
    @classmethod
    def decode_enums(cls, v: Any) -> Any:
        # asyncpg hands json columns back as text
        if v is None:
            return []
        if isinstance(v, str):
            return json.loads(v)
        return v

    @property
    def schema(self) -> str:
        """The owning table's schema."""
        return self.schema_

    @property
    def type(self) -> str:
        """The column's type name."""
        return self.format

    @property
    def full_name(self) -> str:
        """Get schema.table.column."""
        return f"{self.schema}.{self.table}.{self.name}"


class ColumnSpec(BaseModel):
    """A column to add to an existing table."""

    table_id: int = Field(..., description="Owning table oid")
    name: str = Field(..., min_length=1, description="Column name")
    type: str = Field(..., min_length=1, description="Column type")
    default_value: Optional[Any] = Field(None, description="Default value")
    default_value_format: DefaultValueFormat = Field(
        "literal", description="Quote the default as a literal or use it as an expression"
    )
    is_identity: bool = Field(False, description="Create an identity column")
    identity_generation: IdentityGeneration = Field("BY DEFAULT", description="Identity generation mode")
    # Left unset, PostgreSQL decides: primary keys are NOT NULL, others nullable
    is_nullable: Optional[bool] = Field(None, description="Nullability")
    is_primary_key: bool = Field(False, description="Make the column the primary key")
    is_unique: bool = Field(False, description="Add a unique constraint")
    comment: Optional[str] = Field(None, description="Column comment")
    check: Optional[str] = Field(None, description="Check constraint expression")

    @property
    def has_default(self) -> bool:
        # An explicit null default is treated as no default, so it may go with
        # is_identity=True
        return "default_value" in self.model_fields_set and self.default_value is not None


class ColumnPatch(BaseModel):
    """Changes to apply to an existing column. Omitted fields are left alone."""

    name: Optional[str] = Field(None, min_length=1, description="New column name")
    type: Optional[str] = Field(None, min_length=1, description="New column type")
    drop_default: bool = Field(False, description="Drop the column default")
    default_value: Optional[Any] = Field(None, description="New default value")
    default_value_format: DefaultValueFormat = Field(
        "literal", description="Quote the default as a literal or use it as an expression"
    )
    is_identity: Optional[bool] = Field(None, description="Add or drop identity")
    identity_generation: Optional[IdentityGeneration] = Field(
        None, description="Identity generation mode"
    )
    is_nullable: Optional[bool] = Field(None, description="Nullability")
    is_unique: Optional[bool] = Field(None, description="Add or drop the unique constraint")
    comment: Optional[str] = Field(None, description="Column comment; null clears it")

    def supplied(self, field_name: str) -> bool:
        """Check whether the caller supplied a value for a field."""
        if field_name not in self.model_fields_set:
            return False
        if field_name in NULL_SUPPLIED_FIELDS:
            return True
        return getattr(self, field_name) is not None


@dataclass(frozen=True)
class ById:
    """Reference a column by its <table_id>.<ordinal_position> id."""

    id: str


@dataclass(frozen=True)
class ByName:
    """Reference a column by name within schema.table."""

    name: str
    table: str
    schema: str = "public"


class ErrorKind(str, Enum):
    """Categories of failed operations."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"


@dataclass(frozen=True)
class MetaError:
    """Error payload returned in place of a result."""

    message: str
    kind: ErrorKind = ErrorKind.UPSTREAM


@dataclass(frozen=True)
class MetaResult(Generic[T]):
    """Result of a public column operation: data or error, never both."""

    data: Optional[T] = None
    error: Optional[MetaError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> "MetaResult[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, message: str, kind: ErrorKind) -> "MetaResult[T]":
        return cls(error=MetaError(message=message, kind=kind))
