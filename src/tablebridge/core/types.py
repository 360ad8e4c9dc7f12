"""
Native column type -> semantic type.

Drivers report column types as strings ("nvarchar", "INTEGER",
"decimal(10,2)"). Everything downstream only cares whether a column holds
numbers, text, or something else, so the lookup collapses them into three
semantic types. Unknown names degrade to OPAQUE instead of failing.
"""

from enum import Enum


class SemanticType(str, Enum):
    NUMBER = "number"
    TEXT = "text"
    OPAQUE = "opaque"


# SQL Server names first, then the aliases SQLite/PostgreSQL/MySQL report
NUMBER_TYPES = frozenset({
    "int",
    "bigint",
    "smallint",
    "tinyint",
    "decimal",
    "numeric",
    "float",
    "real",
    "money",
    "smallmoney",
    "integer",
    "mediumint",
    "double",
    "double precision",
    "int2",
    "int4",
    "int8",
    "float4",
    "float8",
})

TEXT_TYPES = frozenset({
    "char",
    "varchar",
    "text",
    "nchar",
    "nvarchar",
    "ntext",
    "character",
    "character varying",
    "clob",
    "tinytext",
    "mediumtext",
    "longtext",
})


def base_type_name(native_type: str) -> str:
    """Lowercase a native type name and drop any (length, precision) suffix."""
    name = native_type.split("(", 1)[0]
    return " ".join(name.lower().split())


def normalize_type(native_type: str | None) -> SemanticType:
    """Map a native type name onto NUMBER, TEXT or OPAQUE."""
    if not native_type:
        return SemanticType.OPAQUE

    name = base_type_name(native_type)
    if name in NUMBER_TYPES:
        return SemanticType.NUMBER
    if name in TEXT_TYPES:
        return SemanticType.TEXT
    return SemanticType.OPAQUE
