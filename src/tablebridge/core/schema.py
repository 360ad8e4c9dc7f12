"""
Discovered table structure.

These objects are built once per table by the introspector and then shared
read-only between requests through the schema cache, so they are frozen.
"""

from dataclasses import dataclass, field

from tablebridge.core.types import SemanticType, normalize_type


@dataclass(frozen=True)
class ColumnMetadata:
    """One column as reported by the catalog."""

    name: str
    native_type: str
    semantic_type: SemanticType
    is_primary_key: bool = False
    foreign_key_constraint_name: str | None = None

    @classmethod
    def from_catalog(
        cls,
        name: str,
        native_type: str,
        is_primary_key: bool = False,
        foreign_key_constraint_name: str | None = None,
    ) -> "ColumnMetadata":
        return cls(
            name=name,
            native_type=native_type,
            semantic_type=normalize_type(native_type),
            is_primary_key=bool(is_primary_key),
            foreign_key_constraint_name=foreign_key_constraint_name or None,
        )

    @property
    def filterable(self) -> bool:
        return self.semantic_type is not SemanticType.OPAQUE

    @property
    def display_type(self) -> str:
        """Semantic type for number/text columns, native type otherwise."""
        if self.semantic_type is SemanticType.OPAQUE:
            return self.native_type
        return self.semantic_type.value


@dataclass(frozen=True)
class TableSchema:
    """Ordered columns of one table plus its primary key."""

    table: str
    columns: tuple[ColumnMetadata, ...]
    _by_name: dict[str, ColumnMetadata] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_name", {col.name: col for col in self.columns})

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.columns]

    @property
    def primary_keys(self) -> frozenset[str]:
        return frozenset(col.name for col in self.columns if col.is_primary_key)

    @property
    def key_columns(self) -> list[ColumnMetadata]:
        """Primary key columns in table order."""
        return [col for col in self.columns if col.is_primary_key]

    def has_column(self, name: str) -> bool:
        return name in self._by_name

    def column(self, name: str) -> ColumnMetadata:
        return self._by_name[name]

    def unknown_columns(self, names) -> list[str]:
        """Names that are not columns of this table, in input order."""
        return [name for name in names if name not in self._by_name]


@dataclass(frozen=True)
class ForeignKeyMapping:
    """Where a foreign key constraint points."""

    constraint_name: str
    referenced_table: str
    referenced_column: str
