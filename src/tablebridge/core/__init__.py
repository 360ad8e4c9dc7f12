"""
tablebridge core - schema model, caches and the generic record.
"""

from tablebridge.core.cache import ForeignKeyCache, SchemaCache, SingleFlightCache
from tablebridge.core.records import GenericRecord, TaggedValue
from tablebridge.core.schema import ColumnMetadata, ForeignKeyMapping, TableSchema
from tablebridge.core.types import SemanticType, normalize_type

__all__ = [
    "ColumnMetadata",
    "ForeignKeyCache",
    "ForeignKeyMapping",
    "GenericRecord",
    "SchemaCache",
    "SemanticType",
    "SingleFlightCache",
    "TableSchema",
    "TaggedValue",
    "normalize_type",
]
