from ._collaborators import (
    ConceptLookup,
    EntityLookup,
    HierarchyLookup,
    IdResolver,
    MemoryEntityStore,
    PropertyLookup,
)
from ._config import (
    ElasticConfig,
    IndexConfig,
    IndexerConfig,
    QueryConfig,
    ReplicationConfig,
    SubqueryConfig,
)
from ._connection import ElasticConnection
from ._field_mapper import FieldMapper
from ._indexer import Indexer
from ._mappings import IndexMappings
from ._models import (
    ChangeDiff,
    FieldChangeOp,
    PropertyInfo,
    Query,
    QueryMode,
    QueryResult,
    TableChangeOp,
)
from ._query_builder import CompileContext, QueryBuilder
from ._query_engine import QueryEngine, ResultConverter
from ._recovery_job import (
    RecoveryJob,
    RecoveryJobParams,
    RecoveryJobRunner,
    RecoveryJobStatus,
)
from ._sort_builder import SortBuilder, SortSpec
from ._terms_lookup import TermsLookup

__all__ = [
    "ChangeDiff",
    "CompileContext",
    "ConceptLookup",
    "ElasticConfig",
    "ElasticConnection",
    "EntityLookup",
    "FieldChangeOp",
    "FieldMapper",
    "HierarchyLookup",
    "IdResolver",
    "IndexConfig",
    "IndexMappings",
    "Indexer",
    "IndexerConfig",
    "MemoryEntityStore",
    "PropertyInfo",
    "PropertyLookup",
    "Query",
    "QueryBuilder",
    "QueryConfig",
    "QueryEngine",
    "QueryMode",
    "QueryResult",
    "RecoveryJob",
    "RecoveryJobParams",
    "RecoveryJobRunner",
    "RecoveryJobStatus",
    "ReplicationConfig",
    "ResultConverter",
    "SortBuilder",
    "SortSpec",
    "SubqueryConfig",
    "TableChangeOp",
    "TermsLookup",
]
