"""
contentindex - Content Repository Indexer for Elasticsearch

Keeps a hierarchical, multi-workspace, multi-dimension content tree
searchable in Elasticsearch without re-indexing whole subtrees on every edit.

Components:
- identifiers.py: stable document ids from context paths
- variants.py: workspace policy + per-dimension node resolution
- documents.py: document payloads, duplicate cleanup after type changes
- fulltext.py: fulltext aggregation into the closest fulltext root
- bulk.py: indexing sessions, bulk serialization and flushing
- aliases.py: alias rotation between index generations
- indexer.py: NodeIndexer, wiring it all together

Architecture:
    index_node(node)
        └── VariantResolver ──▶ one resolved node per dimension combination
                └── DocumentBuilder ──▶ index / update operation
                        └── FulltextAggregator ──▶ update on the fulltext root
    flush() ──▶ one _bulk request
    update_index_alias() ──▶ one _aliases request
"""

from .aliases import AliasRotationManager
from .bulk import BulkFlusher, BulkOperation, BulkResult, IndexingSession, OperationKind
from .documents import Document, DocumentBuilder, dimension_combination_hash
from .exceptions import AliasRotationError, ContentIndexError, InvalidContextPathError
from .fulltext import (
    FulltextAggregator,
    build_fulltext,
    merge_fulltext_parts,
    merge_root_document,
)
from .identifiers import build_context_path, calculate_document_identifier, replace_workspace
from .indexer import NodeIndexer
from .interfaces import (
    DimensionCombinator,
    NodeRepository,
    PropertyExtractor,
    SearchConfigurationExtractor,
    StaticDimensionCombinator,
    convert_node_type_name_to_mapping_name,
)
from .models import IndexableNode, NodeContext, NodeType
from .variants import VariantResolution, VariantResolver, WorkspacePolicy

__all__ = [
    "AliasRotationManager",
    "BulkFlusher",
    "BulkOperation",
    "BulkResult",
    "IndexingSession",
    "OperationKind",
    "Document",
    "DocumentBuilder",
    "dimension_combination_hash",
    "AliasRotationError",
    "ContentIndexError",
    "InvalidContextPathError",
    "FulltextAggregator",
    "build_fulltext",
    "merge_fulltext_parts",
    "merge_root_document",
    "build_context_path",
    "calculate_document_identifier",
    "replace_workspace",
    "NodeIndexer",
    "DimensionCombinator",
    "NodeRepository",
    "PropertyExtractor",
    "SearchConfigurationExtractor",
    "StaticDimensionCombinator",
    "convert_node_type_name_to_mapping_name",
    "IndexableNode",
    "NodeContext",
    "NodeType",
    "VariantResolution",
    "VariantResolver",
    "WorkspacePolicy",
]
