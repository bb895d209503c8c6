"""
Document Building

Turns one resolved node variant into a store document and queues it:

- plain nodes are (re)indexed as a whole
- fulltext roots are updated by script so their aggregated fulltext survives
- every indexed node then sends its fulltext fragment to its root

Document ids do not depend on the node type. After a type change the old
document would linger under the old type name, so outside of bulk processing
any document with the same id but another type is deleted first.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from elasticsearch import Elasticsearch

from .bulk import BulkOperation, IndexingSession
from .fulltext import FulltextAggregator, root_document_update
from .identifiers import calculate_document_identifier
from .interfaces import PropertyExtractor, convert_node_type_name_to_mapping_name
from .models import DimensionCombination, FulltextFragment, IndexableNode

logger = logging.getLogger(__name__)

TYPE_NAME_FIELD = "__typeName"
WORKSPACE_FIELD = "__workspace"
DIMENSIONS_FIELD = "__dimensionCombinations"
DIMENSIONS_HASH_FIELD = "__dimensionCombinationHash"


def dimension_combination_hash(dimensions: DimensionCombination) -> str:
    """md5 of the compact JSON encoding of a dimension combination."""
    encoded = json.dumps(dimensions, separators=(",", ":"), ensure_ascii=False)
    return hashlib.md5(encoded.encode("utf-8")).hexdigest()


@dataclass
class Document:
    """Store document for one node variant."""
    type_name: str
    data: Dict[str, Any]
    document_id: str
    workspace: Optional[str] = None
    dimensions: Optional[DimensionCombination] = None

    @property
    def dimension_hash(self) -> Optional[str]:
        if self.dimensions is None:
            return None
        return dimension_combination_hash(self.dimensions)

    def to_source(self) -> Dict[str, Any]:
        source = dict(self.data)
        source[TYPE_NAME_FIELD] = self.type_name
        if self.workspace is not None:
            source[WORKSPACE_FIELD] = self.workspace
        if self.dimensions is not None:
            source[DIMENSIONS_FIELD] = self.dimensions
            source[DIMENSIONS_HASH_FIELD] = self.dimension_hash
        return source


class DocumentBuilder:
    """Builds documents for resolved nodes and queues their operations."""

    def __init__(
        self,
        client: Elasticsearch,
        index_name_provider: Callable[[], str],
        extractor: PropertyExtractor,
        aggregator: FulltextAggregator,
        type_mapper: Callable[[str], str] = convert_node_type_name_to_mapping_name,
    ):
        self.client = client
        self.index_name_provider = index_name_provider
        self.extractor = extractor
        self.aggregator = aggregator
        self.type_mapper = type_mapper

    def build(
        self, node: IndexableNode, target_workspace: Optional[str] = None
    ) -> Tuple[Document, FulltextFragment]:
        document_id = calculate_document_identifier(node.context_path, target_workspace)
        node_type_name = node.node_type.name

        def on_unconfigured(property_name: str):
            logger.debug(
                f"({document_id}) Property '{property_name}' not indexed because no "
                f"configuration found, node type {node_type_name}"
            )

        fields, fragment = self.extractor.extract(node, on_unconfigured)
        document = Document(
            type_name=self.type_mapper(node_type_name),
            data=fields,
            document_id=document_id,
            workspace=target_workspace,
            dimensions=node.dimensions,
        )
        return document, fragment

    def remove_duplicates(self, document: Document, node: IndexableNode):
        """Delete documents sharing this id under another type name."""
        logger.debug(
            f"({document.document_id}) Search and remove duplicate document for node "
            f"{node.context_path} ({node.identifier}) if needed"
        )
        self.client.delete_by_query(
            index=self.index_name_provider(),
            query={
                "bool": {
                    "must": [{"ids": {"values": [document.document_id]}}],
                    "must_not": [{"term": {TYPE_NAME_FIELD: document.type_name}}],
                }
            },
            conflicts="proceed",
        )

    def index(
        self,
        session: IndexingSession,
        node: IndexableNode,
        target_workspace: Optional[str] = None,
    ) -> Optional[Document]:
        """Queue the node variant. Returns the document, or None if nothing was queued."""
        document, fragment = self.build(node, target_workspace)

        if not session.bulk_processing:
            self.remove_duplicates(document, node)

        if not node.node_type.is_fulltext_enabled:
            logger.debug(
                f"({document.document_id}) Node {node.context_path} skipped, "
                f"fulltext is not enabled for {node.node_type.name}"
            )
            return None

        source = document.to_source()
        if node.node_type.is_fulltext_root:
            session.add(root_document_update(document.document_id, document.type_name, source))
        else:
            session.add(BulkOperation.index(document.document_id, document.type_name, source))

        self.aggregator.update_fulltext(session, node, fragment, target_workspace)

        logger.debug(f"({document.document_id}) Indexed node {node.context_path}")
        return document
