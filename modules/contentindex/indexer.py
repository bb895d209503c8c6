"""
Node Indexer

Entry point for keeping an Elasticsearch index in sync with the content tree.

Usage:
    from contentindex import NodeIndexer

    indexer = NodeIndexer.from_settings(load_settings(), repository)
    indexer.index_node(node)                  # queue all variants of a node
    indexer.remove_node(node)                 # queue removal + fulltext purge
    indexer.flush()                           # send the queued operations

Full rebuild into a new index generation:
    indexer.set_index_name_postfix(str(int(time.time())))
    indexer.with_bulk_processing(lambda: [indexer.index_node(n) for n in nodes])
    indexer.flush()
    indexer.update_index_alias()
    indexer.remove_old_indices()

All operations take an optional ``session``. Without one they share the
indexer's default session; concurrent indexing runs pass their own.
"""

import logging
from typing import Callable, List, Optional, TypeVar

from elasticsearch import Elasticsearch

from .aliases import AliasRotationManager
from .bulk import BulkFlusher, BulkOperation, BulkResult, IndexingSession
from .client import create_client
from .config import Settings
from .documents import DocumentBuilder
from .fulltext import FulltextAggregator
from .identifiers import calculate_document_identifier
from .interfaces import (
    DimensionCombinator,
    NodeRepository,
    PropertyExtractor,
    SearchConfigurationExtractor,
    StaticDimensionCombinator,
    convert_node_type_name_to_mapping_name,
)
from .models import IndexableNode
from .variants import VariantResolver, WorkspacePolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NodeIndexer:
    """Indexes content nodes into Elasticsearch through bulk requests."""

    def __init__(
        self,
        client: Elasticsearch,
        repository: NodeRepository,
        alias_name: str,
        index_name_postfix: str = "",
        combinator: Optional[DimensionCombinator] = None,
        extractor: Optional[PropertyExtractor] = None,
        type_mapper: Callable[[str], str] = convert_node_type_name_to_mapping_name,
        policy: Optional[WorkspacePolicy] = None,
        native_scripts: bool = True,
    ):
        self.client = client
        self.type_mapper = type_mapper
        self.policy = policy or WorkspacePolicy()
        self.aliases = AliasRotationManager(client, alias_name, index_name_postfix)
        self.resolver = VariantResolver(repository, combinator or StaticDimensionCombinator())
        self.aggregator = FulltextAggregator(type_mapper)
        self.builder = DocumentBuilder(
            client,
            self.get_index_name,
            extractor or SearchConfigurationExtractor(),
            self.aggregator,
            type_mapper,
        )
        self.flusher = BulkFlusher(client, self.get_index_name, native_scripts=native_scripts)
        self.session = IndexingSession()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        repository: NodeRepository,
        client: Optional[Elasticsearch] = None,
        **kwargs,
    ) -> "NodeIndexer":
        return cls(
            client or create_client(settings),
            repository,
            alias_name=settings.index_name,
            index_name_postfix=settings.index_name_postfix,
            policy=WorkspacePolicy(settings.index_all_workspaces, settings.live_workspace),
            native_scripts=settings.native_scripts,
            **kwargs,
        )

    # === Index Names ===

    def get_index_name(self) -> str:
        """Physical index written to: the alias name plus the postfix, if any."""
        return self.aliases.index_name

    def set_index_name_postfix(self, postfix: str):
        self.aliases.set_index_name_postfix(postfix)

    def new_session(self) -> IndexingSession:
        return IndexingSession()

    def _session(self, session: Optional[IndexingSession]) -> IndexingSession:
        # an empty session is falsy
        return self.session if session is None else session

    # === Indexing ===

    def index_node(
        self,
        node: IndexableNode,
        target_workspace: Optional[str] = None,
        session: Optional[IndexingSession] = None,
    ):
        """
        Queue every dimension variant of the node.

        ``target_workspace`` is set when the node is being published; its
        documents are then written as documents of the target workspace.
        """
        session = self._session(session)
        if not self.policy.allows(node, target_workspace):
            logger.debug(
                f"Node {node.identifier} not indexed, workspace "
                f"{target_workspace or node.workspace_name} is not indexed"
            )
            return

        for variant in self.resolver.resolve(node, target_workspace):
            if variant.found:
                self.builder.index(session, variant.resolved, target_workspace)
                continue

            workspace_name = variant.context.workspace_name
            document_id = calculate_document_identifier(node.context_path, target_workspace)
            if node.removed:
                self.remove_node(node, workspace_name, session)
                logger.debug(
                    f"({document_id}) Removed node with identifier {node.identifier}, "
                    f"no longer in workspace {workspace_name}"
                )
            else:
                logger.debug(
                    f"({document_id}) Could not index node with identifier {node.identifier}, "
                    f"not found in workspace {workspace_name}"
                )

    def remove_node(
        self,
        node: IndexableNode,
        target_workspace: Optional[str] = None,
        session: Optional[IndexingSession] = None,
    ):
        """Queue deletion of the node's document and purge its fulltext from the root."""
        session = self._session(session)
        if not self.policy.allows(node, target_workspace):
            return

        document_id = calculate_document_identifier(node.context_path, target_workspace)
        session.add(BulkOperation.delete(document_id, self.type_mapper(node.node_type.name)))

        self.aggregator.update_fulltext(session, node, {}, target_workspace)

        logger.debug(
            f"({document_id}) Removed node {node.context_path} ({node.identifier}) from index"
        )

    def flush(self, session: Optional[IndexingSession] = None) -> BulkResult:
        return self.flusher.flush(self._session(session))

    def with_bulk_processing(self, work: Callable[[], T], session: Optional[IndexingSession] = None) -> T:
        """Run ``work`` without per-document duplicate cleanup."""
        return self._session(session).with_bulk_processing(work)

    # === Alias Management ===

    def update_index_alias(self):
        self.aliases.update_alias()

    def remove_old_indices(self) -> List[str]:
        return self.aliases.remove_stale_indices()
