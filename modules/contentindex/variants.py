"""
Variant Resolution

A single node mutation has to be indexed once per dimension combination of
the effective workspace. The resolver only finds out which variants exist;
what happens with each of them is up to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from .interfaces import DimensionCombinator, NodeRepository
from .models import LIVE_WORKSPACE, IndexableNode, NodeContext

logger = logging.getLogger(__name__)


@dataclass
class VariantResolution:
    """Outcome of re-reading a node in one context."""
    original: IndexableNode
    context: NodeContext
    resolved: Optional[IndexableNode] = None

    @property
    def found(self) -> bool:
        return self.resolved is not None


class WorkspacePolicy:
    """Decides which workspaces get indexed at all."""

    def __init__(self, index_all_workspaces: bool = False, live_workspace: str = LIVE_WORKSPACE):
        self.index_all_workspaces = index_all_workspaces
        self.live_workspace = live_workspace

    def allows(self, node: IndexableNode, target_workspace: Optional[str] = None) -> bool:
        """
        With live-only indexing, the target workspace decides if one is given,
        the node's own workspace otherwise.
        """
        if self.index_all_workspaces:
            return True
        if target_workspace is not None:
            return target_workspace == self.live_workspace
        return node.workspace_name == self.live_workspace


class VariantResolver:
    """Re-resolves a node in every dimension combination of a workspace."""

    def __init__(self, repository: NodeRepository, combinator: DimensionCombinator):
        self.repository = repository
        self.combinator = combinator

    @staticmethod
    def effective_workspace(node: IndexableNode, target_workspace: Optional[str] = None) -> str:
        return target_workspace or node.workspace_name

    def contexts(self, workspace_name: str) -> List[NodeContext]:
        """One context per allowed combination, or one without dimensions."""
        combinations = self.combinator.get_all_allowed_combinations()
        if not combinations:
            return [NodeContext(workspace_name=workspace_name, invisible_content_shown=True)]
        return [
            NodeContext(workspace_name=workspace_name, dimensions=combination, invisible_content_shown=True)
            for combination in combinations
        ]

    def resolve(
        self, node: IndexableNode, target_workspace: Optional[str] = None
    ) -> Iterator[VariantResolution]:
        workspace_name = self.effective_workspace(node, target_workspace)
        for context in self.contexts(workspace_name):
            resolved = self.repository.get_node_by_identifier(node.identifier, context)
            if resolved is None:
                logger.debug(
                    f"Node {node.identifier} not found in workspace {workspace_name} "
                    f"with dimensions {context.dimensions}"
                )
            yield VariantResolution(original=node, context=context, resolved=resolved)
