"""
Content Tree Model

The content tree is owned by the content repository. The indexer only reads
from it, so these dataclasses carry just what indexing needs:

- NodeType: type name + its ``search`` configuration block
- IndexableNode: one node in one workspace/dimension variant
- NodeContext: the (workspace, dimensions) scope a node is resolved in

Search configuration of a node type (same shape as the content repository's
node type YAML):

    search:
      fulltext:
        enable: true      # node is indexed at all
        isRoot: true      # node collects fulltext of its subtree
      properties:
        title:
          fulltext: h1    # property text goes into the "h1" fulltext bucket
        internalNote:
          indexing: false
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .identifiers import build_context_path

DimensionCombination = Dict[str, List[str]]
FulltextFragment = Dict[str, str]

LIVE_WORKSPACE = "live"


@dataclass
class NodeType:
    """Node type name and its search configuration."""
    name: str
    search: Dict[str, Any] = field(default_factory=dict)

    @property
    def fulltext_settings(self) -> Dict[str, Any]:
        settings = self.search.get("fulltext")
        return settings if isinstance(settings, dict) else {}

    @property
    def is_fulltext_enabled(self) -> bool:
        return self.fulltext_settings.get("enable") is True

    @property
    def is_fulltext_root(self) -> bool:
        return self.fulltext_settings.get("isRoot") is True

    def property_configuration(self, property_name: str) -> Optional[Dict[str, Any]]:
        """Search configuration of one property, None if it is not configured."""
        properties = self.search.get("properties") or {}
        config = properties.get(property_name)
        if config is None:
            return None
        return config if isinstance(config, dict) else {}


@dataclass
class NodeContext:
    """Scope a node is read in."""
    workspace_name: str
    dimensions: DimensionCombination = field(default_factory=dict)
    invisible_content_shown: bool = True


@dataclass
class IndexableNode:
    """A content node as seen from one workspace and dimension combination."""
    identifier: str
    path: str
    node_type: NodeType
    workspace_name: str = LIVE_WORKSPACE
    dimensions: DimensionCombination = field(default_factory=dict)
    removed: bool = False
    hidden: bool = False
    parent: Optional["IndexableNode"] = field(default=None, repr=False, compare=False)
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def context_path(self) -> str:
        return build_context_path(self.path, self.workspace_name, self.dimensions)

    @property
    def parent_path(self) -> str:
        parent_path = self.path.rstrip("/").rsplit("/", 1)[0]
        return parent_path or "/"

    @property
    def context(self) -> NodeContext:
        return NodeContext(workspace_name=self.workspace_name, dimensions=self.dimensions)
