"""
Collaborator Interfaces

The indexer talks to the content repository through three seams:

- NodeRepository: re-reads a node by identifier inside a workspace/dimension scope
- DimensionCombinator: enumerates the dimension combinations to index
- PropertyExtractor: turns a node into index fields + a fulltext fragment

Each seam ships with a small default so the indexer can run on its own.
Type names are mapped to store-safe names by a plain callable.
"""

import itertools
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from .models import DimensionCombination, FulltextFragment, IndexableNode, NodeContext

UnconfiguredPropertyCallback = Callable[[str], None]


def convert_node_type_name_to_mapping_name(node_type_name: str) -> str:
    """'Acme.Site:Document' -> 'Acme-Site-Document'"""
    return node_type_name.replace(".", "-").replace(":", "-")


# =============================================================================
# CONTENT REPOSITORY
# =============================================================================

class NodeRepository(ABC):
    """Read access to the content tree."""

    @abstractmethod
    def get_node_by_identifier(
        self, identifier: str, context: NodeContext
    ) -> Optional[IndexableNode]:
        """Resolve a node in the given context, None if it does not exist there."""
        pass


# =============================================================================
# DIMENSIONS
# =============================================================================

class DimensionCombinator(ABC):
    """Enumerates every allowed dimension combination."""

    @abstractmethod
    def get_all_allowed_combinations(self) -> List[DimensionCombination]:
        pass


class StaticDimensionCombinator(DimensionCombinator):
    """
    Combinator over a fixed list of combinations.

    No combinations means the content repository has no dimensions; the
    indexer then uses a single context without dimension values.
    """

    def __init__(self, combinations: Optional[List[DimensionCombination]] = None):
        self.combinations = [dict(combination) for combination in combinations or []]

    @classmethod
    def from_presets(
        cls, presets: Dict[str, Dict[str, List[str]]]
    ) -> "StaticDimensionCombinator":
        """
        Build all combinations from dimension presets.

        ``{"language": {"en": ["en"], "de": ["de", "en"]}}`` gives
        ``[{"language": ["en"]}, {"language": ["de", "en"]}]``. Each preset
        value is the fallback chain for that preset.
        """
        if not presets:
            return cls([])
        names = list(presets.keys())
        chains = [list(presets[name].values()) for name in names]
        combinations = [
            {name: list(values) for name, values in zip(names, product)}
            for product in itertools.product(*chains)
        ]
        return cls(combinations)

    def get_all_allowed_combinations(self) -> List[DimensionCombination]:
        return [dict(combination) for combination in self.combinations]


# =============================================================================
# PROPERTY EXTRACTION
# =============================================================================

class PropertyExtractor(ABC):
    """Turns a node into its index fields and fulltext fragment."""

    @abstractmethod
    def extract(
        self, node: IndexableNode, on_unconfigured: UnconfiguredPropertyCallback
    ) -> Tuple[Dict[str, Any], FulltextFragment]:
        """
        Returns (fields, fragment). ``on_unconfigured`` is called once for every
        property that has no search configuration.
        """
        pass


class SearchConfigurationExtractor(PropertyExtractor):
    """
    Extractor driven by the node type's ``search.properties`` block.

    Configured properties are copied into the document unless they set
    ``indexing: false``. A ``fulltext: <bucket>`` entry also adds the string
    value to that bucket of the node's fulltext fragment.
    """

    def extract(
        self, node: IndexableNode, on_unconfigured: UnconfiguredPropertyCallback
    ) -> Tuple[Dict[str, Any], FulltextFragment]:
        fields: Dict[str, Any] = {
            "__identifier": node.identifier,
            "__path": node.path,
            "__parentPath": node.parent_path,
            "__hidden": node.hidden,
        }
        fragment: FulltextFragment = {}

        for property_name, value in node.properties.items():
            config = node.node_type.property_configuration(property_name)
            if config is None:
                on_unconfigured(property_name)
                continue

            if config.get("indexing", True) is not False:
                fields[property_name] = value

            bucket = config.get("fulltext")
            if bucket and isinstance(value, str) and value.strip():
                if bucket in fragment:
                    fragment[bucket] = f"{fragment[bucket]} {value.strip()}"
                else:
                    fragment[bucket] = value.strip()

        return fields, fragment
