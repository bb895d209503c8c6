"""
Fulltext Aggregation

Fulltext roots (typically document nodes) collect the searchable text of
their whole subtree. The root document keeps two fields:

    __fulltextParts: {contributor node identifier -> {bucket -> text}}
    __fulltext:      {bucket -> text of all contributors joined by spaces}

Each indexed node sends its own fragment to the closest fulltext root with a
scripted update, so a change never re-reads the subtree. ``__fulltext`` is
rebuilt from ``__fulltextParts`` on every update, in contributor insertion
order, which makes re-sending an unchanged fragment a no-op.

The Painless scripts run inside Elasticsearch. ``merge_fulltext_parts`` and
``merge_root_document`` are the same merges in Python, used when the store
applies updates by read-modify-write.
"""

import logging
from functools import partial
from typing import Any, Callable, Dict, Mapping, Optional

from .bulk import BulkOperation, IndexingSession
from .identifiers import calculate_document_identifier
from .interfaces import convert_node_type_name_to_mapping_name
from .models import FulltextFragment, IndexableNode

logger = logging.getLogger(__name__)

FULLTEXT_FIELD = "__fulltext"
FULLTEXT_PARTS_FIELD = "__fulltextParts"

MAX_ANCESTOR_DEPTH = 1000

FULLTEXT_MERGE_SCRIPT = """
if (!ctx._source.containsKey('__fulltextParts') || ctx._source.__fulltextParts == null) {
    ctx._source.__fulltextParts = new LinkedHashMap();
}
if (params.nodeIsRemoved || params.nodeIsHidden || params.fulltext.size() == 0) {
    ctx._source.__fulltextParts.remove(params.identifier);
} else {
    ctx._source.__fulltextParts.put(params.identifier, params.fulltext);
}
Map fulltext = new LinkedHashMap();
for (def part : ctx._source.__fulltextParts.values()) {
    for (def element : part.entrySet()) {
        String value = element.getValue().trim();
        if (fulltext.containsKey(element.getKey())) {
            value = fulltext.get(element.getKey()) + ' ' + value;
        }
        fulltext.put(element.getKey(), value);
    }
}
ctx._source.__fulltext = fulltext;
"""

ROOT_DOCUMENT_SCRIPT = """
Map preserved = new HashMap();
for (String key : ['__fulltext', '__fulltextParts']) {
    if (ctx._source.containsKey(key)) {
        preserved.put(key, ctx._source.get(key));
    }
}
ctx._source.clear();
ctx._source.putAll(params.newData);
ctx._source.putAll(preserved);
"""


# =============================================================================
# MERGES
# =============================================================================

def build_fulltext(parts: Mapping[str, Mapping[str, str]]) -> Dict[str, str]:
    """Join each bucket's trimmed texts in contributor order."""
    fulltext: Dict[str, str] = {}
    for fragment in parts.values():
        for bucket, text in fragment.items():
            value = str(text).strip()
            if bucket in fulltext:
                value = f"{fulltext[bucket]} {value}"
            fulltext[bucket] = value
    return fulltext


def merge_fulltext_parts(
    source: Mapping[str, Any],
    identifier: str,
    fragment: FulltextFragment,
    removed: bool = False,
    hidden: bool = False,
) -> Dict[str, Any]:
    """Apply one contributor's fragment to a root document source."""
    merged = dict(source)
    parts = dict(merged.get(FULLTEXT_PARTS_FIELD) or {})
    if removed or hidden or not fragment:
        parts.pop(identifier, None)
    else:
        # existing contributors keep their position
        parts[identifier] = dict(fragment)
    merged[FULLTEXT_PARTS_FIELD] = parts
    merged[FULLTEXT_FIELD] = build_fulltext(parts)
    return merged


def merge_root_document(source: Mapping[str, Any], new_data: Mapping[str, Any]) -> Dict[str, Any]:
    """Replace a root document's fields, keeping its aggregated fulltext."""
    merged = dict(new_data)
    for key in (FULLTEXT_FIELD, FULLTEXT_PARTS_FIELD):
        if key in source:
            merged[key] = source[key]
    return merged


def root_document_update(document_id: str, type_name: str, source: Dict[str, Any]) -> BulkOperation:
    """Update for a fulltext root's own fields; creates the document if missing."""
    return BulkOperation.update(
        document_id,
        type_name,
        script={
            "source": ROOT_DOCUMENT_SCRIPT,
            "lang": "painless",
            "params": {"newData": source},
        },
        upsert=source,
        merge=partial(merge_root_document, new_data=source),
    )


# =============================================================================
# AGGREGATOR
# =============================================================================

class FulltextAggregator:
    """Routes a node's fulltext fragment to its closest fulltext root."""

    def __init__(
        self,
        type_mapper: Callable[[str], str] = convert_node_type_name_to_mapping_name,
        max_depth: int = MAX_ANCESTOR_DEPTH,
    ):
        self.type_mapper = type_mapper
        self.max_depth = max_depth

    def find_fulltext_root(self, node: IndexableNode) -> Optional[IndexableNode]:
        """The node itself or its closest ancestor that is a fulltext root."""
        current = node
        for _ in range(self.max_depth):
            if current is None:
                return None
            if current.node_type.is_fulltext_root:
                return current
            current = current.parent
        logger.warning(f"Gave up looking for a fulltext root of {node.path} after {self.max_depth} ancestors")
        return None

    def update_fulltext(
        self,
        session: IndexingSession,
        node: IndexableNode,
        fragment: FulltextFragment,
        target_workspace: Optional[str] = None,
    ) -> Optional[BulkOperation]:
        root = self.find_fulltext_root(node)
        if root is None:
            logger.warning(f"No fulltext root found for node {node.path} ({node.identifier})")
            return None

        root_document_id = calculate_document_identifier(root.context_path, target_workspace)
        if root.removed:
            logger.debug(
                f"({root_document_id}) Fulltext root of {node.path} ({node.identifier}) "
                f"not updated, it is removed"
            )
            return None

        params = {
            "identifier": node.identifier,
            "nodeIsRemoved": node.removed,
            "nodeIsHidden": node.hidden,
            "fulltext": dict(fragment),
        }
        merge = partial(
            merge_fulltext_parts,
            identifier=node.identifier,
            fragment=dict(fragment),
            removed=node.removed,
            hidden=node.hidden,
        )
        operation = BulkOperation.update(
            root_document_id,
            self.type_mapper(root.node_type.name),
            script={"source": FULLTEXT_MERGE_SCRIPT, "lang": "painless", "params": params},
            upsert=merge({}),
            merge=merge,
        )
        session.add(operation)

        logger.debug(
            f"({root_document_id}) Updated fulltext of {root.context_path} "
            f"({root.identifier}) from {node.identifier}"
        )
        return operation
