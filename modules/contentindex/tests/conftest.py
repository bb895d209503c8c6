"""Shared fixtures: a small content tree, an in-memory repository and store."""

import copy
import json
from dataclasses import replace
from typing import Any, Dict, List, Optional, Set
from unittest.mock import MagicMock

import pytest
from elasticsearch import ConflictError, NotFoundError

from contentindex.fulltext import (
    FULLTEXT_MERGE_SCRIPT,
    ROOT_DOCUMENT_SCRIPT,
    merge_fulltext_parts,
    merge_root_document,
)
from contentindex.interfaces import NodeRepository
from contentindex.models import IndexableNode, NodeContext, NodeType


PAGE = NodeType(
    "Acme.Site:Page",
    {
        "fulltext": {"enable": True, "isRoot": True},
        "properties": {"title": {"fulltext": "h1"}, "uriPathSegment": {}},
    },
)
CONTENT_COLLECTION = NodeType("Acme.Site:ContentCollection", {"fulltext": {"enable": True}})
TEXT = NodeType(
    "Acme.Site:Text",
    {
        "fulltext": {"enable": True},
        "properties": {
            "title": {"fulltext": "title"},
            "text": {"fulltext": "text"},
            "internalNote": {"indexing": False},
        },
    },
)
SHORTCUT = NodeType("Acme.Site:Shortcut", {})


def api_error(error_class, status: int, message: str = "error"):
    """Build an elasticsearch ApiError subclass without a real response."""
    return error_class(message=message, meta=MagicMock(status=status), body={})


# =============================================================================
# CONTENT TREE
# =============================================================================

class InMemoryRepository(NodeRepository):
    """Resolves nodes by identifier; ``missing`` identifiers resolve to None."""

    def __init__(self, nodes: List[IndexableNode] = None, missing: Set[str] = None):
        self.nodes = {node.identifier: node for node in nodes or []}
        self.missing = set(missing or [])
        self.lookups: List[NodeContext] = []

    def add(self, node: IndexableNode):
        self.nodes[node.identifier] = node

    def get_node_by_identifier(self, identifier: str, context: NodeContext) -> Optional[IndexableNode]:
        self.lookups.append(context)
        if identifier in self.missing or identifier not in self.nodes:
            return None
        return self._in_context(self.nodes[identifier], context)

    def _in_context(self, node: IndexableNode, context: NodeContext) -> IndexableNode:
        parent = self._in_context(node.parent, context) if node.parent is not None else None
        return replace(
            node,
            workspace_name=context.workspace_name,
            dimensions=dict(context.dimensions),
            parent=parent,
        )


@pytest.fixture
def page():
    return IndexableNode(
        identifier="page-1",
        path="/sites/acme/about",
        node_type=PAGE,
        properties={"title": "About us", "uriPathSegment": "about"},
    )


@pytest.fixture
def main_collection(page):
    return IndexableNode(
        identifier="main-1",
        path="/sites/acme/about/main",
        node_type=CONTENT_COLLECTION,
        parent=page,
    )


@pytest.fixture
def make_text(main_collection):
    def _make(identifier: str, title: str = "", text: str = "", **kwargs) -> IndexableNode:
        parent = kwargs.pop("parent", main_collection)
        properties = {}
        if title:
            properties["title"] = title
        if text:
            properties["text"] = text
        return IndexableNode(
            identifier=identifier,
            path=f"/sites/acme/about/main/{identifier}",
            node_type=TEXT,
            parent=parent,
            properties=properties,
            **kwargs,
        )
    return _make


# =============================================================================
# STORE
# =============================================================================

class FakeElasticsearch:
    """
    Just enough of the Elasticsearch client for the indexer.

    Scripted updates are applied with the Python merges matching each script.
    """

    def __init__(self):
        self.documents: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.versions: Dict[str, int] = {}
        self.bulk_requests: List[str] = []
        self.delete_by_query_calls: List[Dict[str, Any]] = []
        self.indices = MagicMock()

    def index_documents(self, index: str) -> Dict[str, Dict[str, Any]]:
        return self.documents.setdefault(index, {})

    def bulk(self, operations: str, index: str):
        self.bulk_requests.append(operations)
        documents = self.index_documents(index)
        lines = [json.loads(line) for line in operations.splitlines() if line]

        items = []
        position = 0
        while position < len(lines):
            action, meta = next(iter(lines[position].items()))
            position += 1
            document_id = meta["_id"]

            if action == "index":
                documents[document_id] = lines[position]
                position += 1
            elif action == "update":
                body = lines[position]
                position += 1
                if document_id in documents:
                    documents[document_id] = self._apply_script(documents[document_id], body["script"])
                else:
                    documents[document_id] = body["upsert"]
            elif action == "delete":
                documents.pop(document_id, None)
            self.versions[document_id] = self.versions.get(document_id, 0) + 1
            items.append({action: {"_id": document_id, "status": 200}})

        return {"took": 1, "errors": False, "items": items}

    @staticmethod
    def _apply_script(source: Dict[str, Any], script: Dict[str, Any]) -> Dict[str, Any]:
        params = script["params"]
        if script["source"] == FULLTEXT_MERGE_SCRIPT:
            return merge_fulltext_parts(
                source,
                params["identifier"],
                params["fulltext"],
                removed=params["nodeIsRemoved"],
                hidden=params["nodeIsHidden"],
            )
        if script["source"] == ROOT_DOCUMENT_SCRIPT:
            return merge_root_document(source, params["newData"])
        raise AssertionError(f"Unknown script: {script['source']}")

    def delete_by_query(self, index: str, query: Dict[str, Any], conflicts: str = "abort"):
        self.delete_by_query_calls.append({"index": index, "query": query, "conflicts": conflicts})
        return {"deleted": 0}

    def get(self, index: str, id: str):
        documents = self.index_documents(index)
        if id not in documents:
            raise api_error(NotFoundError, 404, "document missing")
        return {
            "_id": id,
            "_source": copy.deepcopy(documents[id]),
            "_seq_no": self.versions.get(id, 0),
            "_primary_term": 1,
        }

    def index(self, index: str, id: str, document: Dict[str, Any], op_type: str = "index",
              if_seq_no: int = None, if_primary_term: int = None):
        documents = self.index_documents(index)
        if op_type == "create" and id in documents:
            raise api_error(ConflictError, 409, "document exists")
        if if_seq_no is not None and self.versions.get(id, 0) != if_seq_no:
            raise api_error(ConflictError, 409, "version conflict")
        documents[id] = copy.deepcopy(document)
        self.versions[id] = self.versions.get(id, 0) + 1
        return {"_id": id, "result": "created"}


@pytest.fixture
def store():
    return FakeElasticsearch()
