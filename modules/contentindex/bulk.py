"""
Bulk Batching

Index, update and delete operations are queued on an IndexingSession and sent
to Elasticsearch's ``_bulk`` endpoint on flush. A flush never fails as a whole
because of a single operation:

- an operation that cannot be JSON encoded is dropped and logged
- an item the store reports as failed is logged and counted
- the session queue is emptied after every flush attempt

Stores without scripted updates are handled with ``native_scripts=False``:
update operations are then applied one by one with get + merge + index, guarded
by optimistic concurrency control (``if_seq_no`` / ``if_primary_term``).
"""

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

from elasticsearch import ApiError, ConflictError, Elasticsearch, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationKind(Enum):
    """Bulk action of an operation."""
    INDEX = "index"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class BulkOperation:
    """One queued store mutation."""
    kind: OperationKind
    document_id: str
    type_name: str
    payload: Optional[Dict[str, Any]] = None
    upsert: Optional[Dict[str, Any]] = None
    # Python counterpart of an update script, used without native scripting
    merge: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = field(
        default=None, repr=False, compare=False
    )

    @classmethod
    def index(cls, document_id: str, type_name: str, source: Dict[str, Any]) -> "BulkOperation":
        return cls(OperationKind.INDEX, document_id, type_name, payload=source)

    @classmethod
    def update(
        cls,
        document_id: str,
        type_name: str,
        script: Dict[str, Any],
        upsert: Dict[str, Any],
        merge: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None,
    ) -> "BulkOperation":
        return cls(OperationKind.UPDATE, document_id, type_name, payload=script, upsert=upsert, merge=merge)

    @classmethod
    def delete(cls, document_id: str, type_name: str) -> "BulkOperation":
        return cls(OperationKind.DELETE, document_id, type_name)

    def header(self) -> Dict[str, Any]:
        return {self.kind.value: {"_id": self.document_id}}

    def body(self) -> Optional[Dict[str, Any]]:
        if self.kind is OperationKind.INDEX:
            return self.payload
        if self.kind is OperationKind.UPDATE:
            return {"script": self.payload, "upsert": self.upsert}
        return None

    def to_lines(self) -> List[str]:
        """NDJSON lines of this operation. Raises TypeError/ValueError if not encodable."""
        lines = [json.dumps(self.header(), allow_nan=False)]
        body = self.body()
        if body is not None:
            lines.append(json.dumps(body, allow_nan=False))
        return lines


class IndexingSession:
    """
    Pending operations and duplicate-cleanup suppression of one indexing run.

    Not thread safe. Concurrent indexing runs each use their own session.
    """

    def __init__(self):
        self._operations: List[BulkOperation] = []
        self.bulk_processing = False

    def add(self, operation: BulkOperation):
        self._operations.append(operation)

    @property
    def pending(self) -> List[BulkOperation]:
        return list(self._operations)

    def clear(self):
        self._operations = []

    def __len__(self) -> int:
        return len(self._operations)

    @contextmanager
    def processing_in_bulk(self) -> Iterator["IndexingSession"]:
        """Skip the per-document duplicate cleanup while the block runs."""
        previous = self.bulk_processing
        self.bulk_processing = True
        try:
            yield self
        finally:
            self.bulk_processing = previous

    def with_bulk_processing(self, work: Callable[[], T]) -> T:
        with self.processing_in_bulk():
            return work()


@dataclass
class BulkResult:
    """Counts of one flush."""
    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    dropped: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.dropped == 0


class BulkFlusher:
    """Sends a session's pending operations to the store."""

    def __init__(
        self,
        client: Elasticsearch,
        index_name_provider: Callable[[], str],
        native_scripts: bool = True,
        max_conflict_retries: int = 3,
    ):
        self.client = client
        self.index_name_provider = index_name_provider
        self.native_scripts = native_scripts
        self.max_conflict_retries = max_conflict_retries

    def flush(self, session: IndexingSession) -> BulkResult:
        result = BulkResult()
        operations = session.pending
        if not operations:
            return result

        try:
            if self.native_scripts:
                self._submit(operations, result)
            else:
                self._flush_read_modify_write(operations, result)
        finally:
            session.clear()

        if result.ok:
            logger.debug(f"Flushed {result.succeeded} operations to {self.index_name_provider()}")
        else:
            logger.warning(
                f"Flush to {self.index_name_provider()} finished with {result.failed} failed "
                f"and {result.dropped} dropped of {len(operations)} operations"
            )
        return result

    # === Bulk Requests ===

    def _serialize(
        self, operations: List[BulkOperation], result: BulkResult
    ) -> Tuple[List[BulkOperation], List[str]]:
        """Encode operations, returning those that made it plus their NDJSON lines."""
        accepted = []
        lines = []
        for operation in operations:
            try:
                operation_lines = operation.to_lines()
            except (TypeError, ValueError) as e:
                result.dropped += 1
                logger.error(
                    f"Bulk operation {operation.kind.value} {operation.document_id} "
                    f"could not be encoded as JSON: {e}"
                )
                continue
            accepted.append(operation)
            lines.extend(operation_lines)
        return accepted, lines

    def _submit(self, operations: List[BulkOperation], result: BulkResult):
        accepted, lines = self._serialize(operations, result)
        if not lines:
            return

        result.submitted += len(accepted)
        content = "\n".join(lines) + "\n"
        response = self.client.bulk(operations=content, index=self.index_name_provider())
        self._read_response(getattr(response, "body", response), len(accepted), result)

    def _read_response(self, body: Any, expected: int, result: BulkResult):
        items = body.get("items") if isinstance(body, dict) else None
        if not isinstance(items, list):
            result.failed += expected
            logger.error(f"Unreadable bulk response: {body}")
            return

        for item in items:
            if not isinstance(item, dict) or len(item) != 1:
                result.failed += 1
                logger.error(f"Unreadable bulk response item: {item}")
                continue

            action, outcome = next(iter(item.items()))
            if not isinstance(outcome, dict):
                result.failed += 1
                logger.error(f"Unreadable bulk response item: {item}")
                continue

            if outcome.get("error"):
                result.failed += 1
                result.errors.append(item)
                logger.error(f"Bulk {action} failed for {outcome.get('_id')}: {outcome['error']}")
            else:
                result.succeeded += 1

    # === Read-Modify-Write ===

    def _flush_read_modify_write(self, operations: List[BulkOperation], result: BulkResult):
        """Keeps submission order: bulk runs are sent before each update is applied."""
        run: List[BulkOperation] = []
        for operation in operations:
            if operation.kind is not OperationKind.UPDATE:
                run.append(operation)
                continue
            if run:
                self._submit(run, result)
                run = []
            self._apply_update(operation, result)
        if run:
            self._submit(run, result)

    def _apply_update(self, operation: BulkOperation, result: BulkResult):
        result.submitted += 1
        if operation.merge is None:
            result.failed += 1
            logger.error(f"Update {operation.document_id} has no merge function, skipped")
            return

        index_name = self.index_name_provider()
        for attempt in range(self.max_conflict_retries + 1):
            try:
                try:
                    current = self.client.get(index=index_name, id=operation.document_id)
                except NotFoundError:
                    self.client.index(
                        index=index_name,
                        id=operation.document_id,
                        document=operation.upsert,
                        op_type="create",
                    )
                else:
                    self.client.index(
                        index=index_name,
                        id=operation.document_id,
                        document=operation.merge(current["_source"]),
                        if_seq_no=current["_seq_no"],
                        if_primary_term=current["_primary_term"],
                    )
                result.succeeded += 1
                return
            except ConflictError:
                logger.debug(
                    f"Version conflict updating {operation.document_id}, "
                    f"attempt {attempt + 1} of {self.max_conflict_retries + 1}"
                )
            except ApiError as e:
                result.failed += 1
                result.errors.append({"update": {"_id": operation.document_id, "error": str(e)}})
                logger.error(f"Update failed for {operation.document_id}: {e}")
                return

        result.failed += 1
        result.errors.append({"update": {"_id": operation.document_id, "error": "version conflict"}})
        logger.error(
            f"Update of {operation.document_id} gave up after "
            f"{self.max_conflict_retries + 1} version conflicts"
        )
