"""
Index Alias Rotation

Consumers always search the alias (e.g. ``contentindex``). A full rebuild
writes into a fresh physical index ``<alias>-<postfix>``; once it is complete
the alias is moved over in a single ``_aliases`` request, so searches switch
from the old generation to the new one without a gap.

    contentindex ──▶ contentindex-1700000000      (before)
    contentindex ──▶ contentindex-1700003600      (after update_alias)

Old generations are left in place by the rotation and removed separately with
``remove_stale_indices``.
"""

import logging
from typing import Any, Dict, List

from elasticsearch import Elasticsearch, NotFoundError

from .exceptions import AliasRotationError

logger = logging.getLogger(__name__)


class AliasRotationManager:
    """Moves the alias between physical index generations."""

    def __init__(self, client: Elasticsearch, alias_name: str, index_name_postfix: str = ""):
        self.client = client
        self.alias_name = alias_name
        self.index_name_postfix = index_name_postfix

    @property
    def index_name(self) -> str:
        """Physical index name: the alias plus the postfix, if one is set."""
        if self.index_name_postfix:
            return f"{self.alias_name}-{self.index_name_postfix}"
        return self.alias_name

    def set_index_name_postfix(self, postfix: str):
        self.index_name_postfix = postfix

    def bound_indices(self) -> List[str]:
        """Physical indices the alias currently points to (empty if the alias is missing)."""
        try:
            response = self.client.indices.get_alias(name=self.alias_name)
        except NotFoundError:
            return []
        body: Dict[str, Any] = getattr(response, "body", response)
        return list(body.keys())

    def update_alias(self):
        """Point the alias at the current physical index, and at nothing else."""
        index_name = self.index_name
        if index_name == self.alias_name:
            raise AliasRotationError(
                "update_alias is only allowed once an index name postfix has been set"
            )

        if not self.client.indices.exists(index=index_name):
            raise AliasRotationError(
                f"The target index '{index_name}' for update_alias does not exist"
            )

        actions = []
        bound = self.bound_indices()
        if not bound:
            # a real index named like the alias would block creating the alias
            if self.client.indices.exists(index=self.alias_name):
                logger.info(f"Deleting index '{self.alias_name}' to replace it by an alias")
                self.client.indices.delete(index=self.alias_name)
        for bound_index in bound:
            actions.append({"remove": {"index": bound_index, "alias": self.alias_name}})
        actions.append({"add": {"index": index_name, "alias": self.alias_name}})

        self.client.indices.update_aliases(actions=actions)
        logger.info(f"Alias '{self.alias_name}' now points to '{index_name}' (was {bound or 'unbound'})")

    def remove_stale_indices(self) -> List[str]:
        """
        Delete every ``<alias>-*`` index the alias does not point to.

        Returns the names of the deleted indices.
        """
        bound = set(self.bound_indices())
        response = self.client.indices.get(index="*", expand_wildcards="open,closed")
        all_indices = list(getattr(response, "body", response).keys())

        prefix = f"{self.alias_name}-"
        stale = [
            index_name for index_name in all_indices
            if index_name.startswith(prefix) and index_name not in bound
        ]

        if stale:
            self.client.indices.delete(index=",".join(stale))
            logger.info(f"Removed stale indices: {', '.join(stale)}")
        return stale
