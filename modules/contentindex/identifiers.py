"""
Document Identifiers

Every indexed node variant gets the SHA-1 of its context path as document id:

    /sites/acme/about/main/text1@live;language=de,en&country=DE
    └──────── node path ───────┘ └ws┘ └──── dimension values ───┘

The node type is not part of the id, so a node keeps its document id when its
type changes. When a node is indexed during publishing, the workspace segment
is swapped for the target workspace before hashing.
"""

import hashlib
from typing import Dict, List, Optional

from .exceptions import InvalidContextPathError

WORKSPACE_SEPARATOR = "@"
DIMENSION_SEPARATOR = ";"


def build_context_path(
    path: str,
    workspace_name: str,
    dimensions: Optional[Dict[str, List[str]]] = None,
) -> str:
    """Build a context path from node path, workspace and dimension values."""
    context_path = f"{path}{WORKSPACE_SEPARATOR}{workspace_name}"
    if dimensions:
        encoded = "&".join(
            f"{name}={','.join(values)}" for name, values in dimensions.items()
        )
        context_path += f"{DIMENSION_SEPARATOR}{encoded}"
    return context_path


def workspace_of(context_path: str) -> Optional[str]:
    """Return the workspace segment of a context path, if it has one."""
    _, separator, rest = context_path.partition(WORKSPACE_SEPARATOR)
    if not separator:
        return None
    workspace, _, _ = rest.partition(DIMENSION_SEPARATOR)
    return workspace


def replace_workspace(context_path: str, workspace_name: str) -> str:
    """
    Swap the workspace segment of a context path.

    Only the segment between ``@`` and ``;`` is touched. Node names or
    dimension values that happen to contain the workspace name stay as they are.
    """
    path, separator, rest = context_path.partition(WORKSPACE_SEPARATOR)
    if not separator:
        raise InvalidContextPathError(
            f"Context path '{context_path}' has no workspace segment"
        )
    _, dimension_separator, dimensions = rest.partition(DIMENSION_SEPARATOR)
    return f"{path}{WORKSPACE_SEPARATOR}{workspace_name}{dimension_separator}{dimensions}"


def calculate_document_identifier(
    context_path: str,
    target_workspace: Optional[str] = None,
) -> str:
    """Stable document id for a context path, optionally moved to another workspace."""
    if target_workspace is not None:
        context_path = replace_workspace(context_path, target_workspace)
    return hashlib.sha1(context_path.encode("utf-8")).hexdigest()
