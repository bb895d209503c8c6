"""Exceptions raised by the content indexer."""


class ContentIndexError(Exception):
    """Base class for indexer errors."""
    pass


class AliasRotationError(ContentIndexError):
    """Raised when the index alias cannot be moved to a new index generation."""
    pass


class InvalidContextPathError(ContentIndexError, ValueError):
    """Raised when a context path has no workspace segment to work with."""
    pass
