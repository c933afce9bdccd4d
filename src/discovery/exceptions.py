"""
Exceptions raised by the discovery engine.

Structural errors (wrong input types, unparseable selection keys) raise.
Malformed content (a junk colour, an unknown category name) never does; it
degrades to an exclusion or to "no constraint".
"""

from typing import Any, Dict, List, Optional


class DiscoveryError(Exception):
    """Base class for discovery errors."""


class StructuralError(DiscoveryError, ValueError):
    """Input has the wrong shape or type."""


class InvalidFacetValueError(StructuralError):
    """A facet value list or category name is not made of strings."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


class InvalidSelectionKeyError(StructuralError):
    """A category selection key is not a non-empty string."""

    def __init__(self, key: Any):
        super().__init__(f"Invalid category selection key: {key!r}")
        self.key = key


class InvalidFilterSelectionError(StructuralError):
    """Request parameters could not be turned into a FilterSelection."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class CollaboratorError(DiscoveryError):
    """
    A catalog or storage collaborator call failed.

    The original exception is chained as ``__cause__``; callers decide
    whether to retry.
    """

    def __init__(self, collaborator: str, operation: str, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{collaborator}.{operation} failed{detail}")
        self.collaborator = collaborator
        self.operation = operation
        self.cause = cause
