"""Exception hierarchy for the cleanup engine.

AWS ``ClientError`` instances are translated into these types at the catalog
boundary so the rest of the engine never depends on botocore.
"""

from __future__ import annotations

from typing import Optional


class CleanupError(Exception):
    """Base class for all cleanup engine errors."""


class CatalogUnavailable(CleanupError):
    """Listing resources failed because the backing system could not be reached.

    Callers treat this as retryable: the affected (kind, environment) pair is
    aborted for this run while other pairs continue.
    """


class NoRuleDefined(CleanupError):
    """No retention rule exists for a (kind, environment) pair."""

    def __init__(self, kind: object, environment: object) -> None:
        self.kind = kind
        self.environment = environment
        super().__init__(f"No retention rule defined for {kind}/{environment}")


class TransientError(CleanupError):
    """A delete call failed in a way that may succeed on retry."""

    def __init__(self, message: str, error_code: Optional[str] = None) -> None:
        self.error_code = error_code
        super().__init__(message)


class ResourceNotFound(CleanupError):
    """The resource to delete no longer exists."""


class ConfigInvalid(CleanupError):
    """The retention rule configuration is malformed.

    Rules are safety-critical, so this aborts the entire run before any
    deletion takes place.
    """
