"""
Error Taxonomy — Failures raised by the exporter.

    RealmExportError
    ├── ConfigError     missing or invalid setting, fatal before any network call
    ├── AuthError       token endpoint rejected the credentials or answered garbage
    ├── ExportError     realm export endpoint answered non-200 or was unreachable
    └── PublishError    secret store create/replace (or strict lookup) failed

HTTP-derived errors carry the upstream ``status_code`` (``None`` for transport
failures) and a ``retryable`` flag consulted by the retry policy.
"""

from __future__ import annotations

from typing import Optional


class RealmExportError(Exception):
    """Base class for all exporter errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retryable = retryable


class ConfigError(RealmExportError):
    """A required property is missing or a value is invalid."""


class AuthError(RealmExportError):
    """Bearer token could not be obtained."""


class ExportError(RealmExportError):
    """Realm export could not be retrieved."""


class PublishError(RealmExportError):
    """Realm export could not be written to the secret store."""


def is_retryable_status(status_code: int) -> bool:
    """Server-side failures may go away on their own; client errors will not."""
    return status_code >= 500
