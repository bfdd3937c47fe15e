"""
Secret Store Base Class — Interface for secret store backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models.secret import LookupResult, SecretRecord


class SecretStore(ABC):
    """
    Abstract namespaced key/value secret store.

    ``create`` and ``replace`` raise on failure; the publisher wraps
    whatever they raise into a PublishError.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The backend identifier (e.g., 'kubernetes', 'memory')."""
        pass

    @abstractmethod
    def read(self, namespace: str, name: str) -> LookupResult:
        """
        Look up a secret by name.

        Never raises for lookup failures; they are reported as
        ``not_found`` or ``transient_error``.
        """
        pass

    @abstractmethod
    def create(self, record: SecretRecord) -> None:
        """Create a new secret. Fails if it already exists."""
        pass

    @abstractmethod
    def replace(self, record: SecretRecord) -> None:
        """Replace an existing secret wholesale."""
        pass
