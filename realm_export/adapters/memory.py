"""
In-Memory Secret Store — Non-persisting store for dry runs and tests.

Records are kept in a dict for the lifetime of the process and logged as
they are written.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from ..models.secret import LookupResult, SecretRecord
from .base import SecretStore

logger = logging.getLogger(__name__)


class InMemorySecretStore(SecretStore):
    """
    Dict-backed secret store.

    Keeps a call log (``operations``) so callers can check which store
    operations were issued.
    """

    def __init__(self):
        self.records: Dict[Tuple[str, str], SecretRecord] = {}
        self.operations: List[Tuple[str, str, str]] = []

    @property
    def name(self) -> str:
        return "memory"

    def get(self, namespace: str, name: str) -> Optional[SecretRecord]:
        return self.records.get((namespace, name))

    def read(self, namespace: str, name: str) -> LookupResult:
        self.operations.append(("read", namespace, name))
        record = self.records.get((namespace, name))
        if record is None:
            return LookupResult.not_found()
        return LookupResult.found(record.model_copy(deep=True))

    def create(self, record: SecretRecord) -> None:
        self.operations.append(("create", record.namespace, record.name))
        key = (record.namespace, record.name)
        if key in self.records:
            raise KeyError(f"secret {record.namespace}/{record.name} already exists")
        self.records[key] = record.model_copy(deep=True)
        logger.info(
            f"[MEMORY] Would create secret {record.namespace}/{record.name} "
            f"with keys {sorted(record.data)}"
        )

    def replace(self, record: SecretRecord) -> None:
        self.operations.append(("replace", record.namespace, record.name))
        key = (record.namespace, record.name)
        if key not in self.records:
            raise KeyError(f"secret {record.namespace}/{record.name} not found")
        self.records[key] = record.model_copy(deep=True)
        logger.info(
            f"[MEMORY] Would replace secret {record.namespace}/{record.name} "
            f"with keys {sorted(record.data)}"
        )
