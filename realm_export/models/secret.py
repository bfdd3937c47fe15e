"""
Secret Models — Records held by a secret store and lookup outcomes.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field


class LookupPolicy(str, Enum):
    """What the publisher does when a lookup cannot tell whether a secret exists."""

    CREATE = "create"  # treat as absent and attempt a create
    FAIL = "fail"      # surface the lookup error as a publish failure


class SecretRecord(BaseModel):
    """A namespaced key -> bytes entry with optional metadata."""

    namespace: str
    name: str
    data: Dict[str, bytes] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)


class LookupResult(BaseModel):
    """
    Outcome of reading a secret by name.

    Distinguishes a definite "not found" from a failure to tell. The
    publisher decides what a transient error means via its lookup policy.
    """

    status: Literal["found", "not_found", "transient_error"]
    record: Optional[SecretRecord] = None
    error_message: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def exists(self) -> bool:
        return self.status == "found"

    @classmethod
    def found(cls, record: SecretRecord) -> "LookupResult":
        return cls(status="found", record=record)

    @classmethod
    def not_found(cls) -> "LookupResult":
        return cls(status="not_found")

    @classmethod
    def transient_error(
        cls,
        message: str,
        status_code: Optional[int] = None,
    ) -> "LookupResult":
        return cls(
            status="transient_error",
            error_message=message,
            status_code=status_code,
        )
