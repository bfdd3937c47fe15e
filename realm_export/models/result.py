"""
Result Models — Per-realm outcomes and the run summary.

Every realm processed by the orchestrator produces an ExportResult,
regardless of success or failure. The RunResult aggregates them into the
process exit status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ExportResult(BaseModel):
    """
    Outcome of exporting and publishing one realm.
    """

    status: Literal["ok", "fetch_failed", "publish_failed"]
    realm: str
    secret_name: Optional[str] = None
    secret_key: Optional[str] = None
    size_bytes: Optional[int] = None
    error_message: Optional[str] = None
    status_code: Optional[int] = None
    ts_iso: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @property
    def succeeded(self) -> bool:
        return self.status == "ok"

    @classmethod
    def ok(
        cls,
        realm: str,
        secret_name: str,
        secret_key: str,
        size_bytes: int,
    ) -> "ExportResult":
        """Create a successful result."""
        return cls(
            status="ok",
            realm=realm,
            secret_name=secret_name,
            secret_key=secret_key,
            size_bytes=size_bytes,
        )

    @classmethod
    def fetch_failure(cls, realm: str, error: Exception) -> "ExportResult":
        """Create a result for a realm whose export could not be fetched."""
        return cls(
            status="fetch_failed",
            realm=realm,
            error_message=str(error),
            status_code=getattr(error, "status_code", None),
        )

    @classmethod
    def publish_failure(
        cls,
        realm: str,
        secret_name: str,
        secret_key: str,
        error: Exception,
    ) -> "ExportResult":
        """Create a result for a realm whose export could not be stored."""
        return cls(
            status="publish_failed",
            realm=realm,
            secret_name=secret_name,
            secret_key=secret_key,
            error_message=str(error),
            status_code=getattr(error, "status_code", None),
        )


@dataclass
class RunResult:
    """Result of one exporter run over all configured realms."""

    run_id: str
    started_at: str
    ended_at: Optional[str] = None
    duration_ms: int = 0

    results: List[ExportResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[str]:
        return [r.realm for r in self.results if r.succeeded]

    @property
    def failed_realms(self) -> List[str]:
        return [r.realm for r in self.results if not r.succeeded]

    @property
    def failed(self) -> bool:
        """True if any realm failed."""
        return any(not r.succeeded for r in self.results)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0
