"""
Export Configuration — Immutable settings for one exporter run.

Built by ``realm_export.config.loader.create_config`` from the resolved
property map. Instances are frozen; a run never mutates its configuration.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Dict, Optional, Tuple
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .secret import LookupPolicy

DEFAULT_SECRET_NAME_PATTERN = "realm-{0}-json-export-{1}-secret"
DEFAULT_SECRET_KEY_PATTERN = "{0}.json"


class ExportConfig(BaseModel):
    """Run configuration."""

    model_config = ConfigDict(frozen=True)

    realm_names: Tuple[str, ...]
    keycloak_api_uri: str
    keycloak_host_header: Optional[str] = None
    truststore_path: Optional[Path] = None
    truststore_password: Optional[str] = Field(default=None, repr=False)
    admin_username: str
    admin_password: str = Field(repr=False)
    export_users: bool = False

    secret_namespace: str
    secret_name_pattern: str = DEFAULT_SECRET_NAME_PATTERN
    secret_key_pattern: str = DEFAULT_SECRET_KEY_PATTERN
    secret_labels: Dict[str, str] = Field(default_factory=dict)
    secret_annotations: Dict[str, str] = Field(default_factory=dict)
    lookup_policy: LookupPolicy = LookupPolicy.CREATE

    max_retries: int = 0
    retry_backoff_seconds: float = 1.0
    token_ttl_seconds: Optional[float] = None

    debug: bool = False

    @field_validator("realm_names")
    @classmethod
    def _realms_not_empty(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("at least one realm name is required")
        return value

    @field_validator("keycloak_api_uri")
    @classmethod
    def _absolute_uri(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"not an absolute http(s) URI: {value!r}")
        return value

    @field_validator("max_retries")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("retry_backoff_seconds", "token_ttl_seconds")
    @classmethod
    def _finite_non_negative(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not (math.isfinite(value) and value >= 0):
            raise ValueError("must be a finite number, zero or greater")
        return value

    @property
    def api_base(self) -> str:
        """API base address without trailing slash."""
        return self.keycloak_api_uri.rstrip("/")
