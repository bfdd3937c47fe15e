"""
Shared fixtures for exporter tests.

Provides a run configuration factory and a fake Keycloak admin API served
through httpx.MockTransport, so fetcher and orchestrator tests never touch
the network.
"""

from __future__ import annotations

import json
from typing import Dict, List, Optional

import httpx
import pytest

from realm_export.models.config import ExportConfig

API_URI = "http://keycloak.iam.svc:8080/auth"


def make_config(**overrides) -> ExportConfig:
    """Build a valid ExportConfig with optional field overrides."""
    values = {
        "realm_names": ("acme",),
        "keycloak_api_uri": API_URI,
        "admin_username": "admin",
        "admin_password": "s3cret&pass",
        "secret_namespace": "iam-backups",
    }
    values.update(overrides)
    return ExportConfig(**values)


class FakeKeycloak:
    """
    Minimal Keycloak admin API.

    Records every request; token and export answers are configurable.
    """

    def __init__(self, exports: Optional[Dict[str, bytes]] = None):
        self.exports: Dict[str, bytes] = exports or {}
        self.export_status: Dict[str, int] = {}
        self.token_status = 200
        self.token_body: bytes = json.dumps({"access_token": "tok-1"}).encode()
        self.requests: List[httpx.Request] = []

    @property
    def token_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    @property
    def export_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path.endswith("/realms/master/protocol/openid-connect/token"):
            return httpx.Response(self.token_status, content=self.token_body)

        if request.method == "GET" and path.endswith("/importexport/realm"):
            realm = path.split("/realms/")[1].split("/")[0]
            status = self.export_status.get(realm, 200 if realm in self.exports else 404)
            if status != 200:
                return httpx.Response(status, content=f"Realm {realm} unavailable".encode())
            return httpx.Response(200, content=self.exports[realm])

        return httpx.Response(404, content=b"unknown endpoint")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=self.transport())


@pytest.fixture
def keycloak() -> FakeKeycloak:
    """Fake admin API with two realms."""
    return FakeKeycloak(
        exports={
            "acme": b'{"realm": "acme", "enabled": true}',
            "demo": b'{"realm": "demo", "enabled": false}',
        }
    )


@pytest.fixture
def config() -> ExportConfig:
    return make_config()
