"""
Keycloak Admin API — Token acquisition and realm export retrieval.

## Protocol

    POST {api}/realms/master/protocol/openid-connect/token
         client_id=admin-cli&grant_type=password&username=..&password=..
    GET  {api}/realms/{realm}/importexport/realm[?users=true]
         authorization: bearer <access_token>
         host: <keycloakHostHeader>          (only when configured)

Keycloak compares the request Host against its issuer URL, so when the
admin API is reached through an internal address the public host name has
to be sent explicitly.

## Usage

    client = build_http_client(config)
    fetcher = RealmExportFetcher(config, client)

    with fetcher.fetch("acme") as stream:
        data = stream.read()
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional
from urllib.parse import quote, quote_plus

import httpx

from ..errors import AuthError, ExportError, is_retryable_status
from ..models.config import ExportConfig
from ..reliability.policy import NO_RETRY, RetryPolicy

logger = logging.getLogger(__name__)

ADMIN_CLIENT_ID = "admin-cli"
TOKEN_PATH = "realms/master/protocol/openid-connect/token"
EXPORT_PATH = "realms/{realm}/importexport/realm"


class TokenAcquirer:
    """
    Obtains an admin bearer token through the password grant.

    The token is cached on the instance and reused for every call until
    the retry policy says it has expired (by default: never).
    """

    def __init__(
        self,
        config: ExportConfig,
        client: httpx.Client,
        policy: RetryPolicy = NO_RETRY,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.client = client
        self.policy = policy
        self._clock = clock
        self._token: Optional[str] = None
        self._acquired_at: float = 0.0

    @property
    def token_url(self) -> str:
        return f"{self.config.api_base}/{TOKEN_PATH}"

    def invalidate(self) -> None:
        """Forget the cached token."""
        self._token = None

    def acquire(self) -> str:
        """
        Return the cached token, requesting a new one when needed.

        Raises:
            AuthError: on non-200 status, transport failure, or a body
                without ``access_token``
        """
        if self._token is not None and not self.policy.token_expired(
            self._acquired_at, self._clock()
        ):
            return self._token

        self._token = self.policy.call(self._request_token, description="token request")
        self._acquired_at = self._clock()
        return self._token

    def _request_token(self) -> str:
        form = {
            "client_id": ADMIN_CLIENT_ID,
            "grant_type": "password",
            "username": self.config.admin_username,
            "password": self.config.admin_password,
        }
        body = "&".join(f"{quote_plus(k)}={quote_plus(v)}" for k, v in form.items())

        logger.debug(f"Requesting admin token from {self.token_url}")
        try:
            response = self.client.post(
                self.token_url,
                content=body.encode("utf-8"),
                headers={
                    "content-type": "application/x-www-form-urlencoded",
                    "accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise AuthError(
                f"Unable to authenticate to keycloak: {e}",
                retryable=True,
            ) from e

        if response.status_code != 200:
            raise AuthError(
                f"Unable to authenticate to keycloak: http {response.status_code} : {response.text}",
                status_code=response.status_code,
                retryable=is_retryable_status(response.status_code),
            )

        try:
            token = response.json()["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError(
                f"Unable to authenticate to keycloak: no access_token in response: {response.text}",
                status_code=response.status_code,
            ) from e

        if not isinstance(token, str) or not token:
            raise AuthError("Unable to authenticate to keycloak: empty access_token")

        logger.info("Acquired keycloak admin token")
        return token


class RealmExportStream:
    """
    An unread realm export response.

    ``read()`` drains and closes it; using it as a context manager closes
    it on exit when it is left unread.
    """

    def __init__(self, realm: str, response: httpx.Response):
        self.realm = realm
        self._response = response

    def read(self) -> bytes:
        """
        Drain the whole body and close the response.

        Raises:
            ExportError: if the connection breaks while reading
        """
        try:
            return self._response.read()
        except httpx.HTTPError as e:
            raise ExportError(
                f"Unable to read export of realm {self.realm}: {e}",
                retryable=True,
            ) from e
        finally:
            self.close()

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> "RealmExportStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class RealmExportFetcher:
    """
    Retrieves realm exports with a bearer token from a TokenAcquirer.
    """

    def __init__(
        self,
        config: ExportConfig,
        client: httpx.Client,
        acquirer: Optional[TokenAcquirer] = None,
        policy: RetryPolicy = NO_RETRY,
    ):
        self.config = config
        self.client = client
        self.policy = policy
        self.acquirer = acquirer or TokenAcquirer(config, client, policy=policy)

    def export_url(self, realm_name: str) -> str:
        path = EXPORT_PATH.format(realm=quote(realm_name, safe=""))
        query = "?users=true" if self.config.export_users else ""
        return f"{self.config.api_base}/{path}{query}"

    def fetch(self, realm_name: str) -> RealmExportStream:
        """
        Start the export of ``realm_name`` and return the unread body.

        Raises:
            AuthError: if no token could be obtained
            ExportError: on non-200 status or transport failure
        """
        token = self.acquirer.acquire()
        return self.policy.call(
            lambda: self._fetch_once(realm_name, token),
            description=f"export of realm {realm_name}",
        )

    def _fetch_once(self, realm_name: str, token: str) -> RealmExportStream:
        headers = {
            "accept": "application/json",
            "authorization": f"bearer {token}",
        }
        if self.config.keycloak_host_header:
            headers["host"] = self.config.keycloak_host_header

        request = self.client.build_request("GET", self.export_url(realm_name), headers=headers)
        try:
            response = self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise ExportError(
                f"Unable to export realm {realm_name}: {e}",
                retryable=True,
            ) from e

        if response.status_code != 200:
            try:
                body = response.read().decode("utf-8", errors="replace")
            finally:
                response.close()
            raise ExportError(
                f"Unable to export realm {realm_name}: http {response.status_code} : {body}",
                status_code=response.status_code,
                retryable=is_retryable_status(response.status_code),
            )

        return RealmExportStream(realm_name, response)
