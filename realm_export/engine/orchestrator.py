"""
Export Run — The core execution loop.

Each run:
1. Generates a run id
2. For every configured realm, in turn:
   a. Fetches the realm export (token acquired on first use, then shared)
   b. Formats the secret name and key
   c. Publishes the export bytes
3. Records one ExportResult per realm
4. Returns a RunResult whose exit code is 1 if any realm failed

A failure only ends the affected realm; the loop moves on to the next one.
Realms already published stay published.

## Run ID Format

    R-{YYYYMMDD}T{HHMMSS}-{RANDOM}
    Example: R-20260204T221903-92929A

## Usage

    from realm_export.engine.orchestrator import build_orchestrator

    with build_orchestrator(config) as orchestrator:
        result = orchestrator.run()

    sys.exit(result.exit_code)
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

import httpx

from ..adapters.base import SecretStore
from ..adapters.keycloak import RealmExportFetcher
from ..adapters.transport import build_http_client
from ..errors import RealmExportError
from ..models.config import ExportConfig
from ..models.result import ExportResult, RunResult
from ..reliability.policy import RetryPolicy
from .naming import SecretNameFormatter
from .publisher import SecretPublisher

logger = logging.getLogger(__name__)


def generate_run_id() -> str:
    """Generate a unique run ID."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    suffix = uuid4().hex[:6].upper()
    return f"R-{ts}-{suffix}"


class ExportOrchestrator:
    """
    Drives fetch and publish for each configured realm.
    """

    def __init__(
        self,
        config: ExportConfig,
        fetcher: RealmExportFetcher,
        publisher: SecretPublisher,
        formatter: Optional[SecretNameFormatter] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.config = config
        self.fetcher = fetcher
        self.publisher = publisher
        self.formatter = formatter or SecretNameFormatter(
            config.secret_name_pattern,
            config.secret_key_pattern,
        )
        self._client = client

    def run(self) -> RunResult:
        """Export every configured realm and aggregate the outcome."""
        start_time = time.time()
        run_id = generate_run_id()
        result = RunResult(
            run_id=run_id,
            started_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        )

        logger.info(
            f"Starting export run {run_id}: {len(self.config.realm_names)} realm(s) "
            f"to namespace {self.config.secret_namespace}",
            extra={"run_id": run_id},
        )

        for realm in self.config.realm_names:
            outcome = self.export_realm(realm, run_id)
            result.results.append(outcome)

        result.ended_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        result.duration_ms = int((time.time() - start_time) * 1000)

        summary = (
            f"Run {run_id} finished in {result.duration_ms}ms: "
            f"{len(result.succeeded)} exported, {len(result.failed_realms)} failed"
        )
        if result.failed:
            logger.error(f"{summary} ({', '.join(result.failed_realms)})", extra={"run_id": run_id})
        else:
            logger.info(summary, extra={"run_id": run_id})

        return result

    def export_realm(self, realm: str, run_id: str = "") -> ExportResult:
        """Fetch and publish one realm. Never raises; failures become results."""
        extra = {"run_id": run_id, "realm": realm}
        logger.info(f"Exporting {realm}", extra=extra)

        try:
            with self.fetcher.fetch(realm) as stream:
                payload = stream.read()
        except RealmExportError as e:
            logger.error(f"Unable to load realm data for {realm}: {e.message}", extra=extra)
            return ExportResult.fetch_failure(realm, e)
        except Exception as e:
            logger.exception(f"Unexpected error loading realm data for {realm}: {e}", extra=extra)
            return ExportResult.fetch_failure(realm, e)

        secret_name, secret_key = self.formatter.format(realm)
        extra = {**extra, "secret_name": secret_name}
        try:
            self.publisher.publish(
                self.config.secret_namespace,
                secret_name,
                secret_key,
                payload,
            )
        except RealmExportError as e:
            logger.error(f"Unable to save realm data for {realm}: {e.message}", extra=extra)
            return ExportResult.publish_failure(realm, secret_name, secret_key, e)
        except Exception as e:
            logger.exception(f"Unexpected error saving realm data for {realm}: {e}", extra=extra)
            return ExportResult.publish_failure(realm, secret_name, secret_key, e)

        logger.info(
            f"{realm} successfully exported to {secret_name} ({len(payload)} bytes)",
            extra=extra,
        )
        return ExportResult.ok(realm, secret_name, secret_key, len(payload))

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ExportOrchestrator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def build_orchestrator(
    config: ExportConfig,
    store: Optional[SecretStore] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> ExportOrchestrator:
    """
    Wire the production components for ``config``.

    Args:
        config: Run configuration
        store: Secret store (default: KubernetesSecretStore)
        transport: Optional httpx transport override

    Raises:
        ConfigError: if the truststore or the kubernetes connection is unusable
    """
    policy = RetryPolicy.from_config(config)
    client = build_http_client(config, transport=transport)

    if store is None:
        from ..adapters.kubernetes import KubernetesSecretStore

        try:
            store = KubernetesSecretStore(debug=config.debug)
        except RealmExportError:
            client.close()
            raise

    fetcher = RealmExportFetcher(config, client, policy=policy)
    publisher = SecretPublisher(
        store,
        labels=config.secret_labels,
        annotations=config.secret_annotations,
        lookup_policy=config.lookup_policy,
        policy=policy,
    )
    return ExportOrchestrator(config, fetcher, publisher, client=client)
