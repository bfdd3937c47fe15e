"""
Kubernetes Secret Store — Opaque secrets through the CoreV1 API.

## Connection

Loaded the way a pod expects it: the in-cluster service account (CA,
bearer token, namespace, API endpoint from the environment), falling back
to the local kubeconfig when not running in a cluster.

The service account needs ``get``, ``create`` and ``update`` on secrets in
the target namespace.
"""

from __future__ import annotations

import base64
import logging
from typing import Dict, Optional

from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from ..errors import ConfigError, PublishError, is_retryable_status
from ..models.secret import LookupResult, SecretRecord
from .base import SecretStore

logger = logging.getLogger(__name__)


def load_core_api(debug: bool = False) -> client.CoreV1Api:
    """
    Bootstrap a CoreV1Api client.

    Raises:
        ConfigError: if neither in-cluster nor kubeconfig settings are usable
    """
    try:
        k8s_config.load_incluster_config()
        logger.debug("Using in-cluster kubernetes configuration")
    except ConfigException:
        try:
            k8s_config.load_kube_config()
            logger.debug("Using local kubeconfig")
        except (ConfigException, OSError) as e:
            raise ConfigError(f"Unable to load kubernetes configuration: {e}")

    configuration = client.Configuration.get_default_copy()
    configuration.debug = debug
    return client.CoreV1Api(client.ApiClient(configuration))


def _encode_data(data: Dict[str, bytes]) -> Dict[str, str]:
    return {k: base64.b64encode(v).decode("ascii") for k, v in data.items()}


def _decode_data(data: Optional[Dict[str, str]]) -> Dict[str, bytes]:
    return {k: base64.b64decode(v) for k, v in (data or {}).items()}


def build_secret(record: SecretRecord) -> client.V1Secret:
    """Construct a V1Secret from a record."""
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        type="Opaque",
        metadata=client.V1ObjectMeta(
            name=record.name,
            namespace=record.namespace,
            labels=dict(record.labels) or None,
            annotations=dict(record.annotations) or None,
        ),
        data=_encode_data(record.data),
    )


class KubernetesSecretStore(SecretStore):
    """
    Secret store backed by namespaced Kubernetes secrets.
    """

    def __init__(self, api: Optional[client.CoreV1Api] = None, debug: bool = False):
        self.api = api if api is not None else load_core_api(debug=debug)

    @property
    def name(self) -> str:
        return "kubernetes"

    def read(self, namespace: str, name: str) -> LookupResult:
        try:
            secret = self.api.read_namespaced_secret(name=name, namespace=namespace)
            metadata = secret.metadata or client.V1ObjectMeta()
            record = SecretRecord(
                namespace=metadata.namespace or namespace,
                name=metadata.name or name,
                data=_decode_data(secret.data),
                labels=metadata.labels or {},
                annotations=metadata.annotations or {},
            )
        except ApiException as e:
            if e.status == 404:
                return LookupResult.not_found()
            return LookupResult.transient_error(
                f"HTTP error reading secret {namespace}/{name}: {e.status} {e.reason}",
                status_code=e.status,
            )
        except Exception as e:
            # urllib3 transport errors and undecodable data surface as plain exceptions
            return LookupResult.transient_error(
                f"Error reading secret {namespace}/{name}: {e}"
            )

        return LookupResult.found(record)

    def create(self, record: SecretRecord) -> None:
        try:
            self.api.create_namespaced_secret(
                namespace=record.namespace,
                body=build_secret(record),
            )
        except ApiException as e:
            raise PublishError(
                f"Unable to create secret {record.namespace}/{record.name}: {e.status} {e.reason}",
                status_code=e.status,
                retryable=is_retryable_status(e.status or 0),
            ) from e

    def replace(self, record: SecretRecord) -> None:
        try:
            self.api.replace_namespaced_secret(
                name=record.name,
                namespace=record.namespace,
                body=build_secret(record),
            )
        except ApiException as e:
            raise PublishError(
                f"Unable to replace secret {record.namespace}/{record.name}: {e.status} {e.reason}",
                status_code=e.status,
                retryable=is_retryable_status(e.status or 0),
            ) from e
