"""
Configuration Properties — The catalogue of recognised property names.

The same camelCase name is used as the file name under the secrets
directory, as the environment variable, and as the ``key=value`` argument.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet

from ..models.config import DEFAULT_SECRET_KEY_PATTERN, DEFAULT_SECRET_NAME_PATTERN

SECRETS_PATH = "/var/run/secrets"


class ConfigurationProperty(Enum):
    """Recognised properties with their help text."""

    HELP = ("help", "Display help output and exit.")
    DEBUG = ("debug", "Debug output")
    REALM_NAME = ("realmName", "The name of a single realm")
    REALM_NAMES = ("realmNames", "A comma-separated list of realm names")
    KEYCLOAK_API_URI = (
        "keycloakApiUri",
        "The keycloak uri, eg http://keycloak.namespace.svc.cluster.local:8080/auth",
    )
    KEYCLOAK_TRUSTSTORE_PATH = (
        "keycloakTruststorePath",
        "The path to a truststore (JKS, PKCS#12 or PEM) when reaching keycloak over tls",
    )
    KEYCLOAK_TRUSTSTORE_PASSWORD = (
        "keycloakTruststorePassword",
        "The password to the keycloak truststore",
    )
    KEYCLOAK_HOST_HEADER = (
        "keycloakHostHeader",
        "The keycloak host header. This must match the token issuer, "
        "and is required if the api uri is not a public uri",
    )
    EXPORT_USERS = (
        "exportUsers",
        "Whether to export users as well. This might not fit within a kubernetes secret then.",
    )
    ADMIN_USERNAME = ("adminUsername", "The keycloak admin username")
    ADMIN_PASSWORD = ("adminPassword", "The keycloak admin password")
    SECRET_NAMESPACE = (
        "secretNamespace",
        "The namespace into which to create/update the secret containing the exported data. "
        "The service account running this will need access to read, create, update secrets "
        "in that namespace.",
    )
    SECRET_NAME_PATTERN = (
        "secretNamePattern",
        "A pattern used to build the secret name. {0} will be replaced with the realm name. "
        "{1} will be replaced with the iso local date. "
        f"Defaults to '{DEFAULT_SECRET_NAME_PATTERN}'",
    )
    SECRET_KEY_PATTERN = (
        "secretKeyPattern",
        "A pattern used to build the secret key. {0} will be replaced with the realm name. "
        f"Defaults to '{DEFAULT_SECRET_KEY_PATTERN}'",
    )
    SECRET_LABELS = (
        "secretLabels",
        "A comma-separated list of key:value labels to apply on created secrets",
    )
    SECRET_ANNOTATIONS = (
        "secretAnnotations",
        "A comma-separated list of key:value annotations to apply on created secrets",
    )
    SECRET_LOOKUP_FAILURE = (
        "secretLookupFailure",
        "What to do when an existing secret cannot be read: 'create' (default) "
        "attempts a create anyway, 'fail' marks the realm as failed",
    )
    MAX_RETRIES = (
        "maxRetries",
        "How many times a failed http call is retried on transport errors or 5xx. Defaults to 0",
    )
    RETRY_BACKOFF_SECONDS = (
        "retryBackoffSeconds",
        "Initial delay between retries, doubled on each attempt. Defaults to 1",
    )
    TOKEN_TTL_SECONDS = (
        "tokenTtlSeconds",
        "Re-acquire the admin token once it is older than this. Unset keeps one token per run",
    )

    def __init__(self, property_name: str, description: str):
        self.property_name = property_name
        self.description = description

    @classmethod
    def all_property_names(cls) -> FrozenSet[str]:
        return frozenset(p.property_name for p in cls)


# Values never echoed back by check-config or debug output
SENSITIVE_PROPERTIES = frozenset({
    ConfigurationProperty.ADMIN_PASSWORD.property_name,
    ConfigurationProperty.KEYCLOAK_TRUSTSTORE_PASSWORD.property_name,
})
