"""
HTTP Transport — httpx client construction for the admin API.

Handles the two transport concerns of talking to Keycloak:

- TLS trust: a configured truststore replaces the platform trust. The store
  type follows the file suffix: PKCS#12 (``.p12``/``.pfx``) and Java
  keystores are opened with the truststore password, ``.pem``/``.crt``/``.cer``
  files are read as PEM bundles. Any other suffix is taken to be a Java
  keystore.
- Debug dumps: with ``debug`` on, every request and response is logged at
  DEBUG level with the authorization value masked.

No timeout is configured beyond the httpx default.
"""

from __future__ import annotations

import logging
import ssl
from pathlib import Path
from typing import List, Optional

import httpx
import jks
from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding, pkcs12
from jks.util import KeystoreException

from ..errors import ConfigError
from ..models.config import ExportConfig

logger = logging.getLogger(__name__)

PKCS12_SUFFIXES = (".p12", ".pfx")
PEM_SUFFIXES = (".pem", ".crt", ".cer")
USER_AGENT = "keycloak-realm-exporter/1.0"


def _to_pem(certificates: List[x509.Certificate]) -> str:
    if not certificates:
        raise ValueError("no certificates in truststore")
    return "".join(c.public_bytes(Encoding.PEM).decode("ascii") for c in certificates)


def _pkcs12_to_pem(data: bytes, password: str) -> str:
    """Extract every certificate of a PKCS#12 store as one PEM string."""
    store = pkcs12.load_pkcs12(data, password.encode("utf-8") if password else None)
    certificates = []
    if store.cert is not None:
        certificates.append(store.cert.certificate)
    certificates.extend(c.certificate for c in store.additional_certs)
    return _to_pem(certificates)


def _jks_to_pem(data: bytes, password: str) -> str:
    """Extract trusted and key-chain certificates of a JKS/JCEKS store as PEM."""
    store = jks.KeyStore.loads(data, password)
    ders = [entry.cert for entry in store.certs.values()]
    for entry in store.private_keys.values():
        ders.extend(der for _, der in entry.cert_chain)
    return _to_pem([x509.load_der_x509_certificate(der) for der in ders])


def build_ssl_context(path: Path, password: Optional[str]) -> ssl.SSLContext:
    """
    Build a TLS context trusting only the certificates of ``path``.

    Raises:
        ConfigError: if the password is missing or the store cannot be read
    """
    if password is None:
        raise ConfigError("No truststore password provided")

    suffix = path.suffix.lower()
    try:
        if suffix in PEM_SUFFIXES:
            context = ssl.create_default_context(cafile=str(path))
        elif suffix in PKCS12_SUFFIXES:
            pem = _pkcs12_to_pem(path.read_bytes(), password)
            context = ssl.create_default_context(cadata=pem)
        else:
            pem = _jks_to_pem(path.read_bytes(), password)
            context = ssl.create_default_context(cadata=pem)
    except (OSError, ValueError, ssl.SSLError, KeystoreException) as e:
        raise ConfigError(f"Unable to read truststore at {path}: {e}")

    logger.debug(f"Loaded truststore {path}")
    return context


def _mask_headers(headers: httpx.Headers) -> List[str]:
    lines = []
    for name, value in headers.items():
        if name.lower() == "authorization":
            value = value.split(" ", 1)[0] + " ****"
        lines.append(f"{name}: {value}")
    return lines


def _log_request(request: httpx.Request) -> None:
    headers = "\n".join(_mask_headers(request.headers))
    logger.debug(f"> {request.method} {request.url}\n{headers}")


def _log_response(response: httpx.Response) -> None:
    headers = "\n".join(_mask_headers(response.headers))
    logger.debug(
        f"< {response.status_code} {response.request.method} {response.request.url}\n{headers}"
    )


def build_http_client(
    config: ExportConfig,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """
    Create the httpx client used for token and export calls.

    Args:
        config: Run configuration (truststore, debug)
        transport: Optional transport override (tests use httpx.MockTransport)
    """
    verify: ssl.SSLContext | bool = True
    if config.truststore_path is not None:
        verify = build_ssl_context(config.truststore_path, config.truststore_password)

    event_hooks = {}
    if config.debug:
        event_hooks = {"request": [_log_request], "response": [_log_response]}

    return httpx.Client(
        verify=verify,
        transport=transport,
        event_hooks=event_hooks,
        headers={"User-Agent": USER_AGENT},
    )
