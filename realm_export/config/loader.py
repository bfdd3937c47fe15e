"""
Config Loader — Resolve properties and build the run configuration.

Properties are collected from three sources, later ones overriding earlier
ones:

1. Files in the secrets directory (``/var/run/secrets/<propertyName>``,
   first line only). This is where mounted Kubernetes secrets land.
2. Environment variables named exactly like the property.
3. ``key=value`` command arguments. A bare ``key`` sets the property to "".

## Usage

    from realm_export.config.loader import create_config, resolve_properties

    properties = resolve_properties(["realmName=acme", "debug"])
    config = create_config(properties)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple

from pydantic import ValidationError

from ..errors import ConfigError
from ..models.config import (
    DEFAULT_SECRET_KEY_PATTERN,
    DEFAULT_SECRET_NAME_PATTERN,
    ExportConfig,
)
from ..models.secret import LookupPolicy
from .properties import SECRETS_PATH, ConfigurationProperty as P

logger = logging.getLogger(__name__)


def resolve_properties(
    args: Iterable[str] = (),
    secrets_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Merge secret files, environment and arguments into one property map.

    Args:
        args: ``key=value`` or bare ``key`` arguments
        secrets_path: Directory of mounted secret files (default /var/run/secrets)
        environ: Environment mapping (default os.environ)

    Returns:
        Mapping of property name to raw string value
    """
    properties: Dict[str, str] = {}
    _load_from_secrets(properties, Path(secrets_path or SECRETS_PATH))
    _load_from_env(properties, os.environ if environ is None else environ)
    _load_from_args(properties, args)
    return properties


def _load_from_secrets(properties: Dict[str, str], secrets_path: Path) -> None:
    for name in P.all_property_names():
        secret_file = secrets_path / name
        if not secret_file.is_file():
            continue
        try:
            lines = secret_file.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            logger.error(f"Unable to load secret at {secret_file}: {e}")
            continue
        if lines:
            properties[name] = lines[0]


def _load_from_env(properties: Dict[str, str], environ: Mapping[str, str]) -> None:
    for name in P.all_property_names():
        value = environ.get(name)
        if value is not None:
            properties[name] = value


def _load_from_args(properties: Dict[str, str], args: Iterable[str]) -> None:
    known = P.all_property_names()
    for arg in args:
        key, sep, value = arg.partition("=")
        if key not in known:
            logger.debug(f"Ignoring unknown argument: {key}")
            continue
        properties[key] = value if sep else ""


# =============================================================================
# Value parsing
# =============================================================================


def _get(properties: Mapping[str, str], prop: P) -> Optional[str]:
    return properties.get(prop.property_name)


def _get_required(properties: Mapping[str, str], prop: P, what: str) -> str:
    value = _get(properties, prop)
    if value is None or not value.strip():
        raise ConfigError(f"No {what} configured ({prop.property_name})")
    return value


def parse_flag(properties: Mapping[str, str], prop: P) -> bool:
    """
    Absent -> False. Present but blank -> True. Otherwise "true"
    (case-insensitive) -> True and anything else -> False.
    """
    value = _get(properties, prop)
    if value is None:
        return False
    if not value.strip():
        return True
    return value.strip().lower() == "true"


def parse_key_values(raw: Optional[str]) -> Dict[str, str]:
    """Parse ``k:v,k2:v2``. Entries without exactly one colon or with a blank key are dropped."""
    result: Dict[str, str] = {}
    if not raw:
        return result
    for entry in raw.split(","):
        parts = entry.split(":")
        if len(parts) != 2 or not parts[0].strip():
            continue
        result[parts[0].strip()] = parts[1].strip()
    return result


def parse_realm_names(properties: Mapping[str, str]) -> Tuple[str, ...]:
    """Collect realmName and realmNames, de-duplicated, blanks dropped."""
    names = []
    single = _get(properties, P.REALM_NAME)
    if single and single.strip():
        names.append(single.strip())
    for name in (_get(properties, P.REALM_NAMES) or "").split(","):
        if name.strip():
            names.append(name.strip())
    return tuple(dict.fromkeys(names))


def _parse_number(properties: Mapping[str, str], prop: P, kind: type, default):
    value = _get(properties, prop)
    if value is None or not value.strip():
        return default
    try:
        return kind(value.strip())
    except ValueError:
        raise ConfigError(f"Invalid {prop.property_name}: {value!r}")


def _parse_lookup_policy(properties: Mapping[str, str]) -> LookupPolicy:
    value = _get(properties, P.SECRET_LOOKUP_FAILURE)
    if value is None or not value.strip():
        return LookupPolicy.CREATE
    try:
        return LookupPolicy(value.strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in LookupPolicy)
        raise ConfigError(
            f"Invalid {P.SECRET_LOOKUP_FAILURE.property_name}: {value!r} (expected one of {allowed})"
        )


# =============================================================================
# Config construction
# =============================================================================


def create_config(properties: Mapping[str, str]) -> ExportConfig:
    """
    Build and validate the run configuration.

    Raises:
        ConfigError: if a required property is missing or a value is invalid
    """
    realm_names = parse_realm_names(properties)
    if not realm_names:
        raise ConfigError("No realm configured (realmName or realmNames)")

    api_uri = _get_required(properties, P.KEYCLOAK_API_URI, "keycloak api uri")
    username = _get_required(properties, P.ADMIN_USERNAME, "keycloak admin username")
    password = _get_required(properties, P.ADMIN_PASSWORD, "admin password")

    namespace = _get_required(properties, P.SECRET_NAMESPACE, "secret namespace").strip()

    truststore_path = _get(properties, P.KEYCLOAK_TRUSTSTORE_PATH) or None
    truststore_password = _get(properties, P.KEYCLOAK_TRUSTSTORE_PASSWORD)
    if truststore_path and truststore_password is None:
        raise ConfigError("No truststore password provided")

    try:
        return ExportConfig(
            realm_names=realm_names,
            keycloak_api_uri=api_uri.strip(),
            keycloak_host_header=_get(properties, P.KEYCLOAK_HOST_HEADER) or None,
            truststore_path=Path(truststore_path) if truststore_path else None,
            truststore_password=truststore_password,
            admin_username=username,
            admin_password=password,
            export_users=parse_flag(properties, P.EXPORT_USERS),
            secret_namespace=namespace,
            secret_name_pattern=_get(properties, P.SECRET_NAME_PATTERN)
            or DEFAULT_SECRET_NAME_PATTERN,
            secret_key_pattern=_get(properties, P.SECRET_KEY_PATTERN)
            or DEFAULT_SECRET_KEY_PATTERN,
            secret_labels=parse_key_values(_get(properties, P.SECRET_LABELS)),
            secret_annotations=parse_key_values(_get(properties, P.SECRET_ANNOTATIONS)),
            lookup_policy=_parse_lookup_policy(properties),
            max_retries=_parse_number(properties, P.MAX_RETRIES, int, 0),
            retry_backoff_seconds=_parse_number(properties, P.RETRY_BACKOFF_SECONDS, float, 1.0),
            token_ttl_seconds=_parse_number(properties, P.TOKEN_TTL_SECONDS, float, None),
            debug=parse_flag(properties, P.DEBUG),
        )
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}")
