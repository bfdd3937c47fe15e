"""
Configuration Validator — Check the resolved configuration before a run.

Reports which properties are set and from where, without touching the
network, and whether the configuration builds.

## Usage

    from realm_export.config.validator import ConfigValidator

    validator = ConfigValidator(properties)
    status = validator.validate()

    if not status.valid:
        print(status.error)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from ..errors import ConfigError
from ..models.config import ExportConfig
from .loader import create_config
from .properties import SENSITIVE_PROPERTIES, ConfigurationProperty

logger = logging.getLogger(__name__)

MASK = "********"

REQUIRED_PROPERTIES = [
    ConfigurationProperty.KEYCLOAK_API_URI.property_name,
    ConfigurationProperty.ADMIN_USERNAME.property_name,
    ConfigurationProperty.ADMIN_PASSWORD.property_name,
    ConfigurationProperty.SECRET_NAMESPACE.property_name,
]


@dataclass
class ConfigStatus:
    """Outcome of a configuration check."""

    valid: bool
    present: Dict[str, str] = field(default_factory=dict)
    missing: List[str] = field(default_factory=list)
    error: Optional[str] = None
    config: Optional[ExportConfig] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for logging."""
        return {
            "valid": self.valid,
            "present": self.present,
            "missing": self.missing,
            "error": self.error,
        }


def mask_properties(properties: Mapping[str, str]) -> Dict[str, str]:
    """Copy of the property map with secret values hidden."""
    return {
        name: (MASK if name in SENSITIVE_PROPERTIES and value else value)
        for name, value in sorted(properties.items())
    }


class ConfigValidator:
    """
    Validate a resolved property map.
    """

    def __init__(self, properties: Mapping[str, str]):
        self.properties = dict(properties)

    def missing_required(self) -> List[str]:
        missing = [
            name for name in REQUIRED_PROPERTIES
            if not (self.properties.get(name) or "").strip()
        ]
        realm_keys = (
            ConfigurationProperty.REALM_NAME.property_name,
            ConfigurationProperty.REALM_NAMES.property_name,
        )
        if not any((self.properties.get(k) or "").strip() for k in realm_keys):
            missing.insert(0, "/".join(realm_keys))
        return missing

    def validate(self) -> ConfigStatus:
        """Build the configuration and report problems instead of raising."""
        status = ConfigStatus(
            valid=False,
            present=mask_properties(self.properties),
            missing=self.missing_required(),
        )
        try:
            status.config = create_config(self.properties)
        except ConfigError as e:
            status.error = e.message
            logger.warning(f"Configuration invalid: {e.message}")
            return status

        status.valid = True
        return status
