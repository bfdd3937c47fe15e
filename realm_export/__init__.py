"""
Keycloak Realm Exporter — publish Keycloak realm exports as Kubernetes secrets.
"""

__version__ = "1.0.0"
