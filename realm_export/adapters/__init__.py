"""
Adapters — Keycloak admin API client and secret store backends.
"""
