"""Entry point for ``python -m realm_export``."""

from .main import main

main()
