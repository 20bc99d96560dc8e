"""Ledgerline HTTP API layer.

Usage
-----
Create and run the application::

    from ledgerline.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # ingestion, timeline and search
"""

from ledgerline.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
