"""CLI package for rdprune.

This package contains the Typer application.
"""

from rdprune.cli.main import app

__all__ = ["app"]
