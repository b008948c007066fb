"""Command line interface for the council."""

from .app import app

__all__ = ["app"]
