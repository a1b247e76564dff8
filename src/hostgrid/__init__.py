"""Checkbox grids driven entirely through subdomain queries."""

from .api import app

__all__ = ["app"]
