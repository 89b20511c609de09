"""Inkwell selection rewrite service."""

from __future__ import annotations

from .app import SERVICE_VERSION, create_app
from .config import ServiceSettings

__all__ = ["SERVICE_VERSION", "ServiceSettings", "create_app"]
