"""HTTP API for Excel Mapper."""

from .app import create_app

__all__ = ["create_app"]
