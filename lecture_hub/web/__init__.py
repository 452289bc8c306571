"""Web interface for the Lecture Hub catalog."""

from .server import create_app

__all__ = ["create_app"]
