"""Lecture catalog with live and recorded lectures grouped by subject."""

__version__ = "0.1.0"
