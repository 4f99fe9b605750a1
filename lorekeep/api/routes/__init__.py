# lorekeep/api/routes/__init__.py
"""API routers."""

from . import changes, hashing, jobs, knowledge

__all__ = ["changes", "hashing", "jobs", "knowledge"]
