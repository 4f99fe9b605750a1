# lorekeep/api/__init__.py
"""HTTP surface (FastAPI)."""
