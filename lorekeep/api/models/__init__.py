# lorekeep/api/models/__init__.py
"""Request/response schemas for the HTTP API."""
