# lorekeep/logging/tags.py
"""
Central place for logging subsystem tags.

Changing a tag here updates it project-wide.
"""

STALENESS = "[STALENESS]"
JOBS = "[JOBS]"
GATEWAY = "[GATEWAY]"
MERGE = "[MERGE]"
DIFF = "[DIFF]"
APPLY = "[APPLY]"
SUPERVISOR = "[SUPERVISOR]"
STORAGE = "[STORAGE]"
API = "[API]"
CLI = "[CLI]"
