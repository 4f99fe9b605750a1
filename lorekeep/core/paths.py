# lorekeep/core/paths.py
"""
Central path management for lorekeep.

ALL components that need file paths should use this module.

Usage:
    from lorekeep.core.paths import LorePaths

    LorePaths.fingerprints()        # {workspace}/fingerprints.json
    LorePaths.set_workspace("/tmp/test_lorekeep")
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

DEFAULT_WORKSPACE_NAME = ".lorekeep"


class LorePaths:
    """
    Central path management.

    All methods are classmethods for static access. The workspace
    defaults to ./.lorekeep and can be overridden (tests, CLI flags).
    """

    _workspace: Optional[Path] = None

    @classmethod
    def set_workspace(cls, path: Optional[Union[str, Path]]) -> None:
        """Override the workspace root (None restores the default)."""
        cls._workspace = Path(path).resolve() if path is not None else None

    @classmethod
    def reset(cls) -> None:
        """Reset to the default workspace (CWD/.lorekeep)."""
        cls._workspace = None

    @classmethod
    def workspace(cls) -> Path:
        """The .lorekeep workspace directory."""
        if cls._workspace is not None:
            return cls._workspace
        return Path.cwd() / DEFAULT_WORKSPACE_NAME

    @classmethod
    def ensure_workspace(cls) -> Path:
        """Get workspace path and create it if it doesn't exist."""
        path = cls.workspace()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @classmethod
    def config(cls) -> Path:
        """Default config file: {workspace}/config.yaml"""
        return cls.workspace() / "config.yaml"

    @classmethod
    def fingerprints(cls) -> Path:
        """Fingerprint store: {workspace}/fingerprints.json"""
        return cls.workspace() / "fingerprints.json"

    @classmethod
    def jobs(cls) -> Path:
        """Processing job store: {workspace}/jobs.json"""
        return cls.workspace() / "jobs.json"

    @classmethod
    def knowledge(cls) -> Path:
        """Knowledge item store: {workspace}/knowledge.json"""
        return cls.workspace() / "knowledge.json"

    @classmethod
    def merge_audit(cls) -> Path:
        """Merge decision audit trail: {workspace}/merge_audit.jsonl"""
        return cls.workspace() / "merge_audit.jsonl"


__all__ = ["LorePaths", "DEFAULT_WORKSPACE_NAME"]
