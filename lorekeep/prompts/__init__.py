# lorekeep/prompts/__init__.py
"""Prompt templates sent to the reasoning services."""

from .merge import build_merge_prompt

__all__ = ["build_merge_prompt"]
