# lorekeep/extraction/parsing.py
"""
Two-stage parsing of reasoning-service responses.

Stage 1 (strict): the whole body is a JSON object matching the contract.
Stage 2 (recovery): strip markdown fences and locate the first embedded
JSON object in the text, then validate that.

Both stages failing raises GatewayMalformedResponse.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from lorekeep.core.exceptions import GatewayMalformedResponse
from lorekeep.logging.tags import GATEWAY

from .models import ExtractionResponse

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_decoder = json.JSONDecoder()


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def parse_strict(text: str) -> Dict[str, Any]:
    """Parse text as a single JSON object. Raises ValueError otherwise."""
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def locate_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Find the first decodable JSON object embedded in text.

    Tries every '{' position in order; returns None if none decodes.
    """
    text = strip_code_fences(text)
    start = text.find("{")
    while start != -1:
        try:
            obj, _ = _decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            obj = None
        if isinstance(obj, dict):
            return obj
        start = text.find("{", start + 1)
    return None


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Strict parse, then recovery.

    Raises:
        GatewayMalformedResponse: If no JSON object can be found
    """
    try:
        return parse_strict(text)
    except ValueError:
        pass

    recovered = locate_json_object(text)
    if recovered is None:
        raise GatewayMalformedResponse(
            "Response contains no JSON object",
            {"body": text[:200]},
        )
    logger.debug(f"{GATEWAY} Recovered embedded JSON object from non-JSON body")
    return recovered


def parse_model(text: str, model: Type[M]) -> M:
    """Parse text into model using the two-stage strategy."""
    data = parse_json_object(text)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise GatewayMalformedResponse(
            f"Response does not match {model.__name__}: {e.error_count()} error(s)",
            {"errors": e.errors(include_url=False)},
        ) from e


def parse_extraction_response(text: str) -> ExtractionResponse:
    return parse_model(text, ExtractionResponse)


__all__ = [
    "strip_code_fences",
    "parse_strict",
    "locate_json_object",
    "parse_json_object",
    "parse_model",
    "parse_extraction_response",
]
