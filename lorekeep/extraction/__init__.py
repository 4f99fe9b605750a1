# lorekeep/extraction/__init__.py
"""Extraction service contract, parsing and gateway."""

from .gateway import ExtractionGateway, HttpExtractionGateway
from .models import (
    ExtractedFact,
    ExtractionChunk,
    ExtractionRequest,
    ExtractionResponse,
    ExtractionType,
    ProcessingStats,
)
from .parsing import parse_extraction_response

__all__ = [
    "ExtractionGateway",
    "HttpExtractionGateway",
    "ExtractionChunk",
    "ExtractionRequest",
    "ExtractionResponse",
    "ExtractionType",
    "ExtractedFact",
    "ProcessingStats",
    "parse_extraction_response",
]
