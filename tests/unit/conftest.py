# tests/unit/conftest.py
"""
Fixtures for unit tests.

Provides fake reasoning services so the job pipeline and the merge
arbiter can be exercised without network calls.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import pytest

from lorekeep.extraction.models import ExtractionRequest, ExtractionResponse, ExtractionType
from lorekeep.ingest.documents import Document


def pytest_collection_modifyitems(items):
    """Add tier markers to unit tests based on type.

    Tier 1 (every commit): Pure logic tests with no I/O or fakes
    Tier 2 (PR merge): Tests with fakes, files or an event loop
    """
    TIER1_PATTERNS = [
        "test_hashing",
        "test_chunking",
        "test_ratelimit",
        "test_parsing",
        "test_change_tracker",
        "test_change_applicator",
        "test_job_models",
    ]

    for item in items:
        fspath = str(item.fspath)

        if "/unit/" not in fspath and "\\unit\\" not in fspath:
            continue

        has_tier = any(marker.name.startswith("tier") for marker in item.iter_markers())
        if has_tier:
            continue

        if any(pattern in fspath for pattern in TIER1_PATTERNS):
            item.add_marker(pytest.mark.tier1)
        else:
            item.add_marker(pytest.mark.tier2)


PAST = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeGateway:
    """
    Extraction gateway returning canned responses per extraction type.

    A value may be an ExtractionResponse or an exception to raise. When
    gate is given the call waits for it before answering.
    """

    def __init__(
        self,
        responses: Optional[Dict[ExtractionType, Union[ExtractionResponse, Exception]]] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.responses = responses or {}
        self.gate = gate
        self.requests: List[ExtractionRequest] = []

    @property
    def types(self) -> List[str]:
        return [ExtractionType(r.extraction_type).value for r in self.requests]

    async def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        result = self.responses.get(ExtractionType(request.extraction_type), ExtractionResponse())
        if isinstance(result, Exception):
            raise result
        return result


class FakeMergeService:
    """Merge evaluation service returning a fixed body (or raising)."""

    def __init__(self, body: Union[str, Dict[str, Any], Exception, None] = None, delay: float = 0.0):
        if body is None:
            body = {"action": "keep_distinct", "reason": "different", "confidence": 0.8}
        self.body = body
        self.delay = delay
        self.payloads: List[Dict[str, Any]] = []

    async def evaluate(self, payload: Dict[str, Any]) -> str:
        self.payloads.append(payload)
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.body, Exception):
            raise self.body
        if isinstance(self.body, dict):
            return json.dumps(self.body)
        return self.body


def make_document(doc_id: str, text: str, last_modified: datetime = PAST) -> Document:
    return Document(id=doc_id, text=text, last_modified=last_modified, title=doc_id)


@pytest.fixture
def fake_gateway_cls():
    return FakeGateway


@pytest.fixture
def fake_merge_cls():
    return FakeMergeService


@pytest.fixture
def doc():
    """Factory fixture: doc("ch1.md", "text")."""
    return make_document


@pytest.fixture
def story_responses() -> Dict[ExtractionType, ExtractionResponse]:
    """Two-stage extraction answers for a short story."""
    characters = ExtractionResponse.model_validate(
        {"characters": [{"name": "Mara", "description": "A smuggler", "confidence_score": 0.8}]}
    )
    knowledge = ExtractionResponse.model_validate(
        {
            "characters": [
                {"name": "Mara", "description": "A smuggler with a debt", "confidence_score": 0.85}
            ],
            "relationships": [
                {
                    "character_a_name": "Mara",
                    "character_b_name": "Tomas",
                    "relationship_type": "rivals",
                    "description": "Old partners",
                    "confidence_score": 0.7,
                }
            ],
            "plotThreads": [{"title": "The harbour heist", "description": "A job gone wrong"}],
            "processingStats": {"chunksProcessed": 2, "extractionsFound": 3},
        }
    )
    return {
        ExtractionType.CHARACTERS: characters,
        ExtractionType.COMPREHENSIVE: knowledge,
        ExtractionType.RELATIONSHIPS: knowledge,
    }


@pytest.fixture
def story_documents() -> List[Document]:
    return [
        make_document("ch1.md", "Mara counted the crates.\n\nTomas watched from the pier."),
        make_document("ch2.md", "The heist went wrong before midnight."),
    ]
