# lorekeep/extraction/models.py
"""
Request/response contract of the extraction service.

Request:
    {chunks: [{id, content, chunk_index, document_id}], project_id,
     extraction_type, existing_knowledge?}

Response:
    {characters?, relationships?, plotThreads?, timelineEvents?,
     worldBuilding?, themes?, conflicts?,
     processingStats: {chunksProcessed, extractionsFound, confidenceAverage, processingTime}}
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_FACT_CONFIDENCE = 0.5


class ExtractionType(str, Enum):
    CHARACTERS = "characters"
    RELATIONSHIPS = "relationships"
    PLOT_THREADS = "plot_threads"
    TIMELINE_EVENTS = "timeline_events"
    COMPREHENSIVE = "comprehensive"


class ExtractionChunk(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    content: str
    chunk_index: int = Field(..., ge=0)
    document_id: str


class ExtractionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    chunks: List[ExtractionChunk]
    project_id: str
    extraction_type: ExtractionType
    existing_knowledge: Optional[Dict[str, Any]] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class ExtractedFact(BaseModel):
    """
    One extracted item.

    Services name things differently per type (name, title, event,
    character_a/character_b); they are normalised onto name here. Unknown
    keys are kept so nothing the service returns is lost.
    """

    model_config = ConfigDict(extra="allow")

    name: str = ""
    description: str = ""
    evidence: Optional[str] = None
    confidence_score: float = DEFAULT_FACT_CONFIDENCE

    @model_validator(mode="before")
    @classmethod
    def _normalise_name(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("name"):
            return data
        data = dict(data)
        if data.get("character_a_name") and data.get("character_b_name"):
            data["name"] = f"{data['character_a_name']} / {data['character_b_name']}"
        else:
            for key in ("title", "event", "event_name"):
                if data.get(key):
                    data["name"] = str(data[key])
                    break
        return data

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return DEFAULT_FACT_CONFIDENCE
        return min(1.0, max(0.0, float(v)))


class ProcessingStats(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    chunks_processed: int = Field(0, alias="chunksProcessed")
    extractions_found: int = Field(0, alias="extractionsFound")
    confidence_average: float = Field(0.0, alias="confidenceAverage")
    processing_time: float = Field(0.0, alias="processingTime")


class ExtractionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    characters: List[ExtractedFact] = Field(default_factory=list)
    relationships: List[ExtractedFact] = Field(default_factory=list)
    plot_threads: List[ExtractedFact] = Field(default_factory=list, alias="plotThreads")
    timeline_events: List[ExtractedFact] = Field(default_factory=list, alias="timelineEvents")
    world_building: List[ExtractedFact] = Field(default_factory=list, alias="worldBuilding")
    themes: List[ExtractedFact] = Field(default_factory=list)
    conflicts: List[Dict[str, Any]] = Field(default_factory=list)
    processing_stats: ProcessingStats = Field(
        default_factory=ProcessingStats, alias="processingStats"
    )

    def facts_by_category(self) -> Dict[str, List[ExtractedFact]]:
        """Extracted facts keyed by knowledge category."""
        return {
            "character": list(self.characters),
            "relationship": list(self.relationships),
            "plot_thread": list(self.plot_threads),
            "timeline_event": list(self.timeline_events),
            "world_building": list(self.world_building),
            "theme": list(self.themes),
        }

    @property
    def fact_count(self) -> int:
        return sum(len(v) for v in self.facts_by_category().values())


__all__ = [
    "DEFAULT_FACT_CONFIDENCE",
    "ExtractionType",
    "ExtractionChunk",
    "ExtractionRequest",
    "ExtractedFact",
    "ProcessingStats",
    "ExtractionResponse",
]
