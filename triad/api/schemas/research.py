"""
API Request/Response Schemas.

Pydantic models for API validation and serialization.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class ResearchRequest(BaseModel):
    """Request to run the agent pipeline for one question."""
    
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "question": "What is Retrieval Augmented Generation?",
                    "supervisorModel": "claude-3-5-haiku-latest",
                    "researcherModel": "claude-3-5-haiku-latest",
                    "synthesizerModel": "claude-3-5-sonnet-latest",
                },
                {
                    "question": "Who was Ada Lovelace?",
                    "researcherModel": "ollama/llama3.1:8b",
                },
            ]
        },
    )
    
    question: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="The question to answer",
    )
    supervisor_model: Optional[str] = Field(
        default=None,
        alias="supervisorModel",
        description="Model for the planning role (defaults to configuration)",
    )
    researcher_model: Optional[str] = Field(
        default=None,
        alias="researcherModel",
        description="Model for the tool-using researcher role",
    )
    synthesizer_model: Optional[str] = Field(
        default=None,
        alias="synthesizerModel",
        description="Model for the answer-writing role",
    )
    
    @field_validator("question")
    @classmethod
    def sanitize_question(cls, v: str) -> str:
        """Strip control characters and collapse whitespace."""
        v = "".join(char for char in v if ord(char) >= 32 or char in "\n\r\t")
        v = re.sub(r"\s+", " ", v).strip()
        
        if not v:
            raise ValueError("Question cannot be empty")
        
        return v


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class PlanInfo(BaseModel):
    search_term: str = Field(..., alias="searchTerm")
    response_format: str = Field(..., alias="responseFormat")
    
    model_config = ConfigDict(populate_by_name=True)


class ResearchResult(BaseModel):
    """Outcome of a blocking run: the answer plus every event that was emitted."""
    
    status: str = Field(..., description="complete or error")
    answer: Optional[str] = None
    plan: Optional[PlanInfo] = None
    error: Optional[str] = None
    events: list[dict[str, Any]] = Field(default_factory=list)
    duration_ms: int = 0


class PromptsResponse(BaseModel):
    """System instructions given to each role."""
    
    planner: str
    researcher: str
    synthesizer: str


class ServiceHealth(BaseModel):
    """Health status of a service."""
    name: str
    healthy: bool
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Overall health check response."""
    status: str = Field(..., description="healthy, degraded, or unhealthy")
    version: str
    services: list[ServiceHealth]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
