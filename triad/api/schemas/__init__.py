"""API request/response schemas."""
from .research import (
    ResearchRequest,
    ResearchResult,
    PlanInfo,
    PromptsResponse,
    ServiceHealth,
    HealthResponse,
)

__all__ = [
    "ResearchRequest",
    "ResearchResult",
    "PlanInfo",
    "PromptsResponse",
    "ServiceHealth",
    "HealthResponse",
]
