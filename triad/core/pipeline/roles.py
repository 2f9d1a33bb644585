"""
Agent roles and per-role model selection.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from triad.config import Settings, get_settings


class AgentRole(str, Enum):
    PLANNER = "planner"
    RESEARCHER = "researcher"
    SYNTHESIZER = "synthesizer"


@dataclass(frozen=True)
class ModelSelection:
    """One independently chosen model identifier per role."""
    
    planner: str
    researcher: str
    synthesizer: str
    
    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        planner: Optional[str] = None,
        researcher: Optional[str] = None,
        synthesizer: Optional[str] = None,
    ) -> "ModelSelection":
        """Fill any unspecified role with its configured default."""
        models = (settings or get_settings()).llm.models
        return cls(
            planner=planner or models.planner,
            researcher=researcher or models.researcher,
            synthesizer=synthesizer or models.synthesizer,
        )
    
    def for_role(self, role: AgentRole) -> str:
        return getattr(self, role.value)
