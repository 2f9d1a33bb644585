"""
Role-parameterized model access.

Each role gets its own backend model; the adapter looks up the role's
system prompt and token budget and hands the call to the router.
"""

from typing import Optional, Sequence

from triad.config import AgentConfig, get_settings
from triad.core.pipeline.prompts import SYSTEM_PROMPTS
from triad.core.pipeline.roles import AgentRole, ModelSelection
from triad.services.llm.models import ModelResponse, ToolSpec, Turn
from triad.services.llm.router import ModelRouter
from triad.utils.logging import get_logger, run_context

logger = get_logger(__name__)


class RoleModelAdapter:
    """Sends a role's instructions and history to that role's model."""
    
    def __init__(
        self,
        router: ModelRouter,
        selection: ModelSelection,
        agent_config: Optional[AgentConfig] = None,
        temperature: float = 0.0,
    ):
        self.router = router
        self.selection = selection
        self.agent_config = agent_config or get_settings().agent
        self.temperature = temperature
    
    def max_tokens_for(self, role: AgentRole) -> int:
        return getattr(self.agent_config, f"{role.value}_max_tokens")
    
    async def invoke(
        self,
        role: AgentRole,
        history: Sequence[Turn],
        tools: Optional[Sequence[ToolSpec]] = None,
        system: Optional[str] = None,
    ) -> ModelResponse:
        model = self.selection.for_role(role)
        
        with run_context(role=role.value):
            logger.debug(f"Calling {model} ({len(history)} turns)")
            return await self.router.invoke(
                model=model,
                system=system if system is not None else SYSTEM_PROMPTS[role],
                history=history,
                max_tokens=self.max_tokens_for(role),
                temperature=self.temperature,
                tools=tools,
            )
