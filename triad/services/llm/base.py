"""
Abstract base class for language-model backends.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from triad.services.llm.models import GenerationConfig, ModelResponse, ToolSpec, Turn


class ModelClient(ABC):
    """
    Abstract interface for LLM providers.
    
    A backend turns a system prompt, a conversation history and an optional
    tool schema into a :class:`ModelResponse`. Retries for transient
    transport failures happen inside the backend.
    """
    
    provider_name: str = "unknown"
    
    @abstractmethod
    async def invoke(
        self,
        system: str,
        history: Sequence[Turn],
        config: GenerationConfig,
        tools: Optional[Sequence[ToolSpec]] = None,
    ) -> ModelResponse:
        """
        Send one request to the model.
        
        Args:
            system: System instructions for the role
            history: Ordered conversation turns
            config: Model identifier and generation settings
            tools: Optional tool schema the model may call
            
        Returns:
            ModelResponse with decoded segments and stop reason
            
        Raises:
            LLMError: If the call fails after retries
        """
        pass
    
    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the backend is reachable."""
        pass
    
    async def close(self) -> None:
        """Release network resources."""
        return None
