"""
Abstract base class for knowledge sources.
"""

from abc import ABC, abstractmethod
from typing import Optional

from triad.services.knowledge.models import ArticleCandidate


class KnowledgeSource(ABC):
    """
    Read-only lookup interface used by the researcher's tools.
    
    Both operations are pure reads and safe to retry.
    """
    
    @abstractmethod
    async def search(self, query: str, limit: Optional[int] = None) -> list[ArticleCandidate]:
        """
        Find articles matching a query.
        
        Args:
            query: Free-text search query
            limit: Maximum number of candidates (defaults to configured max)
            
        Returns:
            Ordered candidates, best match first; empty if nothing matched
            
        Raises:
            KnowledgeSourceError: If the source cannot be reached
        """
        pass
    
    @abstractmethod
    async def fetch_summary(self, title: str) -> Optional[str]:
        """
        Fetch the summary of the article with this exact title.
        
        Returns:
            Summary text, or None when no such article exists
            
        Raises:
            KnowledgeSourceError: If the source cannot be reached
        """
        pass
    
    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the knowledge source is available."""
        pass
    
    async def close(self) -> None:
        return None
