"""Knowledge source - read-only article lookups."""
from .base import KnowledgeSource
from .models import ArticleCandidate
from .wikipedia import WikipediaService

__all__ = ["KnowledgeSource", "ArticleCandidate", "WikipediaService"]
