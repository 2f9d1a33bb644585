"""
Knowledge source models.
"""

import html
import re
from dataclasses import dataclass

_TAG_RE = re.compile(r"<[^>]+>")


def strip_markup(text: str) -> str:
    """Remove HTML tags and unescape entities from a search excerpt."""
    return html.unescape(_TAG_RE.sub("", text or ""))


@dataclass(frozen=True)
class ArticleCandidate:
    """One search hit: article title plus a plain-text snippet."""
    
    title: str
    snippet: str = ""
    
    @classmethod
    def from_raw(cls, raw: dict) -> "ArticleCandidate":
        return cls(
            title=raw.get("title", ""),
            snippet=strip_markup(raw.get("excerpt") or ""),
        )
