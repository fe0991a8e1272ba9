"""Knowledge index backing the rag context source."""

from .index import KnowledgeHit, KnowledgeIndex, IndexStats

__all__ = ["IndexStats", "KnowledgeHit", "KnowledgeIndex"]
