"""RAG source: knowledge index hits for a role's scan topics."""

import asyncio
import logging
from typing import Optional, Protocol, Sequence

from ...initiative.models import AgentRole
from ...initiative.roles import FOCUS_PROFILES
from ..base import ContextSource, SourceName

logger = logging.getLogger(__name__)

HITS_PER_TOPIC = 3
MAX_HITS = 5
SNIPPET_CHARS = 200


class Searcher(Protocol):
	"""Anything shaped like KnowledgeIndex; hits expose .source and .text."""

	def has_index(self) -> bool: ...

	def search(self, query: str, limit: int = 5) -> list: ...


class RAGSource(ContextSource):
	name = SourceName.RAG.value
	label = "RAG Knowledge"
	cache_ttl = 300

	def __init__(self, searcher: Searcher, topics_override: Optional[dict[AgentRole, Sequence[str]]] = None):
		self.searcher = searcher
		self.topics_override = topics_override or {}

	def topics_for(self, role: AgentRole) -> Sequence[str]:
		if role in self.topics_override:
			return self.topics_override[role]
		return FOCUS_PROFILES[role].scan_topics

	async def is_available(self) -> bool:
		try:
			# Checks the table only; the embedding model loads on the first fetch
			return await asyncio.to_thread(self.searcher.has_index)
		except Exception as e:
			logger.debug(f"Knowledge index unavailable: {e}")
			return False

	async def fetch(self, role: AgentRole) -> str:
		lines = []
		for topic in self.topics_for(role):
			hits = await asyncio.to_thread(self.searcher.search, topic, HITS_PER_TOPIC)
			lines.extend(f"[{hit.source}] {hit.text[:SNIPPET_CHARS]}" for hit in hits)
		body = lines[:MAX_HITS] or ["No relevant knowledge found."]
		return "\n".join([f"### {self.label}", *body])
