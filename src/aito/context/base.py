"""Context source interface."""

from abc import ABC, abstractmethod
from enum import Enum

from ..initiative.models import AgentRole


class SourceName(str, Enum):
	"""Keys of the built-in sources."""
	TEAM_STATUS = "team-status"
	GITHUB = "github"
	RAG = "rag"
	MARKET_DATA = "market-data"


class UnknownSourceError(Exception):
	"""Raised when a provider names a context source that is not registered."""
	pass


class ContextSource(ABC):
	"""
	A pluggable feed producing one text block for a role's prompt.

	Sources may be shared across roles; any state between calls belongs in
	the aggregator's cache, not on the source.
	"""

	name: str
	label: str
	# Seconds; 0 means never cache
	cache_ttl: int = 0

	@abstractmethod
	async def fetch(self, role: AgentRole) -> str:
		"""Text block describing the current situation for a role."""

	async def is_available(self) -> bool:
		return True
