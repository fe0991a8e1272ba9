"""
Context Builder - Aggregates context blocks from sources and formats prompts.

Each source is fetched through a per-(source, role) TTL cache. Unavailable,
slow or failing sources are skipped; their block is simply omitted.
"""

import asyncio
import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence, Union

from ..initiative.models import AgentRole, FocusConfig, FocusProfile
from .base import ContextSource, UnknownSourceError
from .cache import KeyValueCache, TTLCache

logger = logging.getLogger(__name__)

MAX_EXISTING_TITLES = 15


class ContextAggregator:
	"""
	Resolves source names and gathers their text blocks for a role.

	Concurrent gathers for the same role may fetch an uncached source twice;
	the second write just refreshes the cache entry.
	"""

	def __init__(
		self,
		sources: Iterable[ContextSource],
		cache: Optional[KeyValueCache] = None,
		fetch_timeout_s: float = 10.0,
	):
		self.sources: dict[str, ContextSource] = {source.name: source for source in sources}
		self.cache = cache if cache is not None else TTLCache()
		self.fetch_timeout_s = fetch_timeout_s

	def resolve(self, sources: Sequence[Union[str, ContextSource]]) -> list[ContextSource]:
		"""Map names to registered sources; instances pass through."""
		resolved = []
		for source in sources:
			if isinstance(source, ContextSource):
				resolved.append(source)
				continue
			try:
				resolved.append(self.sources[source])
			except KeyError:
				raise UnknownSourceError(
					f"Unknown context source '{source}'. Registered: {', '.join(sorted(self.sources))}"
				) from None
		return resolved

	async def gather_context(
		self,
		role: AgentRole,
		sources: Sequence[Union[str, ContextSource]],
	) -> list[str]:
		"""Text blocks in source order, omitting sources that are unavailable or fail."""
		resolved = self.resolve(sources)
		blocks = await asyncio.gather(*(self._fetch_one(source, role) for source in resolved))
		return [block for block in blocks if block is not None]

	async def _fetch_one(self, source: ContextSource, role: AgentRole) -> Optional[str]:
		key = (source.name, role.value)
		if source.cache_ttl > 0:
			cached = self.cache.get(key)
			if cached is not None:
				return cached

		try:
			if not await asyncio.wait_for(source.is_available(), timeout=self.fetch_timeout_s):
				logger.debug(f"Context source '{source.name}' unavailable, skipping")
				return None
			text = await asyncio.wait_for(source.fetch(role), timeout=self.fetch_timeout_s)
		except asyncio.TimeoutError:
			logger.warning(f"Context source '{source.name}' timed out after {self.fetch_timeout_s}s")
			return None
		except Exception as e:
			logger.warning(f"Context source '{source.name}' failed for {role.value}: {e}")
			return None

		if source.cache_ttl > 0:
			self.cache.set(key, text, source.cache_ttl)
		return text


def format_context_prompt(
	role: AgentRole,
	blocks: Sequence[str],
	focus: FocusConfig,
	profile: FocusProfile,
	existing_titles: Sequence[str] = (),
	now: Optional[datetime] = None,
) -> str:
	"""Render the initiative-generation prompt for a role."""
	now = now or datetime.now()
	name = role.value.upper()
	parts = [
		f"## Strategic Context for {name} ({now.strftime('%Y-%m-%d %H:%M')})",
		"",
		"Analyze the market conditions, news and project status below to identify opportunities.",
		"",
		"### Focus Settings",
		f"- Revenue Priority: {focus.revenue_focus}%",
		f"- Community Growth: {focus.community_growth}%",
		f"- Marketing vs Dev: {focus.marketing_vs_dev}% (higher = more marketing)",
		f"- Risk Tolerance: {focus.risk_tolerance}%",
		f"- Time Horizon: {focus.time_horizon}% (higher = longer term)",
		"",
		"---",
		"",
	]

	for block in blocks:
		if block:
			parts.extend([block, "", "---", ""])

	parts.append("### Existing Initiatives (avoid duplicates!)")
	parts.append(", ".join(existing_titles[:MAX_EXISTING_TITLES]) or "None")
	parts.append("")

	parts.append(f"## Your Role: {name}")
	parts.append("")
	parts.append("### Key Questions to Consider")
	parts.extend(f"- {q}" for q in profile.key_questions)
	parts.append("")
	parts.append("### Revenue Angles for Your Domain")
	parts.extend(f"- {r}" for r in profile.revenue_angles)
	parts.append("")

	parts.extend([
		"---",
		"",
		"## ACTION REQUIRED",
		"",
		"Based on the data above, propose a NEW initiative using:",
		"```json",
		"{",
		'  "actions": [{',
		'    "type": "propose_initiative",',
		'    "data": {',
		'      "title": "Clear, actionable title",',
		'      "description": "What, why, expected outcome",',
		'      "rationale": "Why NOW based on current data?",',
		'      "priority": "high|medium|low",',
		'      "effort": 1-10,',
		'      "revenueImpact": 0-10,',
		'      "tags": ["relevant", "tags"]',
		"    }",
		"  }]",
		"}",
		"```",
	])
	return "\n".join(parts)
