"""Shared test helpers for aito tests."""

from datetime import datetime
from typing import Optional

from aito.initiative import AgentRole, Initiative, InitiativePriority, InitiativeSource
from aito.llm import LLMProvider, LLMResult, LLMSession, ProviderType


class FakeClock:
	"""Manually advanced monotonic clock, in seconds."""

	def __init__(self, start: float = 1000.0):
		self.now = start

	def __call__(self) -> float:
		return self.now

	def advance(self, seconds: float) -> None:
		self.now += seconds


class FakeSleep:
	"""Records requested sleeps and advances a FakeClock instead of waiting."""

	def __init__(self, clock: Optional[FakeClock] = None):
		self.clock = clock
		self.calls: list[float] = []

	async def __call__(self, seconds: float) -> None:
		self.calls.append(seconds)
		if self.clock is not None:
			self.clock.advance(seconds)


class ScriptedProvider(LLMProvider):
	"""Provider returning queued results; records every session it sees."""

	def __init__(self, provider: ProviderType, results: Optional[list[LLMResult]] = None, available: bool = True):
		self.name = provider
		self.results = list(results or [])
		self.available = available
		self.sessions: list[LLMSession] = []
		self.probes = 0

	async def is_available(self) -> bool:
		self.probes += 1
		return self.available

	async def execute(self, session: LLMSession) -> LLMResult:
		self.sessions.append(session)
		if self.results:
			return self.results.pop(0)
		return ok(self.name, f"{self.name.value} output")

	async def execute_with_retry(self, session: LLMSession) -> LLMResult:
		return await self.execute(session)


def ok(provider: ProviderType, output: str = "done") -> LLMResult:
	return LLMResult(success=True, output=output, provider=provider, duration_ms=10)


def failed(provider: ProviderType, error: str = "boom", retryable: bool = False) -> LLMResult:
	return LLMResult(success=False, output="", provider=provider, error=error, retryable=retryable)


def make_initiative(
	title: str,
	tags: tuple[str, ...] = ("revenue",),
	assignee: AgentRole = AgentRole.CFO,
	revenue_impact: int = 5,
	effort: int = 5,
	priority: InitiativePriority = InitiativePriority.MEDIUM,
	source: InitiativeSource = InitiativeSource.DERIVED,
	created_at: Optional[datetime] = None,
) -> Initiative:
	kwargs = {}
	if created_at is not None:
		kwargs["created_at"] = created_at
	return Initiative(
		title=title,
		description=f"{title} description",
		tags=frozenset(tags),
		suggested_assignee=assignee,
		revenue_impact=revenue_impact,
		effort=effort,
		priority=priority,
		source=source,
		**kwargs,
	)
