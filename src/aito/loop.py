"""
Selection Loop - Picks and executes the next initiative for each role.

Per role and tick:
1. Skip while the role's cooldown is running
2. Rank validated candidates (bootstrap backlog, pending proposals and
   supplied ones), dropping titles already executed
3. Gather the role's context blocks and build the prompt
4. Execute through the router and record the outcome
5. Keep the initiatives the output proposes as candidates for later ticks

Roles run as independent asyncio tasks, so a slow or failing role never
holds up the others.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from .context import ContextAggregator, format_context_prompt
from .github_client import GitHubIssueClient
from .initiative import (
	AgentRole,
	DeduplicationTracker,
	Initiative,
	InitiativeProvider,
	ProviderRegistry,
	ScoredInitiative,
	issue_body,
	issue_labels,
	parse_proposals,
	rank_initiatives,
)
from .llm import LLMResult, LLMRouter, LLMSession, TaskContext, TaskType
from .store import AgentStateStore, AgentStatus

logger = logging.getLogger(__name__)

CandidateSource = Callable[[AgentRole], Iterable[Initiative]]


class CycleStatus(str, Enum):
	EXECUTED = "executed"
	FAILED = "failed"
	COOLDOWN = "cooldown"
	NO_CANDIDATES = "no_candidates"


@dataclass(frozen=True)
class CycleOutcome:
	role: AgentRole
	status: CycleStatus
	selected: Optional[ScoredInitiative] = None
	result: Optional[LLMResult] = None
	proposals: list[Initiative] = field(default_factory=list)

	@property
	def title(self) -> Optional[str]:
		return self.selected.initiative.title if self.selected else None


class CooldownTracker:
	"""Time since each role last completed an initiative."""

	def __init__(self, clock: Callable[[], float] = time.monotonic):
		self.clock = clock
		self._last: dict[AgentRole, float] = {}

	def remaining(self, role: AgentRole, cooldown_seconds: float) -> float:
		last = self._last.get(role)
		if last is None:
			return 0.0
		return max(0.0, cooldown_seconds - (self.clock() - last))

	def is_cooling_down(self, role: AgentRole, cooldown_seconds: float) -> bool:
		return self.remaining(role, cooldown_seconds) > 0

	def mark(self, role: AgentRole) -> None:
		self._last[role] = self.clock()

	def reset(self, role: AgentRole) -> None:
		self._last.pop(role, None)


def _initiative_brief(initiative: Initiative) -> str:
	tags = ", ".join(sorted(initiative.tags)) or "none"
	return "\n".join([
		"## Current Initiative",
		f"- Title: {initiative.title}",
		f"- Description: {initiative.description}",
		f"- Priority: {initiative.priority.value}, effort {initiative.effort}/10, "
		f"revenue impact {initiative.revenue_impact}/10",
		f"- Tags: {tags}",
		"",
		"Work on this initiative now, then propose the next initiative as described above.",
	])


class SelectionLoop:
	"""Runs the selection-and-execution cycle for every registered role."""

	def __init__(
		self,
		router: LLMRouter,
		providers: ProviderRegistry,
		aggregator: ContextAggregator,
		store: AgentStateStore,
		tick_seconds: float = 60,
		session_timeout_ms: int = 300000,
		candidates: Optional[CandidateSource] = None,
		dedup: Optional[DeduplicationTracker] = None,
		cooldowns: Optional[CooldownTracker] = None,
		github: Optional[GitHubIssueClient] = None,
	):
		self.router = router
		self.providers = providers
		self.aggregator = aggregator
		self.store = store
		self.tick_seconds = tick_seconds
		self.session_timeout_ms = session_timeout_ms
		self.candidates = candidates
		self.dedup = dedup or DeduplicationTracker()
		self.cooldowns = cooldowns or CooldownTracker()
		self.github = github
		self.running = False
		self._tasks: list[asyncio.Task] = []

	async def start(self) -> None:
		"""Prepare the store and reload titles executed by earlier runs."""
		await self.store.init()
		for title in await self.store.executed_titles():
			self.dedup.mark_created(title)
		logger.info(f"Selection loop ready: {len(self.providers)} roles, {len(self.dedup)} executed initiatives")

	def select(
		self,
		provider: InitiativeProvider,
		proposals: Iterable[Initiative] = (),
	) -> list[ScoredInitiative]:
		"""Ranked candidates the role may take on, best first."""
		supplied = list(self.candidates(provider.role)) if self.candidates else []
		pool = [
			initiative
			for initiative in (*provider.bootstrap_initiatives(), *proposals, *supplied)
			if provider.validate(initiative) and not self.dedup.was_created(initiative.title)
		]
		return rank_initiatives(
			pool,
			provider.scoring_strategy,
			provider.focus_config,
			existing_titles=self.dedup.titles,
		)

	async def accept_proposals(self, provider: InitiativeProvider, output: str) -> list[Initiative]:
		"""
		Keep the initiatives proposed in a successful output as future candidates.

		Proposals already executed, already pending, or matching an existing
		GitHub issue are skipped. Each accepted one gets a tracking issue when
		GitHub is configured; the proposal is kept even if issue creation fails.
		"""
		accepted = []
		for initiative in parse_proposals(output, provider.role):
			title = initiative.title
			if self.dedup.was_created(title) or await self.store.has_proposal(title):
				logger.info(f"{provider.role.value}: proposal '{title}' already known, skipping")
				continue
			if not provider.validate(initiative):
				logger.warning(f"{provider.role.value}: proposal '{title}' failed validation")
				continue

			issue_url = None
			if self.github is not None and self.github.is_configured():
				existing = await self.github.find_similar_issue(title)
				if existing is not None:
					logger.info(f"{provider.role.value}: proposal '{title}' matches issue #{existing.number}, skipping")
					continue
				issue = await self.github.create_issue(
					title,
					issue_body(initiative, provider.focus_profile),
					labels=issue_labels(initiative),
				)
				issue_url = issue.url if issue else None

			if await self.store.add_proposal(initiative, issue_url):
				accepted.append(initiative)
				logger.info(f"{provider.role.value}: accepted proposal '{title}'")
		return accepted

	async def run_cycle(self, role: AgentRole) -> CycleOutcome:
		"""One selection-and-execution pass for a role."""
		provider = self.providers.get(role)

		remaining = self.cooldowns.remaining(role, provider.get_cooldown_seconds())
		if remaining > 0:
			logger.debug(f"{role.value}: cooling down, {remaining:.0f}s left")
			return CycleOutcome(role, CycleStatus.COOLDOWN)

		ranked = self.select(provider, await self.store.pending_proposals())
		if not ranked:
			logger.info(f"{role.value}: no candidate initiatives")
			return CycleOutcome(role, CycleStatus.NO_CANDIDATES)

		selected = ranked[0]
		initiative = selected.initiative
		logger.info(f"{role.value}: selected '{initiative.title}' (score {selected.score:.2f})")
		await self.store.set_status(role.value, AgentStatus.RUNNING, initiative.title)
		try:
			return await self._execute(provider, selected)
		except Exception as e:
			await self.store.record_loop(role.value, AgentStatus.FAILED, initiative.title, f"{type(e).__name__}: {e}")
			raise

	async def _execute(self, provider: InitiativeProvider, selected: ScoredInitiative) -> CycleOutcome:
		role = provider.role
		initiative = selected.initiative
		blocks = await self.aggregator.gather_context(role, provider.context_sources)
		prompt = format_context_prompt(
			role,
			blocks,
			provider.focus_config,
			provider.focus_profile,
			existing_titles=self.dedup.titles,
		)
		session = LLMSession(
			prompt=f"{prompt}\n\n{_initiative_brief(initiative)}",
			timeout_ms=self.session_timeout_ms,
		)
		context = TaskContext(task_type=TaskType.LOOP.value, agent_type=role.value)
		result = await self.router.execute(session, context)

		if not result.success:
			logger.error(f"{role.value}: initiative '{initiative.title}' failed: {result}")
			await self.store.record_loop(role.value, AgentStatus.FAILED, initiative.title, result.error)
			return CycleOutcome(role, CycleStatus.FAILED, selected, result)

		self.dedup.mark_created(initiative.title)
		self.cooldowns.mark(role)
		await self.store.mark_executed(initiative.title, role.value)
		proposals = await self.accept_proposals(provider, result.output)
		await self.store.record_loop(role.value, AgentStatus.COOLDOWN, initiative.title, result.output)
		logger.info(
			f"{role.value}: completed '{initiative.title}' with {result.provider.value} in {result.duration_ms}ms, "
			f"{len(proposals)} new proposals"
		)
		return CycleOutcome(role, CycleStatus.EXECUTED, selected, result, proposals)

	async def _run_role(self, role: AgentRole) -> None:
		while self.running:
			try:
				await self.run_cycle(role)
			except Exception as e:
				logger.exception(f"{role.value}: error in selection cycle: {e}")
			await asyncio.sleep(self.tick_seconds)

	async def run_forever(self, roles: Optional[Iterable[AgentRole]] = None) -> None:
		"""Run every role until stop() is called."""
		await self.start()
		self.running = True
		roles = list(roles) if roles is not None else self.providers.roles()
		self._tasks = [asyncio.create_task(self._run_role(role), name=f"loop-{role.value}") for role in roles]
		logger.info(f"Selection loop started for {', '.join(r.value for r in roles)} (tick {self.tick_seconds}s)")
		try:
			await asyncio.gather(*self._tasks)
		except asyncio.CancelledError:
			logger.info("Selection loop cancelled")
		finally:
			self._tasks = []

	async def stop(self) -> None:
		logger.info("Stopping selection loop...")
		self.running = False
		for task in self._tasks:
			task.cancel()
