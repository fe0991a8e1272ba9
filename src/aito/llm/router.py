"""
LLM Router - Chooses a primary and fallback provider per task.

Routing policy is pluggable and chosen at startup. Whatever the policy says,
providers that are unconfigured, unavailable or have an open circuit are
substituted before execution, and primary differs from fallback whenever
more than one provider is usable.
"""

import asyncio
import dataclasses
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..resilience import CircuitBreakerRegistry, default_registry
from ..usage import UsageRecord, UsageStore, estimate_tokens
from .models import ModelTier, select_tier_for_context
from .types import (
	LLMProvider,
	LLMResult,
	LLMSession,
	ProviderType,
	RoutingDecision,
	RoutingStrategy,
	TaskContext,
	breaker_name,
)

logger = logging.getLogger(__name__)

CLAUDE = ProviderType.CLAUDE
GEMINI = ProviderType.GEMINI

SIMPLE_TASK_TYPES = {"spawn_worker", "operational", "create_task", "alert"}
REASONING_TASK_TYPES = {"propose_decision", "vote"}
STRATEGIC_ROLES = {"ceo", "dao", "cto"}


class ProviderNotConfiguredError(Exception):
	"""Raised when the router is built without providers or asked for an unknown one."""
	pass


class RoutingPolicy(ABC):
	"""Decides the preferred primary/fallback pair for a task."""

	strategy: RoutingStrategy

	@abstractmethod
	async def decide(self, context: Optional[TaskContext]) -> RoutingDecision:
		pass


class TaskTypePolicy(RoutingPolicy):
	"""Simple work goes to Gemini, reasoning and unknown work to Claude."""

	strategy = RoutingStrategy.TASK_TYPE

	async def decide(self, context: Optional[TaskContext]) -> RoutingDecision:
		if context is None:
			return RoutingDecision(CLAUDE, GEMINI, "No context provided - using Claude (default)")

		if context.requires_reasoning:
			return RoutingDecision(CLAUDE, GEMINI, "Complex reasoning required - using Claude")

		task_type = context.task_type
		if task_type in SIMPLE_TASK_TYPES:
			primary, reason = GEMINI, f"Simple task ({task_type}) - using Gemini"
		elif task_type in REASONING_TASK_TYPES:
			primary, reason = CLAUDE, f"Reasoning task ({task_type}) - using Claude"
		elif task_type == "loop":
			if context.estimated_complexity == "complex":
				primary, reason = CLAUDE, "Complex agent loop - using Claude"
			else:
				primary, reason = GEMINI, "Simple agent loop - using Gemini"
		else:
			primary, reason = CLAUDE, f"Unknown task type ({task_type}) - using Claude for safety"

		if context.priority == "critical":
			primary, reason = CLAUDE, f"{reason} (overridden: critical priority)"

		fallback = GEMINI if primary == CLAUDE else CLAUDE
		return RoutingDecision(primary, fallback, reason)


class AgentRolePolicy(RoutingPolicy):
	"""Strategic roles go to Claude, operational roles to Gemini."""

	strategy = RoutingStrategy.AGENT_ROLE

	async def decide(self, context: Optional[TaskContext]) -> RoutingDecision:
		agent_type = context.agent_type if context else None
		if not agent_type:
			return RoutingDecision(CLAUDE, GEMINI, "No agent type - using Claude")
		if agent_type in STRATEGIC_ROLES:
			return RoutingDecision(CLAUDE, GEMINI, f"Strategic agent ({agent_type}) - using Claude")
		return RoutingDecision(GEMINI, CLAUDE, f"Operational agent ({agent_type}) - using Gemini")


class LoadBalancePolicy(RoutingPolicy):
	"""Routes by which backends currently answer their availability probe."""

	strategy = RoutingStrategy.LOAD_BALANCE

	def __init__(self, check_availability: Callable[[], Awaitable[dict[ProviderType, bool]]]):
		self.check_availability = check_availability

	async def decide(self, context: Optional[TaskContext]) -> RoutingDecision:
		availability = await self.check_availability()
		claude_up = availability.get(CLAUDE, False)
		gemini_up = availability.get(GEMINI, False)

		if not claude_up and gemini_up:
			return RoutingDecision(GEMINI, CLAUDE, "Claude unavailable - using Gemini")
		if not gemini_up and claude_up:
			return RoutingDecision(CLAUDE, GEMINI, "Gemini unavailable - using Claude")
		return RoutingDecision(CLAUDE, GEMINI, "Both available - using Claude (default)")


class GeminiPreferPolicy(RoutingPolicy):
	"""Cost optimization: Gemini unless the task is critical or needs reasoning."""

	strategy = RoutingStrategy.GEMINI_PREFER

	async def decide(self, context: Optional[TaskContext]) -> RoutingDecision:
		if context and (context.priority == "critical" or context.requires_reasoning):
			return RoutingDecision(CLAUDE, GEMINI, "Critical task - using Claude despite Gemini preference")
		return RoutingDecision(GEMINI, CLAUDE, "Cost optimization - preferring Gemini")


class ClaudeOnlyPolicy(RoutingPolicy):
	strategy = RoutingStrategy.CLAUDE_ONLY

	async def decide(self, context: Optional[TaskContext]) -> RoutingDecision:
		return RoutingDecision(CLAUDE, CLAUDE, "Claude-only mode enabled")


@dataclass
class RouterConfig:
	strategy: RoutingStrategy = RoutingStrategy.TASK_TYPE
	enable_fallback: bool = True


class LLMRouter:
	"""
	Routes sessions to providers, then executes with fallback.

	Execution order: select tier, route, check quota, run the primary's retry
	loop, record usage, and on failure run the fallback once.
	"""

	def __init__(
		self,
		providers: dict[ProviderType, LLMProvider],
		config: Optional[RouterConfig] = None,
		usage: Optional[UsageStore] = None,
		registry: Optional[CircuitBreakerRegistry] = None,
	):
		if not providers:
			raise ProviderNotConfiguredError("At least one LLM provider must be configured")
		self.providers = dict(providers)
		self.config = config or RouterConfig()
		self.usage = usage
		self.registry = registry or default_registry
		self.policy = self._build_policy(self.config.strategy)
		# Last probe results; providers never probed are assumed available
		self._availability: dict[ProviderType, bool] = {}
		logger.info(
			f"LLM router initialized (strategy={self.config.strategy.value}, "
			f"providers={', '.join(p.value for p in self.providers)})"
		)

	def _build_policy(self, strategy: RoutingStrategy) -> RoutingPolicy:
		if strategy == RoutingStrategy.AGENT_ROLE:
			return AgentRolePolicy()
		if strategy == RoutingStrategy.LOAD_BALANCE:
			return LoadBalancePolicy(self.check_availability)
		if strategy == RoutingStrategy.GEMINI_PREFER:
			return GeminiPreferPolicy()
		if strategy == RoutingStrategy.CLAUDE_ONLY:
			return ClaudeOnlyPolicy()
		return TaskTypePolicy()

	def get_provider(self, provider: ProviderType) -> LLMProvider:
		try:
			return self.providers[provider]
		except KeyError:
			raise ProviderNotConfiguredError(f"Provider {provider.value} is not configured") from None

	async def check_availability(self) -> dict[ProviderType, bool]:
		"""Probe every configured provider concurrently."""
		names = list(self.providers)
		results = await asyncio.gather(*(self.providers[name].is_available() for name in names))
		self._availability = dict(zip(names, results))
		logger.info(
			"Provider availability: "
			+ ", ".join(f"{name.value}={ok}" for name, ok in self._availability.items())
		)
		return dict(self._availability)

	def is_healthy(self, provider: ProviderType) -> bool:
		"""Configured, not known to be unavailable, and its circuit is not open."""
		if provider not in self.providers:
			return False
		if not self._availability.get(provider, True):
			return False
		return not self.registry.is_open(breaker_name(provider))

	async def route(self, context: Optional[TaskContext] = None) -> RoutingDecision:
		decision = await self.policy.decide(context)
		routed = self._apply_health(decision)
		logger.debug(f"Routing decision: {routed.primary.value} -> {routed.fallback.value} ({routed.reason})")
		return routed

	def _apply_health(self, decision: RoutingDecision) -> RoutingDecision:
		ordered = [decision.primary, decision.fallback]
		ordered += [p for p in self.providers if p not in ordered]
		configured = [p for p in ordered if p in self.providers]

		usable = [p for p in configured if self.is_healthy(p)]
		if not usable:
			# Nothing healthy; the preferred provider fails fast through its breaker
			usable = configured

		primary = usable[0]
		fallback = next((p for p in usable[1:] if p != primary), primary)

		reason = decision.reason
		if primary != decision.primary:
			state = "not configured" if decision.primary not in self.providers else "unhealthy"
			reason = f"{reason} ({decision.primary.value} {state} - using {primary.value})"
		return RoutingDecision(primary, fallback, reason)

	async def execute(self, session: LLMSession, context: Optional[TaskContext] = None) -> LLMResult:
		"""Execute on the routed primary, falling back once on failure."""
		context = context or TaskContext()
		tier = select_tier_for_context(context)
		logger.info(f"Model tier selected: {tier.complexity.value} (task_type={context.task_type})")

		decision = await self.route(context)

		estimated = estimate_tokens(session.prompt)
		if (
			self.usage is not None
			and decision.fallback != decision.primary
			and not self.usage.has_available_quota(decision.primary.value, estimated)
		):
			logger.warning(f"{decision.primary.value} quota exhausted, switching to {decision.fallback.value}")
			decision = RoutingDecision(
				primary=decision.fallback,
				fallback=decision.primary,
				reason=f"{decision.primary.value} quota exhausted - using {decision.fallback.value}",
			)

		logger.info(
			f"Executing with {decision.primary.value} (fallback {decision.fallback.value}): {decision.reason}"
		)
		result = await self._run(decision.primary, session, tier, context, estimated)

		if result.success:
			return result

		if not self.config.enable_fallback:
			logger.error(f"{decision.primary.value} failed and fallback is disabled: {result.error}")
			return result

		if decision.fallback == decision.primary:
			return result

		logger.warning(
			f"{decision.primary.value} failed, trying fallback {decision.fallback.value}: {result.error}"
		)
		return await self._run(decision.fallback, session, tier, context, estimated)

	async def _run(
		self,
		provider_type: ProviderType,
		session: LLMSession,
		tier: ModelTier,
		context: TaskContext,
		estimated_tokens: int,
	) -> LLMResult:
		provider = self.get_provider(provider_type)
		model = session.model or tier.model_for(provider_type)
		result = await provider.execute_with_retry(dataclasses.replace(session, model=model))

		if self.usage is not None:
			self.usage.record(UsageRecord(
				provider=provider_type.value,
				model=result.model or model or "",
				tier=tier.complexity.value,
				agent_type=context.agent_type or "",
				task_type=context.task_type or "",
				prompt_tokens=estimated_tokens,
				completion_tokens=estimate_tokens(result.output),
				duration_ms=result.duration_ms,
				retries_used=result.retries_used,
				success=result.success,
				error=result.error or "",
			))

		return result
