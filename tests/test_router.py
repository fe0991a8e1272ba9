"""Tests for the LLM router."""

import pytest

from aito.llm import (
	LLMRouter,
	LLMSession,
	ProviderNotConfiguredError,
	ProviderType,
	RouterConfig,
	RoutingStrategy,
	TaskContext,
)
from aito.resilience import CircuitBreakerRegistry
from aito.usage import UsageRecord, UsageStore

from .helpers import ScriptedProvider, failed, ok

CLAUDE = ProviderType.CLAUDE
GEMINI = ProviderType.GEMINI
OPENAI = ProviderType.OPENAI


def make_router(strategy=RoutingStrategy.TASK_TYPE, enable_fallback=True, usage=None, **providers):
	registry = CircuitBreakerRegistry()
	scripted = {
		ProviderType(name): provider for name, provider in providers.items()
	} or {CLAUDE: ScriptedProvider(CLAUDE), GEMINI: ScriptedProvider(GEMINI)}
	router = LLMRouter(
		scripted,
		RouterConfig(strategy=strategy, enable_fallback=enable_fallback),
		usage=usage,
		registry=registry,
	)
	return router, registry


def trip(registry, provider):
	async def never():
		return None
	registry.register(f"llm-{provider.value}", never).trip()


class TestPolicies:
	"""Strategy decisions before health checks."""

	@pytest.mark.asyncio
	@pytest.mark.parametrize("context,primary", [
		(None, CLAUDE),
		(TaskContext(task_type="spawn_worker"), GEMINI),
		(TaskContext(task_type="vote"), CLAUDE),
		(TaskContext(task_type="loop"), GEMINI),
		(TaskContext(task_type="loop", estimated_complexity="complex"), CLAUDE),
		(TaskContext(task_type="mystery"), CLAUDE),
		(TaskContext(task_type="alert", priority="critical"), CLAUDE),
		(TaskContext(task_type="alert", requires_reasoning=True), CLAUDE),
	])
	async def test_task_type(self, context, primary):
		"""Task-type strategy sends simple work to Gemini, the rest to Claude."""
		router, _ = make_router()
		decision = await router.route(context)
		assert decision.primary == primary
		assert decision.fallback != decision.primary

	@pytest.mark.asyncio
	@pytest.mark.parametrize("agent,primary", [
		("ceo", CLAUDE), ("dao", CLAUDE), ("cto", CLAUDE), ("cmo", GEMINI), ("cfo", GEMINI), (None, CLAUDE),
	])
	async def test_agent_role(self, agent, primary):
		"""Agent-role strategy sends strategic roles to Claude."""
		router, _ = make_router(RoutingStrategy.AGENT_ROLE)
		assert (await router.route(TaskContext(agent_type=agent))).primary == primary

	@pytest.mark.asyncio
	async def test_gemini_prefer(self):
		"""Gemini-prefer uses Gemini unless the task is critical."""
		router, _ = make_router(RoutingStrategy.GEMINI_PREFER)
		assert (await router.route(TaskContext(task_type="vote"))).primary == GEMINI
		assert (await router.route(TaskContext(priority="critical"))).primary == CLAUDE

	@pytest.mark.asyncio
	async def test_load_balance_probes(self):
		"""Load-balance routes away from a provider whose probe fails."""
		router, _ = make_router(
			RoutingStrategy.LOAD_BALANCE,
			claude=ScriptedProvider(CLAUDE, available=False),
			gemini=ScriptedProvider(GEMINI),
		)
		decision = await router.route(TaskContext())
		assert decision.primary == GEMINI
		assert router.providers[CLAUDE].probes == 1

	@pytest.mark.asyncio
	async def test_claude_only_single_provider(self):
		"""With only Claude configured, primary and fallback are both Claude."""
		router, _ = make_router(RoutingStrategy.CLAUDE_ONLY, claude=ScriptedProvider(CLAUDE))
		decision = await router.route(TaskContext(task_type="alert"))
		assert decision.primary == CLAUDE
		assert decision.fallback == CLAUDE


class TestHealthSubstitution:
	"""Unconfigured, unavailable, and open-circuit providers are skipped."""

	def test_requires_providers(self):
		"""A router without providers is a configuration error."""
		with pytest.raises(ProviderNotConfiguredError):
			LLMRouter({})

	@pytest.mark.asyncio
	async def test_unconfigured_primary_substituted(self):
		"""A decision naming an unconfigured provider uses a configured one."""
		router, _ = make_router(claude=ScriptedProvider(CLAUDE), openai=ScriptedProvider(OPENAI))
		decision = await router.route(TaskContext(task_type="alert"))
		assert decision.primary == CLAUDE
		assert decision.fallback == OPENAI
		assert "not configured" in decision.reason

	@pytest.mark.asyncio
	async def test_open_circuit_primary_substituted(self):
		"""A primary with an open circuit is replaced by the next usable provider."""
		router, registry = make_router(
			claude=ScriptedProvider(CLAUDE), gemini=ScriptedProvider(GEMINI), openai=ScriptedProvider(OPENAI),
		)
		trip(registry, CLAUDE)
		decision = await router.route(TaskContext(task_type="vote"))
		assert decision.primary == GEMINI
		assert decision.fallback == OPENAI
		assert "unhealthy" in decision.reason

	@pytest.mark.asyncio
	async def test_nothing_healthy_keeps_preference(self):
		"""With every circuit open the preferred pair is kept and fails fast."""
		router, registry = make_router()
		trip(registry, CLAUDE)
		trip(registry, GEMINI)
		decision = await router.route(TaskContext(task_type="vote"))
		assert decision.primary == CLAUDE
		assert decision.fallback == GEMINI

	@pytest.mark.asyncio
	async def test_probed_unavailable_skipped(self):
		"""Providers that failed their last probe are not chosen as primary."""
		router, _ = make_router(
			claude=ScriptedProvider(CLAUDE, available=False),
			gemini=ScriptedProvider(GEMINI),
			openai=ScriptedProvider(OPENAI),
		)
		availability = await router.check_availability()
		assert availability == {CLAUDE: False, GEMINI: True, OPENAI: True}

		decision = await router.route(TaskContext(task_type="vote"))
		assert decision.primary == GEMINI
		assert decision.fallback == OPENAI

	@pytest.mark.asyncio
	async def test_primary_and_fallback_differ(self):
		"""Whenever two providers are usable, primary and fallback differ."""
		router, _ = make_router(RoutingStrategy.CLAUDE_ONLY)
		decision = await router.route(TaskContext())
		assert decision.primary == CLAUDE
		assert decision.fallback == GEMINI


class TestExecute:
	"""Execution with fallback and usage tracking."""

	@pytest.mark.asyncio
	async def test_primary_success(self):
		"""A successful primary result is returned as is."""
		claude = ScriptedProvider(CLAUDE, [ok(CLAUDE, "from claude")])
		gemini = ScriptedProvider(GEMINI)
		router, _ = make_router(claude=claude, gemini=gemini)

		result = await router.execute(LLMSession(prompt="hi"), TaskContext(task_type="vote"))

		assert result.output == "from claude"
		assert gemini.sessions == []

	@pytest.mark.asyncio
	async def test_falls_back_once(self):
		"""A failed primary is followed by exactly one fallback attempt."""
		claude = ScriptedProvider(CLAUDE, [failed(CLAUDE, "boom")])
		gemini = ScriptedProvider(GEMINI, [ok(GEMINI, "from gemini")])
		router, _ = make_router(claude=claude, gemini=gemini)

		result = await router.execute(LLMSession(prompt="hi"), TaskContext(task_type="vote"))

		assert result.success
		assert result.provider == GEMINI
		assert len(claude.sessions) == 1
		assert len(gemini.sessions) == 1

	@pytest.mark.asyncio
	async def test_fallback_disabled(self):
		"""With fallback disabled the primary's failure is returned."""
		claude = ScriptedProvider(CLAUDE, [failed(CLAUDE, "boom")])
		gemini = ScriptedProvider(GEMINI)
		router, _ = make_router(enable_fallback=False, claude=claude, gemini=gemini)

		result = await router.execute(LLMSession(prompt="hi"), TaskContext(task_type="vote"))

		assert not result.success
		assert result.provider == CLAUDE
		assert gemini.sessions == []

	@pytest.mark.asyncio
	async def test_open_primary_goes_to_fallback(self):
		"""With the primary's circuit open, the result comes from the fallback."""
		claude = ScriptedProvider(CLAUDE)
		gemini = ScriptedProvider(GEMINI, [ok(GEMINI, "from gemini")])
		router, registry = make_router(claude=claude, gemini=gemini)
		trip(registry, CLAUDE)

		result = await router.execute(LLMSession(prompt="hi"), TaskContext(task_type="vote"))

		assert result.provider == GEMINI
		assert claude.sessions == []

	@pytest.mark.asyncio
	async def test_tier_model_applied(self):
		"""The selected tier's model is passed to the provider."""
		gemini = ScriptedProvider(GEMINI)
		router, _ = make_router(claude=ScriptedProvider(CLAUDE), gemini=gemini)

		await router.execute(LLMSession(prompt="hi"), TaskContext(task_type="alert"))

		assert gemini.sessions[0].model == "gemini-2.5-flash-lite"

	@pytest.mark.asyncio
	async def test_explicit_model_kept(self):
		"""A model set on the session is not overridden by the tier."""
		gemini = ScriptedProvider(GEMINI)
		router, _ = make_router(claude=ScriptedProvider(CLAUDE), gemini=gemini)

		await router.execute(LLMSession(prompt="hi", model="custom"), TaskContext(task_type="alert"))

		assert gemini.sessions[0].model == "custom"

	@pytest.mark.asyncio
	async def test_usage_recorded(self, tmp_path):
		"""Every provider execution is recorded in the usage store."""
		usage = UsageStore(tmp_path / "usage.db")
		claude = ScriptedProvider(CLAUDE, [failed(CLAUDE, "boom")])
		gemini = ScriptedProvider(GEMINI, [ok(GEMINI, "x" * 40)])
		router, _ = make_router(usage=usage, claude=claude, gemini=gemini)

		await router.execute(LLMSession(prompt="p" * 400), TaskContext(task_type="vote", agent_type="cfo"))

		records = {r.provider: r for r in usage.query()}
		assert set(records) == {"claude", "gemini"}
		assert not records["claude"].success
		assert records["gemini"].success
		assert records["gemini"].prompt_tokens == 100
		assert records["gemini"].completion_tokens == 10
		assert records["gemini"].tier == "complex"
		assert records["gemini"].agent_type == "cfo"

	@pytest.mark.asyncio
	async def test_exhausted_quota_swaps(self, tmp_path):
		"""A primary over its monthly budget swaps with the fallback."""
		usage = UsageStore(tmp_path / "usage.db", monthly_budgets={"claude": 100})
		usage.record(UsageRecord(provider="claude", prompt_tokens=90))
		claude = ScriptedProvider(CLAUDE)
		gemini = ScriptedProvider(GEMINI)
		router, _ = make_router(usage=usage, claude=claude, gemini=gemini)

		result = await router.execute(LLMSession(prompt="p" * 400), TaskContext(task_type="vote"))

		assert result.provider == GEMINI
		assert claude.sessions == []
