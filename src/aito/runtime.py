"""
Runtime wiring - Builds every component once from a Config.

Nothing here holds global state besides the breaker registry passed in;
tests build a Runtime against a temporary Config.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import Config, ConfigError
from .context import ContextAggregator, ContextSource
from .context.sources import GitHubSource, MarketDataSource, RAGSource, TeamStatusSource
from .github_client import GitHubIssueClient
from .initiative import ProviderRegistry, build_provider_registry, load_focus_configs
from .knowledge import KnowledgeIndex
from .llm import (
	ClaudeProvider,
	CodexProvider,
	GeminiProvider,
	LLMProvider,
	LLMRouter,
	ProviderType,
	RetryConfig,
	RouterConfig,
	RoutingStrategy,
)
from .loop import SelectionLoop
from .resilience import CircuitBreakerRegistry, default_registry
from .secrets import CredentialResolver
from .store import AgentStateStore
from .usage import UsageStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
	config: Config
	registry: CircuitBreakerRegistry
	credentials: CredentialResolver
	providers: dict[ProviderType, LLMProvider]
	usage: UsageStore
	router: LLMRouter
	github: GitHubIssueClient
	knowledge: KnowledgeIndex
	store: AgentStateStore
	aggregator: ContextAggregator
	initiative_providers: ProviderRegistry

	def selection_loop(self) -> SelectionLoop:
		return SelectionLoop(
			router=self.router,
			providers=self.initiative_providers,
			aggregator=self.aggregator,
			store=self.store,
			tick_seconds=self.config.tick_seconds,
			session_timeout_ms=self.config.session_timeout_ms,
			github=self.github,
		)


def build_llm_providers(
	config: Config,
	credentials: CredentialResolver,
	registry: CircuitBreakerRegistry,
) -> dict[ProviderType, LLMProvider]:
	"""One adapter per name in config.providers, in that order."""
	common = dict(
		workspace_dir=config.workspace_dir,
		credentials=credentials,
		retry_config=RetryConfig(
			max_retries=config.max_retries,
			base_delay_ms=config.base_delay_ms,
			max_delay_ms=config.max_delay_ms,
		),
		probe_timeout_s=config.probe_timeout_s,
		registry=registry,
	)
	factories = {
		ProviderType.CLAUDE: lambda: ClaudeProvider(**common),
		ProviderType.GEMINI: lambda: GeminiProvider(default_model=config.gemini_default_model, **common),
		ProviderType.OPENAI: lambda: CodexProvider(default_model=config.codex_default_model, **common),
	}
	return {ProviderType(name): factories[ProviderType(name)]() for name in config.providers}


def build_context_sources(
	config: Config,
	store: AgentStateStore,
	github: GitHubIssueClient,
	knowledge: KnowledgeIndex,
) -> list[ContextSource]:
	return [
		TeamStatusSource(store),
		GitHubSource(github),
		RAGSource(knowledge),
		MarketDataSource(config.market_data_url, config.fear_greed_url),
	]


def build_runtime(config: Config, registry: Optional[CircuitBreakerRegistry] = None) -> Runtime:
	"""
	Wire the whole system.

	Raises ConfigError for a malformed focus file or an initiative provider
	that names an unregistered context source.
	"""
	registry = registry or default_registry
	credentials = CredentialResolver(config.secrets_file)

	providers = build_llm_providers(config, credentials, registry)
	usage = UsageStore(config.usage_db_path, config.monthly_token_budgets)
	router = LLMRouter(
		providers,
		RouterConfig(
			strategy=RoutingStrategy(config.routing_strategy),
			enable_fallback=config.enable_fallback,
		),
		usage=usage,
		registry=registry,
	)

	github = GitHubIssueClient(config.github_org, config.github_repo, credentials=credentials, registry=registry)
	knowledge = KnowledgeIndex(config.knowledge_db_path)
	store = AgentStateStore(config.state_db_path)
	aggregator = ContextAggregator(build_context_sources(config, store, github, knowledge))

	initiative_providers = build_provider_registry(load_focus_configs(config.focus_file))
	for provider in initiative_providers:
		missing = [name for name in provider.context_sources if name not in aggregator.sources]
		if missing:
			raise ConfigError(
				f"Initiative provider {provider.role.value} uses unknown context sources: {', '.join(missing)}"
			)

	logger.info(
		f"Runtime ready: providers={', '.join(p.value for p in providers)}, "
		f"sources={', '.join(aggregator.sources)}, roles={len(initiative_providers)}"
	)
	return Runtime(
		config=config,
		registry=registry,
		credentials=credentials,
		providers=providers,
		usage=usage,
		router=router,
		github=github,
		knowledge=knowledge,
		store=store,
		aggregator=aggregator,
		initiative_providers=initiative_providers,
	)
