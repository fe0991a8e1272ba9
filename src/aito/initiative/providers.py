"""
Initiative Providers - Per-role bundles of context sources, scoring and focus.

One provider per AgentRole, built once at process start from the static
tables in roles.py plus optional focus weights from focus.yaml.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

import yaml
from pydantic import ValidationError

from ..config import ConfigError
from .models import AgentRole, FocusConfig, FocusProfile, Initiative
from .roles import (
	DEFAULT_COOLDOWN_SECONDS,
	DEFAULT_FOCUS,
	FOCUS_PROFILES,
	ROLE_CONTEXT_SOURCES,
	ROLE_COOLDOWNS,
	ROLE_KEYWORDS,
	bootstrap_for,
)
from .scoring import FocusBasedStrategy, ScoringStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitiativeProvider:
	"""Everything the selection loop needs to pick work for one role."""
	role: AgentRole
	context_sources: tuple[str, ...]
	scoring_strategy: ScoringStrategy
	focus_config: FocusConfig
	focus_profile: FocusProfile
	keywords: frozenset[str]
	cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS
	_bootstrap: tuple[Initiative, ...] = field(default=(), repr=False)

	def bootstrap_initiatives(self) -> tuple[Initiative, ...]:
		return self._bootstrap

	def validate(self, initiative: Initiative) -> bool:
		"""Assigned to this role, or tagged with one of its keywords (case-insensitive)."""
		if initiative.suggested_assignee == self.role:
			return True
		return any(tag.lower() in self.keywords for tag in initiative.tags)

	def get_cooldown_seconds(self) -> int:
		return self.cooldown_seconds


class ProviderRegistry:
	"""Initiative providers keyed by role."""

	def __init__(self, providers: Optional[dict[AgentRole, InitiativeProvider]] = None):
		self._providers: dict[AgentRole, InitiativeProvider] = dict(providers or {})

	def register(self, provider: InitiativeProvider, override: bool = False) -> None:
		if provider.role in self._providers and not override:
			raise ValueError(
				f"Provider already registered for role: {provider.role.value}. Use override=True to replace."
			)
		self._providers[provider.role] = provider
		logger.debug(f"Initiative provider registered: {provider.role.value}")

	def get(self, role: AgentRole) -> InitiativeProvider:
		return self._providers[role]

	def has(self, role: AgentRole) -> bool:
		return role in self._providers

	def roles(self) -> list[AgentRole]:
		return list(self._providers)

	def __iter__(self) -> Iterator[InitiativeProvider]:
		return iter(self._providers.values())

	def __len__(self) -> int:
		return len(self._providers)


def load_focus_configs(path: Path) -> dict[AgentRole, FocusConfig]:
	"""
	Load per-role focus weights from YAML.

	The file maps role names (or "default") to all five weights. Roles not
	listed get the default entry, or the built-in weights. A malformed file is
	a ConfigError.
	"""
	if not path.exists():
		return {}

	try:
		with open(path) as f:
			data = yaml.safe_load(f) or {}
	except yaml.YAMLError as e:
		raise ConfigError(f"Could not parse focus file {path}: {e}") from e

	if not isinstance(data, dict):
		raise ConfigError(f"Focus file {path} must map role names to weights")

	valid_keys = {role.value for role in AgentRole} | {"default"}
	unknown = [key for key in data if key not in valid_keys]
	if unknown:
		raise ConfigError(f"Unknown roles in focus file {path}: {', '.join(map(str, unknown))}")

	try:
		parsed = {key: FocusConfig.model_validate(value) for key, value in data.items()}
	except ValidationError as e:
		raise ConfigError(f"Invalid focus weights in {path}: {e}") from e

	default = parsed.get("default")
	configs = {}
	for role in AgentRole:
		focus = parsed.get(role.value) or default
		if focus is not None:
			configs[role] = focus

	logger.info(f"Loaded focus weights for {len(configs)} roles from {path}")
	return configs


def build_provider(
	role: AgentRole,
	focus: Optional[FocusConfig] = None,
	strategy: Optional[ScoringStrategy] = None,
) -> InitiativeProvider:
	return InitiativeProvider(
		role=role,
		context_sources=ROLE_CONTEXT_SOURCES[role],
		scoring_strategy=strategy or FocusBasedStrategy(),
		focus_config=focus or DEFAULT_FOCUS,
		focus_profile=FOCUS_PROFILES[role],
		keywords=ROLE_KEYWORDS[role],
		cooldown_seconds=ROLE_COOLDOWNS.get(role, DEFAULT_COOLDOWN_SECONDS),
		_bootstrap=bootstrap_for(role),
	)


def build_provider_registry(
	focus_configs: Optional[dict[AgentRole, FocusConfig]] = None,
	strategy: Optional[ScoringStrategy] = None,
) -> ProviderRegistry:
	"""One provider for every role."""
	focus_configs = focus_configs or {}
	registry = ProviderRegistry()
	for role in AgentRole:
		registry.register(build_provider(role, focus_configs.get(role), strategy))
	logger.info(f"Built {len(registry)} initiative providers")
	return registry
