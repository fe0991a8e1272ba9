"""Tests for per-role initiative providers and focus configuration."""

from pathlib import Path

import pytest

from aito.config import ConfigError
from aito.initiative import (
	AgentRole,
	FocusConfig,
	InitiativeSource,
	PriorityBasedStrategy,
	ProviderRegistry,
	build_provider,
	build_provider_registry,
	load_focus_configs,
)
from aito.initiative.roles import BOOTSTRAP_INITIATIVES, DEFAULT_FOCUS

from .helpers import make_initiative


class TestValidation:
	"""Which initiatives a role may take on."""

	def test_own_assignment_valid(self):
		"""An initiative suggested for the role is valid for it."""
		provider = build_provider(AgentRole.CFO)
		assert provider.validate(make_initiative("Budget review", tags=(), assignee=AgentRole.CFO))

	def test_keyword_tag_valid(self):
		"""A tag matching the role's keywords makes another role's initiative valid."""
		provider = build_provider(AgentRole.CMO)
		initiative = make_initiative("Launch campaign", tags=("Marketing",), assignee=AgentRole.CTO)
		assert provider.validate(initiative)

	def test_unrelated_invalid(self):
		"""Another role's initiative without matching tags is rejected."""
		provider = build_provider(AgentRole.CTO)
		initiative = make_initiative("Meme contest", tags=("marketing", "viral"), assignee=AgentRole.CMO)
		assert not provider.validate(initiative)

	@pytest.mark.parametrize("tags,expected", [
		((), False),
		(("marketing",), False),
		(("Treasury",), True),
	])
	def test_dao_keyword_overrides_assignee(self, tags, expected):
		"""A CEO initiative is valid for the DAO only when tagged with a DAO keyword."""
		provider = build_provider(AgentRole.DAO)
		assert provider.validate(make_initiative("Quarterly plan", tags=tags, assignee=AgentRole.CEO)) is expected

	def test_bootstrap_backlog_valid_for_owner(self):
		"""Each bootstrap initiative validates for its suggested assignee."""
		for initiative in BOOTSTRAP_INITIATIVES:
			assert build_provider(initiative.suggested_assignee).validate(initiative)


class TestProviders:
	"""Provider construction."""

	def test_every_role_registered(self):
		"""build_provider_registry registers one provider per role."""
		registry = build_provider_registry()
		assert set(registry.roles()) == set(AgentRole)
		assert len(registry) == len(AgentRole)

	def test_cooldowns(self):
		"""Strategic roles cool down longer."""
		registry = build_provider_registry()
		assert registry.get(AgentRole.CEO).get_cooldown_seconds() == 7200
		assert registry.get(AgentRole.CMO).get_cooldown_seconds() == 3600

	def test_context_sources(self):
		"""Roles name their context sources."""
		assert build_provider(AgentRole.CFO).context_sources == ("rag", "github", "market-data")
		assert "team-status" not in build_provider(AgentRole.CCO).context_sources

	def test_bootstrap_per_role(self):
		"""Bootstrap initiatives are filtered to the role and marked as bootstrap."""
		cmo = build_provider(AgentRole.CMO).bootstrap_initiatives()
		assert {i.id for i in cmo} == {
			"bootstrap-x-reach", "bootstrap-coingecko", "bootstrap-cmc", "bootstrap-meme-contest",
		}
		assert all(i.source == InitiativeSource.BOOTSTRAP for i in cmo)
		assert build_provider(AgentRole.DAO).bootstrap_initiatives() == ()

	def test_custom_focus_and_strategy(self):
		"""Focus weights and strategy can be supplied per provider."""
		weights = FocusConfig(
			revenue_focus=10, community_growth=20, marketing_vs_dev=30, risk_tolerance=40, time_horizon=50,
		)
		provider = build_provider(AgentRole.COO, weights, PriorityBasedStrategy())
		assert provider.focus_config == weights
		assert provider.scoring_strategy.name == "priority-based"


class TestRegistry:
	"""ProviderRegistry registration rules."""

	def test_duplicate_role_rejected(self):
		"""Registering a role twice without override raises."""
		registry = ProviderRegistry()
		registry.register(build_provider(AgentRole.CEO))
		with pytest.raises(ValueError):
			registry.register(build_provider(AgentRole.CEO))

	def test_override_replaces(self):
		"""override=True replaces the registered provider."""
		registry = ProviderRegistry()
		registry.register(build_provider(AgentRole.CEO))
		replacement = build_provider(AgentRole.CEO, strategy=PriorityBasedStrategy())
		registry.register(replacement, override=True)
		assert registry.get(AgentRole.CEO) is replacement

	def test_missing_role(self):
		"""Looking up an unregistered role raises KeyError."""
		assert not ProviderRegistry().has(AgentRole.DAO)
		with pytest.raises(KeyError):
			ProviderRegistry().get(AgentRole.DAO)


FULL_WEIGHTS = """
  revenue_focus: 20
  community_growth: 30
  marketing_vs_dev: 40
  risk_tolerance: 50
  time_horizon: 60
"""


class TestFocusFile:
	"""Loading focus weights from YAML."""

	def test_missing_file(self, tmp_path: Path):
		"""A missing file yields no overrides."""
		assert load_focus_configs(tmp_path / "focus.yaml") == {}

	def test_default_and_role_entries(self, tmp_path: Path):
		"""The default entry applies to unlisted roles; role entries win."""
		path = tmp_path / "focus.yaml"
		path.write_text(f"default:{FULL_WEIGHTS}cmo:\n  revenue_focus: 90\n  community_growth: 90\n"
			"  marketing_vs_dev: 90\n  risk_tolerance: 90\n  time_horizon: 90\n")

		configs = load_focus_configs(path)

		assert configs[AgentRole.CEO].revenue_focus == 20
		assert configs[AgentRole.CMO].revenue_focus == 90
		assert set(configs) == set(AgentRole)

	def test_role_only(self, tmp_path: Path):
		"""Without a default entry only listed roles are configured."""
		path = tmp_path / "focus.yaml"
		path.write_text(f"cfo:{FULL_WEIGHTS}")
		configs = load_focus_configs(path)
		assert list(configs) == [AgentRole.CFO]

		registry = build_provider_registry(configs)
		assert registry.get(AgentRole.CFO).focus_config.time_horizon == 60
		assert registry.get(AgentRole.CEO).focus_config == DEFAULT_FOCUS

	@pytest.mark.parametrize("content", [
		"cfo:\n  revenue_focus: 150\n  community_growth: 0\n  marketing_vs_dev: 0\n"
		"  risk_tolerance: 0\n  time_horizon: 0\n",
		"cfo:\n  revenue_focus: 10\n",
		f"cfo:{FULL_WEIGHTS}  unknown_weight: 5\n",
		f"cto_of_everything:{FULL_WEIGHTS}",
		"- just\n- a list\n",
		"cfo: [unclosed\n",
	])
	def test_invalid_files_rejected(self, tmp_path: Path, content):
		"""Out-of-range, incomplete, unknown, or malformed entries are configuration errors."""
		path = tmp_path / "focus.yaml"
		path.write_text(content)
		with pytest.raises(ConfigError):
			load_focus_configs(path)
