"""Configuration system using platformdirs for cross-platform paths."""

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import platformdirs

APP_NAME = "aito"
APP_AUTHOR = "aito"

ROUTING_STRATEGIES = {"task-type", "agent-role", "load-balance", "gemini-prefer", "claude-only"}
KNOWN_PROVIDERS = {"claude", "gemini", "openai"}

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ConfigError(Exception):
	"""Raised at startup when configuration is malformed."""
	pass


def _default_workspace() -> Path:
	workspace = Path("/app/workspace")
	return workspace if workspace.is_dir() else Path.cwd()


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Derived paths
	secrets_file: Path = field(init=False)
	focus_file: Path = field(init=False)
	state_db_path: Path = field(init=False)
	usage_db_path: Path = field(init=False)
	knowledge_db_path: Path = field(init=False)
	log_dir: Path = field(init=False)

	workspace_dir: Path = field(default_factory=_default_workspace)

	# LLM routing
	routing_strategy: str = "task-type"
	enable_fallback: bool = True
	providers: list[str] = field(default_factory=lambda: ["claude", "gemini", "openai"])
	gemini_default_model: str = "gemini-2.5-flash"
	codex_default_model: str = "gpt-5-codex"
	monthly_token_budgets: dict[str, int] = field(default_factory=dict)

	# Retry / timeouts
	max_retries: int = 3
	base_delay_ms: int = 5000
	max_delay_ms: int = 60000
	session_timeout_ms: int = 300000
	probe_timeout_s: float = 5.0

	# Context sources
	github_org: str = ""
	github_repo: str = ""
	market_data_url: str = (
		"https://api.coingecko.com/api/v3/simple/price"
		"?ids=bitcoin,ethereum&vs_currencies=usd&include_24hr_change=true"
	)
	fear_greed_url: str = "https://api.alternative.me/fng/?limit=2"

	# Selection loop
	tick_seconds: int = 60

	def __post_init__(self) -> None:
		self.secrets_file = self.config_dir / "secrets.json"
		self.focus_file = self.config_dir / "focus.yaml"
		self.state_db_path = self.data_dir / "agents.db"
		self.usage_db_path = self.data_dir / "usage.db"
		self.knowledge_db_path = self.data_dir / "knowledge_index"
		self.log_dir = self.data_dir / "logs"

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)

	def validate(self) -> None:
		"""Reject values that would only fail later at call time."""
		if self.routing_strategy not in ROUTING_STRATEGIES:
			raise ConfigError(
				f"Unknown routing strategy '{self.routing_strategy}'. "
				f"Expected one of: {', '.join(sorted(ROUTING_STRATEGIES))}"
			)
		unknown = [p for p in self.providers if p not in KNOWN_PROVIDERS]
		if unknown:
			raise ConfigError(f"Unknown LLM providers: {', '.join(unknown)}")
		if not self.providers:
			raise ConfigError("At least one LLM provider must be configured")
		if self.max_retries < 0:
			raise ConfigError("max_retries must be >= 0")


PATH_FIELDS = {"config_dir", "data_dir", "workspace_dir"}


def _coerce(config: Config, attr: str, raw: str) -> Any:
	"""Convert an environment string to the type of the current field value."""
	current = getattr(config, attr)
	if attr in PATH_FIELDS:
		return Path(os.path.expanduser(raw))
	if isinstance(current, bool):
		return raw.strip().lower() in _TRUE_VALUES
	if isinstance(current, int):
		return int(raw)
	if isinstance(current, float):
		return float(raw)
	if isinstance(current, list):
		return [item.strip() for item in raw.split(",") if item.strip()]
	return raw


def _apply_env_overrides(config: Config) -> Config:
	"""Apply AITO_* environment variable overrides."""
	for f in fields(config):
		if not f.init or f.name == "monthly_token_budgets":
			continue
		val = os.getenv(f"AITO_{f.name.upper()}")
		if val:
			try:
				setattr(config, f.name, _coerce(config, f.name, val))
			except ValueError as e:
				raise ConfigError(f"Invalid value for AITO_{f.name.upper()}: {e}") from e
	# Recompute derived paths after overrides
	config.__post_init__()
	return config


def _apply_toml(config: Config) -> Config:
	"""Apply config.toml overrides if file exists."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	for key, val in data.items():
		if hasattr(config, key):
			if key in PATH_FIELDS:
				setattr(config, key, Path(os.path.expanduser(val)))
			else:
				setattr(config, key, val)

	# Recompute derived paths after toml overrides
	config.__post_init__()
	return config


def load_config() -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	config = Config()
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
	config.validate()
	config.ensure_dirs()
	return config


# Singleton
_config: Config | None = None


def get_config() -> Config:
	"""Get or create the global config instance."""
	global _config
	if _config is None:
		_config = load_config()
	return _config
