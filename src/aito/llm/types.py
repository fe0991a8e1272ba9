"""
Shared types for LLM execution and routing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ProviderType(str, Enum):
	"""LLM backends known at deployment time."""
	CLAUDE = "claude"
	GEMINI = "gemini"
	OPENAI = "openai"


class TaskType(str, Enum):
	"""Task types with a known complexity and routing rule."""
	SPAWN_WORKER = "spawn_worker"
	OPERATIONAL = "operational"
	CREATE_TASK = "create_task"
	PROPOSE_DECISION = "propose_decision"
	VOTE = "vote"
	ALERT = "alert"
	LOOP = "loop"
	CRITICAL_DECISION = "critical_decision"
	SMART_CONTRACT = "smart_contract"


class Priority(str, Enum):
	LOW = "low"
	NORMAL = "normal"
	HIGH = "high"
	CRITICAL = "critical"


class RoutingStrategy(str, Enum):
	"""How the router picks the primary provider."""
	TASK_TYPE = "task-type"
	AGENT_ROLE = "agent-role"
	LOAD_BALANCE = "load-balance"
	GEMINI_PREFER = "gemini-prefer"
	CLAUDE_ONLY = "claude-only"


@dataclass(frozen=True)
class LLMSession:
	"""A single execution request."""
	prompt: str
	system_prompt: Optional[str] = None
	model: Optional[str] = None
	timeout_ms: int = 300000
	# None defers to the provider's retry config
	max_retries: Optional[int] = None
	enable_tools: bool = True
	# MCP servers the backend may use, where supported
	mcp_servers: tuple[str, ...] = ()


@dataclass(frozen=True)
class LLMResult:
	"""Outcome of an execution, annotated with the provider that produced it."""
	success: bool
	output: str
	provider: ProviderType
	duration_ms: int = 0
	error: Optional[str] = None
	retryable: bool = False
	retries_used: int = 0
	model: Optional[str] = None


@dataclass(frozen=True)
class TaskContext:
	"""
	Task metadata used for tier selection and routing.

	Fields are plain strings so unknown task types and roles fall through to
	defaults instead of failing.
	"""
	task_type: Optional[str] = None
	agent_type: Optional[str] = None
	priority: Optional[str] = None
	requires_reasoning: bool = False
	estimated_complexity: Optional[str] = None


@dataclass(frozen=True)
class RoutingDecision:
	primary: ProviderType
	fallback: ProviderType
	reason: str


class LLMProvider(ABC):
	"""Uniform execute/retry contract implemented by every backend adapter."""

	name: ProviderType

	@abstractmethod
	async def is_available(self) -> bool:
		"""Credential present and backend reachable within a short probe timeout."""

	@abstractmethod
	async def execute(self, session: LLMSession) -> LLMResult:
		"""Single attempt."""

	@abstractmethod
	async def execute_with_retry(self, session: LLMSession) -> LLMResult:
		"""Attempt with retries and backoff on transient failures."""


def breaker_name(provider: ProviderType) -> str:
	"""Registry key of a provider's circuit breaker."""
	return f"llm-{provider.value}"
