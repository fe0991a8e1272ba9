"""LLM module - Provider adapters, model tiers, and routing."""

from .claude import ClaudeProvider
from .cli_provider import CLIProvider
from .codex import CodexProvider
from .gemini import GeminiProvider
from .models import MODEL_TIERS, TASK_COMPLEXITY_MAP, ModelComplexity, ModelTier, select_tier
from .retry import RetryConfig, backoff_delay_ms, execute_with_retry, is_retryable_error
from .router import LLMRouter, ProviderNotConfiguredError, RouterConfig, RoutingPolicy
from .types import (
	LLMProvider,
	LLMResult,
	LLMSession,
	Priority,
	ProviderType,
	RoutingDecision,
	RoutingStrategy,
	TaskContext,
	TaskType,
)

__all__ = [
	"CLIProvider",
	"ClaudeProvider",
	"CodexProvider",
	"GeminiProvider",
	"LLMProvider",
	"LLMResult",
	"LLMRouter",
	"LLMSession",
	"MODEL_TIERS",
	"ModelComplexity",
	"ModelTier",
	"Priority",
	"ProviderNotConfiguredError",
	"ProviderType",
	"RetryConfig",
	"RouterConfig",
	"RoutingDecision",
	"RoutingPolicy",
	"RoutingStrategy",
	"TASK_COMPLEXITY_MAP",
	"TaskContext",
	"TaskType",
	"backoff_delay_ms",
	"execute_with_retry",
	"is_retryable_error",
	"select_tier",
]
