"""
Model tiers - maps task metadata to a cost/speed/capability tier.

Selection is total: unknown task types, priorities or complexities fall
through to the default medium tier.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .types import ProviderType, TaskContext

logger = logging.getLogger(__name__)


class ModelComplexity(str, Enum):
	SIMPLE = "simple"
	MEDIUM = "medium"
	COMPLEX = "complex"
	CRITICAL = "critical"


COMPLEXITY_ORDER = [
	ModelComplexity.SIMPLE,
	ModelComplexity.MEDIUM,
	ModelComplexity.COMPLEX,
	ModelComplexity.CRITICAL,
]


@dataclass(frozen=True)
class ModelTier:
	complexity: ModelComplexity
	gemini_model: str
	description: str
	cost_multiplier: float
	speed: str
	# Claude Code uses the model from user settings
	claude_model: Optional[str] = None
	openai_model: Optional[str] = None

	def model_for(self, provider: ProviderType) -> Optional[str]:
		"""Concrete model identifier, None when the provider picks its own."""
		if provider == ProviderType.GEMINI:
			return self.gemini_model
		if provider == ProviderType.OPENAI:
			return self.openai_model
		return self.claude_model


MODEL_TIERS: dict[ModelComplexity, ModelTier] = {
	ModelComplexity.SIMPLE: ModelTier(
		complexity=ModelComplexity.SIMPLE,
		gemini_model="gemini-2.5-flash-lite",
		description="Ultra-fast model for simple tasks",
		cost_multiplier=1,
		speed="fastest",
		openai_model="gpt-5-codex",
	),
	ModelComplexity.MEDIUM: ModelTier(
		complexity=ModelComplexity.MEDIUM,
		gemini_model="gemini-2.5-flash",
		description="Fast, balanced model",
		cost_multiplier=1.5,
		speed="fast",
		openai_model="gpt-5-codex",
	),
	ModelComplexity.COMPLEX: ModelTier(
		complexity=ModelComplexity.COMPLEX,
		gemini_model="gemini-2.5-flash",
		description="Flash handles complex tasks well",
		cost_multiplier=3,
		speed="medium",
		openai_model="gpt-5-codex",
	),
	ModelComplexity.CRITICAL: ModelTier(
		complexity=ModelComplexity.CRITICAL,
		gemini_model="gemini-2.5-pro",
		description="Most capable model with long context",
		cost_multiplier=5,
		speed="slow",
		openai_model="gpt-5-codex",
	),
}

TASK_COMPLEXITY_MAP: dict[str, ModelComplexity] = {
	# Simple tasks - fast models
	"spawn_worker": ModelComplexity.SIMPLE,
	"operational": ModelComplexity.SIMPLE,
	"alert": ModelComplexity.SIMPLE,
	# Medium tasks - balanced models
	"create_task": ModelComplexity.MEDIUM,
	"loop": ModelComplexity.MEDIUM,
	# Complex tasks - reasoning models
	"propose_decision": ModelComplexity.COMPLEX,
	"vote": ModelComplexity.COMPLEX,
	# Critical tasks - most capable models
	"critical_decision": ModelComplexity.CRITICAL,
	"smart_contract": ModelComplexity.CRITICAL,
}


def _parse_complexity(value: Optional[str]) -> Optional[ModelComplexity]:
	if not value:
		return None
	try:
		return ModelComplexity(value)
	except ValueError:
		logger.debug(f"Ignoring unknown complexity '{value}'")
		return None


def select_tier(
	task_type: Optional[str] = None,
	priority: Optional[str] = None,
	requires_reasoning: bool = False,
	explicit_complexity: Optional[str] = None,
) -> ModelTier:
	"""
	Pick a tier. Precedence, highest first:

	1. explicit complexity override
	2. critical priority forces the top tier
	3. requires_reasoning raises the tier to at least complex
	4. task type lookup
	5. medium
	"""
	override = _parse_complexity(explicit_complexity)
	if override is not None:
		return MODEL_TIERS[override]

	if priority == "critical":
		return MODEL_TIERS[ModelComplexity.CRITICAL]

	complexity = TASK_COMPLEXITY_MAP.get(task_type or "", ModelComplexity.MEDIUM)
	if requires_reasoning and COMPLEXITY_ORDER.index(complexity) < COMPLEXITY_ORDER.index(ModelComplexity.COMPLEX):
		complexity = ModelComplexity.COMPLEX

	logger.debug(f"Selected {complexity.value} tier (task_type={task_type}, priority={priority})")
	return MODEL_TIERS[complexity]


def select_tier_for_context(context: TaskContext) -> ModelTier:
	return select_tier(
		task_type=context.task_type,
		priority=context.priority,
		requires_reasoning=context.requires_reasoning,
		explicit_complexity=context.estimated_complexity,
	)


def model_for_provider(tier: ModelTier, provider: ProviderType) -> Optional[str]:
	return tier.model_for(provider)
