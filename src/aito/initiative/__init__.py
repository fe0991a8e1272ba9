"""Initiative module - Roles, initiatives, scoring, and per-role providers."""

from .dedup import DeduplicationTracker, duplicate_penalty, jaccard_similarity, title_hash
from .models import (
	AgentRole,
	FocusConfig,
	FocusProfile,
	Initiative,
	InitiativePriority,
	InitiativeSource,
)
from .proposals import issue_body, issue_labels, parse_proposals
from .providers import (
	InitiativeProvider,
	ProviderRegistry,
	build_provider,
	build_provider_registry,
	load_focus_configs,
)
from .scoring import (
	CompositeStrategy,
	FocusBasedStrategy,
	PriorityBasedStrategy,
	ScoredInitiative,
	ScoringStrategy,
	rank_initiatives,
)

__all__ = [
	"AgentRole",
	"CompositeStrategy",
	"DeduplicationTracker",
	"FocusBasedStrategy",
	"FocusConfig",
	"FocusProfile",
	"Initiative",
	"InitiativePriority",
	"InitiativeProvider",
	"InitiativeSource",
	"PriorityBasedStrategy",
	"ProviderRegistry",
	"ScoredInitiative",
	"ScoringStrategy",
	"build_provider",
	"build_provider_registry",
	"duplicate_penalty",
	"issue_body",
	"issue_labels",
	"jaccard_similarity",
	"load_focus_configs",
	"parse_proposals",
	"rank_initiatives",
	"title_hash",
]
