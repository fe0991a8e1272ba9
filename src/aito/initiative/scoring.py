"""
Scoring strategies for initiatives.

A strategy turns an initiative and a role's FocusConfig into a finite,
non-negative score. Strategies never raise for a well-formed initiative.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from .dedup import duplicate_penalty
from .models import FocusConfig, Initiative, InitiativePriority, InitiativeSource

logger = logging.getLogger(__name__)


class Dimension(str, Enum):
	"""Business dimension a tag speaks to."""
	REVENUE = "revenue"
	COMMUNITY = "community"
	MARKETING = "marketing"
	DEVELOPMENT = "development"
	LONG_TERM = "long_term"
	QUICK_WIN = "quick_win"


TAG_DIMENSIONS: dict[str, tuple[Dimension, ...]] = {
	# Revenue
	"revenue": (Dimension.REVENUE,),
	"funding": (Dimension.REVENUE,),
	"grants": (Dimension.REVENUE,),
	"treasury": (Dimension.REVENUE,),
	"tokenomics": (Dimension.REVENUE,),
	"yield": (Dimension.REVENUE,),
	"cost": (Dimension.REVENUE,),
	"budget": (Dimension.REVENUE,),
	"listing": (Dimension.REVENUE, Dimension.MARKETING),
	# Community
	"community": (Dimension.COMMUNITY,),
	"growth": (Dimension.COMMUNITY,),
	"engagement": (Dimension.COMMUNITY,),
	"viral": (Dimension.COMMUNITY, Dimension.MARKETING),
	"social": (Dimension.COMMUNITY, Dimension.MARKETING),
	"governance": (Dimension.COMMUNITY,),
	"voting": (Dimension.COMMUNITY,),
	# Marketing
	"marketing": (Dimension.MARKETING,),
	"visibility": (Dimension.MARKETING,),
	"influencer": (Dimension.MARKETING,),
	"content": (Dimension.MARKETING,),
	"brand": (Dimension.MARKETING,),
	# Development
	"technical": (Dimension.DEVELOPMENT,),
	"security": (Dimension.DEVELOPMENT,),
	"audit": (Dimension.DEVELOPMENT,),
	"infrastructure": (Dimension.DEVELOPMENT,),
	"smart-contract": (Dimension.DEVELOPMENT,),
	"automation": (Dimension.DEVELOPMENT,),
	"product": (Dimension.DEVELOPMENT,),
	"utility": (Dimension.DEVELOPMENT,),
	# Time horizon
	"strategy": (Dimension.LONG_TERM,),
	"roadmap": (Dimension.LONG_TERM,),
	"vision": (Dimension.LONG_TERM,),
	"partnership": (Dimension.LONG_TERM,),
	"partnerships": (Dimension.LONG_TERM,),
	"compliance": (Dimension.LONG_TERM,),
	"quick-win": (Dimension.QUICK_WIN,),
	"operations": (Dimension.QUICK_WIN,),
	"efficiency": (Dimension.QUICK_WIN,),
	"process": (Dimension.QUICK_WIN,),
}

RISKY_TAGS = {"aggressive", "experimental", "speculative", "high-risk"}

PRIORITY_SCORES = {
	InitiativePriority.CRITICAL: 10,
	InitiativePriority.HIGH: 7,
	InitiativePriority.MEDIUM: 4,
	InitiativePriority.LOW: 1,
}


def dimension_weight(dimension: Dimension, focus: FocusConfig) -> int:
	"""Focus weight (0-100) that applies to a dimension."""
	if dimension == Dimension.REVENUE:
		return focus.revenue_focus
	if dimension == Dimension.COMMUNITY:
		return focus.community_growth
	if dimension == Dimension.MARKETING:
		return focus.marketing_vs_dev
	if dimension == Dimension.DEVELOPMENT:
		return 100 - focus.marketing_vs_dev
	if dimension == Dimension.LONG_TERM:
		return focus.time_horizon
	return 100 - focus.time_horizon


def _lower_tags(initiative: Initiative) -> set[str]:
	return {tag.lower() for tag in initiative.tags}


class ScoringStrategy(ABC):
	"""Scores initiatives for a role."""

	name: str

	@abstractmethod
	def score(self, initiative: Initiative, focus: FocusConfig) -> float:
		pass

	def duplicate_penalty(self, initiative: Initiative, existing_titles: Sequence[str]) -> float:
		return 0.0


class FocusBasedStrategy(ScoringStrategy):
	"""
	Weighted sum over the dimensions an initiative's tags touch.

	Each distinct dimension contributes its focus weight / 100. The sum is
	scaled by revenue impact, by risk tolerance for risky tags, and by the
	time horizon (long efforts favour a high horizon, quick wins a low one).
	An initiative with no mapped tags scores 0.
	"""

	name = "focus-based"

	def score(self, initiative: Initiative, focus: FocusConfig) -> float:
		tags = _lower_tags(initiative)
		dimensions = {dim for tag in tags for dim in TAG_DIMENSIONS.get(tag, ())}
		if not dimensions:
			return 0.0

		score = sum(dimension_weight(dim, focus) / 100 for dim in dimensions)
		score *= 1 + initiative.revenue_impact / 10

		if tags & RISKY_TAGS:
			score *= focus.risk_tolerance / 100

		if initiative.effort > 5:
			score *= focus.time_horizon / 100
		else:
			score *= (100 - focus.time_horizon) / 100 + 0.5

		return max(0.0, score) if math.isfinite(score) else 0.0

	def duplicate_penalty(self, initiative: Initiative, existing_titles: Sequence[str]) -> float:
		return duplicate_penalty(initiative.title, existing_titles)


class PriorityBasedStrategy(ScoringStrategy):
	"""Priority level, plus revenue impact, plus a bonus for low effort."""

	name = "priority-based"

	def score(self, initiative: Initiative, focus: FocusConfig) -> float:
		score = PRIORITY_SCORES.get(initiative.priority, 0)
		score += initiative.revenue_impact * 0.5
		score += (10 - initiative.effort) * 0.3
		return max(0.0, score)


class CompositeStrategy(ScoringStrategy):
	"""Weighted average of other strategies."""

	def __init__(self, strategies: Sequence[tuple[ScoringStrategy, float]]):
		self.strategies = list(strategies)
		self.total_weight = sum(weight for _, weight in self.strategies)
		self.name = "composite(" + "+".join(s.name for s, _ in self.strategies) + ")"

	def score(self, initiative: Initiative, focus: FocusConfig) -> float:
		if self.total_weight <= 0:
			return 0.0
		return sum(
			strategy.score(initiative, focus) * (weight / self.total_weight)
			for strategy, weight in self.strategies
		)

	def duplicate_penalty(self, initiative: Initiative, existing_titles: Sequence[str]) -> float:
		if self.total_weight <= 0:
			return 0.0
		return max(
			(
				strategy.duplicate_penalty(initiative, existing_titles) * (weight / self.total_weight)
				for strategy, weight in self.strategies
			),
			default=0.0,
		)


STRATEGIES: dict[str, type[ScoringStrategy]] = {
	FocusBasedStrategy.name: FocusBasedStrategy,
	PriorityBasedStrategy.name: PriorityBasedStrategy,
}


@dataclass(frozen=True)
class ScoredInitiative:
	initiative: Initiative
	score: float
	penalty: float = 0.0


def rank_initiatives(
	initiatives: Iterable[Initiative],
	strategy: ScoringStrategy,
	focus: FocusConfig,
	existing_titles: Sequence[str] = (),
) -> list[ScoredInitiative]:
	"""
	Score, penalize duplicates, and sort best first.

	Ties go to derived over bootstrap initiatives, then to the most recently
	created, then to the one later in the input.
	"""
	scored = []
	for position, initiative in enumerate(initiatives):
		score = strategy.score(initiative, focus)
		penalty = strategy.duplicate_penalty(initiative, existing_titles) if existing_titles else 0.0
		final = max(0.0, score - penalty)
		scored.append((position, ScoredInitiative(initiative, final, penalty)))

	def sort_key(item: tuple[int, ScoredInitiative]):
		position, entry = item
		return (
			-entry.score,
			0 if entry.initiative.source == InitiativeSource.DERIVED else 1,
			-entry.initiative.created_at.timestamp(),
			-position,
		)

	ranked = [entry for _, entry in sorted(scored, key=sort_key)]
	if ranked:
		logger.debug(
			f"Ranked {len(ranked)} initiatives with {strategy.name}; "
			f"top: {ranked[0].initiative.title} ({ranked[0].score:.2f})"
		)
	return ranked
