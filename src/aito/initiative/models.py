"""
Initiative Models - Pydantic schemas for agent roles, initiatives and focus.

Initiatives are candidate units of work an agent role might pursue next.
FocusConfig holds the per-role weights used to score them; out-of-range
weights are rejected when loaded, never clamped.
"""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AgentRole(str, Enum):
	"""Agent roles, each with its own initiative provider."""
	CEO = "ceo"
	CMO = "cmo"
	CTO = "cto"
	CFO = "cfo"
	COO = "coo"
	CCO = "cco"
	DAO = "dao"


class InitiativeSource(str, Enum):
	"""Where an initiative came from."""
	BOOTSTRAP = "bootstrap"
	DERIVED = "derived"


class InitiativePriority(str, Enum):
	CRITICAL = "critical"
	HIGH = "high"
	MEDIUM = "medium"
	LOW = "low"


class Initiative(BaseModel):
	"""A candidate unit of work."""
	model_config = ConfigDict(frozen=True)

	id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
	title: str = Field(description="Short imperative summary")
	description: str = Field(default="")
	tags: frozenset[str] = Field(default_factory=frozenset, description="Free-text tags, order irrelevant")
	suggested_assignee: AgentRole
	source: InitiativeSource = Field(default=InitiativeSource.DERIVED)
	priority: InitiativePriority = Field(default=InitiativePriority.MEDIUM)
	revenue_impact: int = Field(default=5, ge=0, le=10)
	effort: int = Field(default=5, ge=1, le=10)
	created_at: datetime = Field(default_factory=datetime.now)


class FocusConfig(BaseModel):
	"""Per-role scoring weights, each an integer in [0, 100]."""
	model_config = ConfigDict(frozen=True, extra="forbid")

	revenue_focus: int = Field(ge=0, le=100)
	community_growth: int = Field(ge=0, le=100)
	# 0 = all development, 100 = all marketing
	marketing_vs_dev: int = Field(ge=0, le=100)
	risk_tolerance: int = Field(ge=0, le=100)
	# 0 = quick wins, 100 = long-term bets
	time_horizon: int = Field(ge=0, le=100)


class FocusProfile(BaseModel):
	"""What a role pays attention to when generating initiatives."""
	model_config = ConfigDict(frozen=True)

	key_questions: tuple[str, ...] = ()
	revenue_angles: tuple[str, ...] = ()
	scan_topics: tuple[str, ...] = ()
