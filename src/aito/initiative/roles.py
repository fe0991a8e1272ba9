"""Static per-role tables used to build initiative providers."""

from datetime import datetime

from .models import (
	AgentRole,
	FocusConfig,
	FocusProfile,
	Initiative,
	InitiativePriority,
	InitiativeSource,
)

DEFAULT_COOLDOWN_SECONDS = 3600

DEFAULT_FOCUS = FocusConfig(
	revenue_focus=80,
	community_growth=60,
	marketing_vs_dev=50,
	risk_tolerance=40,
	time_horizon=30,
)

ROLE_CONTEXT_SOURCES: dict[AgentRole, tuple[str, ...]] = {
	AgentRole.CEO: ("rag", "github", "team-status", "market-data"),
	AgentRole.CMO: ("rag", "github", "team-status", "market-data"),
	AgentRole.CTO: ("rag", "github", "team-status"),
	AgentRole.CFO: ("rag", "github", "market-data"),
	AgentRole.COO: ("rag", "github", "team-status"),
	AgentRole.CCO: ("rag", "github"),
	AgentRole.DAO: ("rag", "github", "team-status"),
}

# A tag match lets a role take on work suggested for another role
ROLE_KEYWORDS: dict[AgentRole, frozenset[str]] = {
	AgentRole.CEO: frozenset({"strategy", "partnership", "launch", "roadmap", "vision"}),
	AgentRole.CMO: frozenset({"marketing", "social", "community", "growth", "viral", "influencer"}),
	AgentRole.CTO: frozenset({"technical", "security", "infrastructure", "smart-contract", "automation"}),
	AgentRole.CFO: frozenset({"funding", "grants", "treasury", "revenue", "cost", "budget"}),
	AgentRole.COO: frozenset({"operations", "partnership", "efficiency", "process", "coordination"}),
	AgentRole.CCO: frozenset({"compliance", "legal", "regulation", "risk", "audit"}),
	AgentRole.DAO: frozenset({"governance", "voting", "proposal", "dao", "treasury", "community"}),
}

ROLE_COOLDOWNS: dict[AgentRole, int] = {
	# Strategic and compliance work moves slower
	AgentRole.CEO: 7200,
	AgentRole.CCO: 7200,
	AgentRole.CMO: 3600,
	AgentRole.CTO: 3600,
	AgentRole.CFO: 3600,
	AgentRole.COO: 3600,
	AgentRole.DAO: 3600,
}

FOCUS_PROFILES: dict[AgentRole, FocusProfile] = {
	AgentRole.CEO: FocusProfile(
		key_questions=(
			"What is blocking our launch?",
			"Which partnerships could accelerate growth?",
			"Are all agents productive?",
		),
		revenue_angles=("Strategic partnerships", "Investor relations", "Token launch timing"),
		scan_topics=("roadmap", "team status", "blockers", "strategy"),
	),
	AgentRole.CMO: FocusProfile(
		key_questions=(
			"How can we grow Twitter/X followers?",
			"What content would go viral?",
			"Which influencers should we approach?",
		),
		revenue_angles=(
			"Viral marketing campaigns",
			"Community growth drives token demand",
			"Influencer partnerships",
		),
		scan_topics=("crypto trends", "meme marketing", "community growth"),
	),
	AgentRole.CFO: FocusProfile(
		key_questions=(
			"What funding sources are available?",
			"How do we optimize treasury?",
			"What are gas-efficient strategies?",
		),
		revenue_angles=("Grants and funding", "Treasury yield strategies", "Cost optimization"),
		scan_topics=("defi yields", "grants", "treasury management"),
	),
	AgentRole.CTO: FocusProfile(
		key_questions=(
			"Are there security vulnerabilities?",
			"What technical debt needs addressing?",
			"Which tools would improve efficiency?",
		),
		revenue_angles=(
			"Automation saves costs",
			"Security prevents losses",
			"Better tools mean faster delivery",
		),
		scan_topics=("smart contracts", "security", "infrastructure"),
	),
	AgentRole.COO: FocusProfile(
		key_questions=(
			"What processes are inefficient?",
			"Which partnerships need follow-up?",
			"How is team coordination?",
		),
		revenue_angles=("Process efficiency", "Partnership revenue", "Resource optimization"),
		scan_topics=("operations", "partnerships", "efficiency"),
	),
	AgentRole.CCO: FocusProfile(
		key_questions=(
			"Are we compliant with regulations?",
			"What legal risks exist?",
			"Do we need legal counsel?",
		),
		revenue_angles=("Compliance prevents fines", "Legal clarity enables growth", "Risk management"),
		scan_topics=("crypto regulations", "compliance", "legal"),
	),
	AgentRole.DAO: FocusProfile(
		key_questions=(
			"What governance decisions are pending?",
			"Is voting participation healthy?",
			"Are treasury allocations optimal?",
		),
		revenue_angles=("Governance efficiency", "Community trust builds token value", "Treasury optimization"),
		scan_topics=("governance", "voting", "dao management"),
	),
}

# Bootstrap items predate anything surfaced at runtime
BOOTSTRAP_CREATED_AT = datetime(2025, 1, 1)


def _bootstrap(
	id: str,
	title: str,
	description: str,
	priority: InitiativePriority,
	revenue_impact: int,
	effort: int,
	assignee: AgentRole,
	tags: tuple[str, ...],
) -> Initiative:
	return Initiative(
		id=id,
		title=title,
		description=description,
		priority=priority,
		revenue_impact=revenue_impact,
		effort=effort,
		suggested_assignee=assignee,
		tags=frozenset(tags),
		source=InitiativeSource.BOOTSTRAP,
		created_at=BOOTSTRAP_CREATED_AT,
	)


BOOTSTRAP_INITIATIVES: tuple[Initiative, ...] = (
	_bootstrap(
		"bootstrap-x-reach",
		"Activate X/Twitter for organic reach",
		"Post regularly, engage with the community and build a follower base. "
		"Target: 1000 followers in the first month.",
		InitiativePriority.CRITICAL, 9, 2, AgentRole.CMO,
		("marketing", "social", "growth"),
	),
	_bootstrap(
		"bootstrap-coingecko",
		"Apply for CoinGecko listing",
		"Listing provides legitimacy and visibility. Free to apply: submit token details, "
		"contract address and social links.",
		InitiativePriority.HIGH, 8, 3, AgentRole.CMO,
		("listing", "visibility", "growth"),
	),
	_bootstrap(
		"bootstrap-cmc",
		"Apply for CoinMarketCap listing",
		"The most visited crypto data site. A listing drives organic traffic and trading volume.",
		InitiativePriority.HIGH, 8, 3, AgentRole.CMO,
		("listing", "visibility", "growth"),
	),
	_bootstrap(
		"bootstrap-grants",
		"Research and apply for crypto grants",
		"Foundations such as Ethereum Foundation, Gitcoin and Optimism RPGF offer grants. "
		"Research eligibility and apply.",
		InitiativePriority.HIGH, 10, 5, AgentRole.CFO,
		("funding", "grants", "revenue"),
	),
	_bootstrap(
		"bootstrap-token-utility",
		"Define token utility features",
		"Define utility such as staking, governance and feature access to strengthen "
		"the token's value proposition.",
		InitiativePriority.MEDIUM, 7, 5, AgentRole.CTO,
		("tokenomics", "utility", "product"),
	),
	_bootstrap(
		"bootstrap-meme-contest",
		"Launch community meme contest",
		"User-generated content drives engagement. Prize pool from treasury; winners get "
		"tokens and recognition.",
		InitiativePriority.MEDIUM, 6, 3, AgentRole.CMO,
		("community", "engagement", "marketing"),
	),
	_bootstrap(
		"bootstrap-ambassadors",
		"Create ambassador program",
		"Recruit community members as ambassadors with incentives for promotion, content "
		"creation and moderation.",
		InitiativePriority.MEDIUM, 7, 4, AgentRole.COO,
		("community", "growth", "partnerships"),
	),
	_bootstrap(
		"bootstrap-audit-prep",
		"Security audit preparation",
		"Clean up contracts, document functions and prepare the test suite ahead of a "
		"security audit.",
		InitiativePriority.HIGH, 5, 6, AgentRole.CTO,
		("security", "audit", "trust"),
	),
)


def bootstrap_for(role: AgentRole) -> tuple[Initiative, ...]:
	return tuple(i for i in BOOTSTRAP_INITIATIVES if i.suggested_assignee == role)
