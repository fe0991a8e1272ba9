"""
LLM usage tracking.

Records every provider execution to SQLite so monthly token budgets can be
enforced and usage inspected per provider.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def estimate_tokens(text: str) -> int:
	"""Rough estimate: 1 token is about 4 characters."""
	return len(text) // 4


@dataclass
class UsageRecord:
	"""A single recorded provider execution."""
	provider: str
	model: str = ""
	tier: str = ""
	agent_type: str = ""
	task_type: str = ""
	prompt_tokens: int = 0
	completion_tokens: int = 0
	duration_ms: int = 0
	retries_used: int = 0
	success: bool = True
	error: str = ""
	timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


@dataclass
class ProviderUsage:
	"""Aggregate usage for a provider."""
	provider: str
	requests: int
	successful: int
	failed: int
	total_tokens: int
	avg_duration_ms: float


class UsageStore:
	"""SQLite-backed storage for usage records."""

	def __init__(self, db_path: Path, monthly_budgets: Optional[dict[str, int]] = None):
		self.db_path = Path(db_path)
		self.db_path.parent.mkdir(parents=True, exist_ok=True)
		# provider -> max tokens per calendar month; missing means unlimited
		self.monthly_budgets = dict(monthly_budgets or {})
		self._ensure_table()

	def _ensure_table(self) -> None:
		with sqlite3.connect(str(self.db_path)) as conn:
			conn.execute("""
				CREATE TABLE IF NOT EXISTS llm_usage (
					id INTEGER PRIMARY KEY AUTOINCREMENT,
					provider TEXT NOT NULL,
					model TEXT DEFAULT '',
					tier TEXT DEFAULT '',
					agent_type TEXT DEFAULT '',
					task_type TEXT DEFAULT '',
					prompt_tokens INTEGER DEFAULT 0,
					completion_tokens INTEGER DEFAULT 0,
					duration_ms INTEGER DEFAULT 0,
					retries_used INTEGER DEFAULT 0,
					success INTEGER DEFAULT 1,
					error TEXT DEFAULT '',
					timestamp TEXT NOT NULL
				)
			""")
			conn.execute("""
				CREATE INDEX IF NOT EXISTS idx_llm_usage_monthly ON llm_usage(provider, timestamp)
			""")

	def _connect(self) -> sqlite3.Connection:
		conn = sqlite3.connect(str(self.db_path))
		conn.row_factory = sqlite3.Row
		return conn

	def record(self, record: UsageRecord) -> None:
		with self._connect() as conn:
			conn.execute(
				"""
				INSERT INTO llm_usage
				(provider, model, tier, agent_type, task_type, prompt_tokens, completion_tokens,
				duration_ms, retries_used, success, error, timestamp)
				VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
				""",
				(
					record.provider,
					record.model,
					record.tier,
					record.agent_type,
					record.task_type,
					record.prompt_tokens,
					record.completion_tokens,
					record.duration_ms,
					record.retries_used,
					1 if record.success else 0,
					record.error,
					record.timestamp,
				),
			)

	def query(
		self,
		provider: Optional[str] = None,
		since: Optional[str] = None,
		limit: int = 100,
	) -> list[UsageRecord]:
		"""Query usage records with optional filters, newest first."""
		conditions: list[str] = []
		params: list[Any] = []

		if provider:
			conditions.append("provider = ?")
			params.append(provider)
		if since:
			conditions.append("timestamp >= ?")
			params.append(since)

		where = " AND ".join(conditions) if conditions else "1=1"

		with self._connect() as conn:
			rows = conn.execute(
				f"SELECT * FROM llm_usage WHERE {where} ORDER BY timestamp DESC LIMIT ?",
				[*params, limit],
			).fetchall()

		return [
			UsageRecord(
				provider=row["provider"],
				model=row["model"],
				tier=row["tier"],
				agent_type=row["agent_type"],
				task_type=row["task_type"],
				prompt_tokens=row["prompt_tokens"],
				completion_tokens=row["completion_tokens"],
				duration_ms=row["duration_ms"],
				retries_used=row["retries_used"],
				success=bool(row["success"]),
				error=row["error"],
				timestamp=row["timestamp"],
			)
			for row in rows
		]

	def tokens_this_month(self, provider: str, now: Optional[datetime] = None) -> int:
		"""Prompt plus completion tokens recorded since the first of the month."""
		month_start = (now or datetime.now()).replace(day=1, hour=0, minute=0, second=0, microsecond=0)
		with self._connect() as conn:
			row = conn.execute(
				"""
				SELECT COALESCE(SUM(prompt_tokens + completion_tokens), 0) AS tokens
				FROM llm_usage WHERE provider = ? AND timestamp >= ?
				""",
				(provider, month_start.isoformat()),
			).fetchone()
		return int(row["tokens"])

	def has_available_quota(self, provider: str, estimated_tokens: int, now: Optional[datetime] = None) -> bool:
		"""False only when a budget is set and the estimate would exceed it."""
		budget = self.monthly_budgets.get(provider)
		if budget is None:
			return True
		used = self.tokens_this_month(provider, now)
		if used + estimated_tokens > budget:
			logger.warning(f"{provider} monthly budget exhausted ({used}/{budget} tokens)")
			return False
		return True

	def get_stats(self) -> list[ProviderUsage]:
		"""Aggregate usage per provider."""
		with self._connect() as conn:
			rows = conn.execute("""
				SELECT
					provider,
					COUNT(*) AS requests,
					SUM(CASE WHEN success = 1 THEN 1 ELSE 0 END) AS successful,
					SUM(prompt_tokens + completion_tokens) AS total_tokens,
					AVG(duration_ms) AS avg_duration_ms
				FROM llm_usage
				GROUP BY provider
				ORDER BY requests DESC
			""").fetchall()

		return [
			ProviderUsage(
				provider=row["provider"],
				requests=row["requests"],
				successful=row["successful"],
				failed=row["requests"] - row["successful"],
				total_tokens=row["total_tokens"],
				avg_duration_ms=row["avg_duration_ms"],
			)
			for row in rows
		]
