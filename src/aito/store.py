"""SQLite store for agent loop state and executed initiatives."""

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

import aiosqlite

from .initiative.dedup import title_hash
from .initiative.models import Initiative


class AgentStatus(str, Enum):
	IDLE = "idle"
	RUNNING = "running"
	COOLDOWN = "cooldown"
	FAILED = "failed"


@dataclass
class AgentState:
	role: str
	loop_count: int = 0
	status: str = AgentStatus.IDLE.value
	current_focus: Optional[str] = None
	last_loop_at: Optional[str] = None
	last_result: Optional[str] = None

	def to_dict(self) -> dict:
		return asdict(self)

	@classmethod
	def from_row(cls, row: aiosqlite.Row) -> "AgentState":
		return cls(
			role=row["role"],
			loop_count=row["loop_count"],
			status=row["status"],
			current_focus=row["current_focus"],
			last_loop_at=row["last_loop_at"],
			last_result=row["last_result"],
		)


class AgentStateStore:
	# Longest result excerpt kept per role
	MAX_RESULT_CHARS = 2000

	def __init__(self, db_path: Path):
		self.db_path = Path(db_path)
		self.db_path.parent.mkdir(parents=True, exist_ok=True)

	async def init(self):
		"""Initialize database schema."""
		async with aiosqlite.connect(self.db_path) as db:
			await db.executescript("""
				CREATE TABLE IF NOT EXISTS agent_state (
					role TEXT PRIMARY KEY,
					loop_count INTEGER NOT NULL DEFAULT 0,
					status TEXT NOT NULL DEFAULT 'idle',
					current_focus TEXT,
					last_loop_at TEXT,
					last_result TEXT
				);

				CREATE TABLE IF NOT EXISTS executed_initiatives (
					title_hash TEXT PRIMARY KEY,
					title TEXT NOT NULL,
					role TEXT NOT NULL,
					executed_at TEXT NOT NULL
				);

				CREATE TABLE IF NOT EXISTS proposed_initiatives (
					title_hash TEXT PRIMARY KEY,
					role TEXT NOT NULL,
					initiative TEXT NOT NULL,
					issue_url TEXT,
					proposed_at TEXT NOT NULL
				);
			""")
			await db.commit()

	async def ping(self) -> bool:
		"""True if the database answers a trivial query."""
		try:
			async with aiosqlite.connect(self.db_path) as db:
				async with db.execute("SELECT 1") as cursor:
					return (await cursor.fetchone()) is not None
		except aiosqlite.Error:
			return False

	async def get_state(self, role: str) -> Optional[AgentState]:
		async with aiosqlite.connect(self.db_path) as db:
			db.row_factory = aiosqlite.Row
			async with db.execute("SELECT * FROM agent_state WHERE role = ?", (role,)) as cursor:
				row = await cursor.fetchone()
				return AgentState.from_row(row) if row else None

	async def list_states(self) -> list[AgentState]:
		"""All known roles, most recently active first."""
		async with aiosqlite.connect(self.db_path) as db:
			db.row_factory = aiosqlite.Row
			async with db.execute(
				"SELECT * FROM agent_state ORDER BY last_loop_at DESC, role"
			) as cursor:
				rows = await cursor.fetchall()
				return [AgentState.from_row(row) for row in rows]

	async def set_status(self, role: str, status: AgentStatus, current_focus: Optional[str] = None):
		async with aiosqlite.connect(self.db_path) as db:
			await db.execute(
				"""
				INSERT INTO agent_state (role, status, current_focus) VALUES (?, ?, ?)
				ON CONFLICT(role) DO UPDATE SET status = excluded.status, current_focus = excluded.current_focus
				""",
				(role, status.value, current_focus),
			)
			await db.commit()

	async def record_loop(
		self,
		role: str,
		status: AgentStatus,
		current_focus: Optional[str],
		result: Optional[str],
		at: Optional[datetime] = None,
	) -> AgentState:
		"""Count a completed loop for the role and store its outcome."""
		at = at or datetime.now()
		excerpt = result[:self.MAX_RESULT_CHARS] if result else result
		async with aiosqlite.connect(self.db_path) as db:
			await db.execute(
				"""
				INSERT INTO agent_state (role, loop_count, status, current_focus, last_loop_at, last_result)
				VALUES (?, 1, ?, ?, ?, ?)
				ON CONFLICT(role) DO UPDATE SET
					loop_count = agent_state.loop_count + 1,
					status = excluded.status,
					current_focus = excluded.current_focus,
					last_loop_at = excluded.last_loop_at,
					last_result = excluded.last_result
				""",
				(role, status.value, current_focus, at.isoformat(), excerpt),
			)
			await db.commit()
		return await self.get_state(role)

	async def mark_executed(self, title: str, role: str, at: Optional[datetime] = None):
		async with aiosqlite.connect(self.db_path) as db:
			await db.execute(
				"""
				INSERT OR IGNORE INTO executed_initiatives (title_hash, title, role, executed_at)
				VALUES (?, ?, ?, ?)
				""",
				(title_hash(title), title, role, (at or datetime.now()).isoformat()),
			)
			await db.execute("DELETE FROM proposed_initiatives WHERE title_hash = ?", (title_hash(title),))
			await db.commit()

	async def executed_titles(self) -> list[str]:
		"""Titles of every executed initiative, oldest first."""
		async with aiosqlite.connect(self.db_path) as db:
			async with db.execute(
				"SELECT title FROM executed_initiatives ORDER BY executed_at"
			) as cursor:
				rows = await cursor.fetchall()
				return [row[0] for row in rows]

	async def has_proposal(self, title: str) -> bool:
		async with aiosqlite.connect(self.db_path) as db:
			async with db.execute(
				"SELECT 1 FROM proposed_initiatives WHERE title_hash = ?", (title_hash(title),)
			) as cursor:
				return (await cursor.fetchone()) is not None

	async def add_proposal(
		self,
		initiative: Initiative,
		issue_url: Optional[str] = None,
		at: Optional[datetime] = None,
	) -> bool:
		"""Keep a derived initiative until it is executed. False if the title is already pending."""
		async with aiosqlite.connect(self.db_path) as db:
			cursor = await db.execute(
				"""
				INSERT OR IGNORE INTO proposed_initiatives (title_hash, role, initiative, issue_url, proposed_at)
				VALUES (?, ?, ?, ?, ?)
				""",
				(
					title_hash(initiative.title),
					initiative.suggested_assignee.value,
					initiative.model_dump_json(),
					issue_url,
					(at or datetime.now()).isoformat(),
				),
			)
			await db.commit()
			return cursor.rowcount > 0

	async def pending_proposals(self, role: Optional[str] = None) -> list[Initiative]:
		"""Derived initiatives not yet executed, oldest first; all roles when role is None."""
		query = "SELECT initiative FROM proposed_initiatives"
		params: tuple = ()
		if role is not None:
			query += " WHERE role = ?"
			params = (role,)
		async with aiosqlite.connect(self.db_path) as db:
			async with db.execute(query + " ORDER BY proposed_at", params) as cursor:
				rows = await cursor.fetchall()
				return [Initiative.model_validate_json(row[0]) for row in rows]
