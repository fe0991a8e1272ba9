"""Team status source: loop progress of every role from the agent state store."""

from datetime import datetime

from ...initiative.models import AgentRole
from ...store import AgentState, AgentStateStore
from ..base import ContextSource, SourceName


def _format_state(state: AgentState) -> str:
	last = "unknown"
	if state.last_loop_at:
		last = datetime.fromisoformat(state.last_loop_at).strftime("%Y-%m-%d %H:%M")
	status = state.status or state.current_focus or "active"
	return f"- {state.role.upper()}: Loop {state.loop_count}, {status}, last: {last}"


class TeamStatusSource(ContextSource):
	name = SourceName.TEAM_STATUS.value
	label = "Team Status"
	cache_ttl = 60

	def __init__(self, store: AgentStateStore):
		self.store = store

	async def is_available(self) -> bool:
		return await self.store.ping()

	async def fetch(self, role: AgentRole) -> str:
		states = await self.store.list_states()
		lines = [_format_state(state) for state in states] or ["No team data available"]
		return "\n".join([f"### {self.label} (Live)", *lines])
