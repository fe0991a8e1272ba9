"""GitHub source: open and recently closed issues of the project repository."""

from ...github_client import GitHubIssueClient
from ...initiative.models import AgentRole
from ..base import ContextSource, SourceName

MAX_OPEN = 10
MAX_RECENT = 5


class GitHubSource(ContextSource):
	name = SourceName.GITHUB.value
	label = "GitHub Issues"
	cache_ttl = 900

	def __init__(self, client: GitHubIssueClient):
		self.client = client

	async def is_available(self) -> bool:
		return self.client.is_github_available()

	async def fetch(self, role: AgentRole) -> str:
		summary = await self.client.fetch_issue_summary()
		if summary.open:
			lines = [f"### Open Issues ({len(summary.open)})", *summary.open[:MAX_OPEN]]
		else:
			lines = ["### Open Issues", "None"]
		lines.append("")
		lines.append("### Recently Completed")
		lines.extend(summary.recent[:MAX_RECENT] or ["None"])
		return "\n".join(lines)
