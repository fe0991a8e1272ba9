"""
GitHub issue client with circuit-broken API calls.

PyGithub is synchronous, so calls run in a worker thread. Every call goes
through a named circuit breaker whose fallback is an empty list or None, so
a GitHub outage degrades context instead of failing the selection loop.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from github import Auth, Github
from github.Issue import Issue
from github.Repository import Repository

from .initiative.dedup import SIMILARITY_THRESHOLD, jaccard_similarity, normalize_title
from .resilience import GITHUB_OPTIONS, CircuitBreakerRegistry, default_registry
from .secrets import CredentialResolver

logger = logging.getLogger(__name__)

SEARCH_BREAKER = "github-search-issues"
LIST_BREAKER = "github-list-issues"
CREATE_BREAKER = "github-create-issue"

# Circuits that must be closed for GitHub to count as available
AVAILABILITY_BREAKERS = (SEARCH_BREAKER, LIST_BREAKER, CREATE_BREAKER)


@dataclass
class GitHubIssue:
	"""Structured issue data."""
	number: int
	title: str
	state: str
	body: Optional[str]
	labels: list[str]
	assignees: list[str]
	created_at: str
	updated_at: str
	url: str


@dataclass
class IssueSummary:
	"""Open and recently closed issues, one line each."""
	open: list[str] = field(default_factory=list)
	recent: list[str] = field(default_factory=list)


def _to_issue(issue: Issue) -> GitHubIssue:
	return GitHubIssue(
		number=issue.number,
		title=issue.title,
		state=issue.state,
		body=issue.body,
		labels=[label.name for label in issue.labels],
		assignees=[a.login for a in issue.assignees],
		created_at=issue.created_at.isoformat() if issue.created_at else "",
		updated_at=issue.updated_at.isoformat() if issue.updated_at else "",
		url=issue.html_url,
	)


class GitHubIssueClient:
	"""Issue operations on one repository."""

	def __init__(
		self,
		org: str,
		repo: str,
		token: Optional[str] = None,
		credentials: Optional[CredentialResolver] = None,
		registry: Optional[CircuitBreakerRegistry] = None,
	):
		self.org = org
		self.repo = repo
		self._token = token
		self.credentials = credentials or CredentialResolver()
		self.registry = registry or default_registry
		self._github: Optional[Github] = None

		self._search = self.registry.register(
			SEARCH_BREAKER, self._threaded(self._search_issues), GITHUB_OPTIONS, fallback=self._search_fallback,
		)
		self._list = self.registry.register(
			LIST_BREAKER, self._threaded(self._list_issues), GITHUB_OPTIONS, fallback=self._list_fallback,
		)
		self._create = self.registry.register(
			CREATE_BREAKER, self._threaded(self._create_issue), GITHUB_OPTIONS, fallback=self._create_fallback,
		)

	@property
	def token(self) -> Optional[str]:
		return self._token or self.credentials.get("GITHUB_TOKEN")

	@property
	def full_name(self) -> str:
		return f"{self.org}/{self.repo}"

	def is_configured(self) -> bool:
		return bool(self.token and self.org and self.repo)

	def is_github_available(self) -> bool:
		"""Token and repository configured, and search/list/create circuits not open."""
		if not self.is_configured():
			return False
		return all(self.registry.is_available(name) for name in AVAILABILITY_BREAKERS)

	def _get_github(self) -> Github:
		"""Get or create GitHub API instance."""
		if self._github is None:
			token = self.token
			if not token:
				raise ValueError("GitHub token not configured. Set GITHUB_TOKEN.")
			self._github = Github(auth=Auth.Token(token))
		return self._github

	def _get_repo(self) -> Repository:
		return self._get_github().get_repo(self.full_name)

	@staticmethod
	def _threaded(fn):
		async def run(*args):
			return await asyncio.to_thread(fn, *args)
		return run

	# Blocking calls, run in a worker thread

	def _search_issues(self, query: str, limit: int) -> list[GitHubIssue]:
		results = self._get_github().search_issues(f"{query} repo:{self.full_name} is:issue")
		return [_to_issue(issue) for issue in results[:limit]]

	def _list_issues(self, state: str, limit: int) -> list[GitHubIssue]:
		issues = self._get_repo().get_issues(state=state, sort="updated", direction="desc")
		return [_to_issue(issue) for issue in issues[:limit] if issue.pull_request is None]

	def _create_issue(self, title: str, body: str, labels: list[str], assignees: list[str]) -> GitHubIssue:
		issue = self._get_repo().create_issue(title=title, body=body, labels=labels, assignees=assignees)
		logger.info(f"Created issue #{issue.number} in {self.full_name}: {title}")
		return _to_issue(issue)

	# Fallbacks when a circuit is open or a call fails

	def _search_fallback(self, *args) -> list:
		logger.warning("GitHub search unavailable - returning empty results")
		return []

	def _list_fallback(self, *args) -> list:
		logger.warning("GitHub list issues unavailable - returning empty results")
		return []

	def _create_fallback(self, *args) -> None:
		logger.error("GitHub create issue unavailable - issue NOT created")
		return None

	# Public API

	async def search_issues(self, query: str, limit: int = 10) -> list[GitHubIssue]:
		if not self.is_configured():
			return []
		return await self._search.call(query, limit)

	async def list_issues(self, state: str = "open", limit: int = 20) -> list[GitHubIssue]:
		"""Issues sorted by most recently updated, pull requests excluded."""
		if not self.is_configured():
			return []
		return await self._list.call(state, limit)

	async def create_issue(
		self,
		title: str,
		body: str = "",
		labels: Optional[list[str]] = None,
		assignees: Optional[list[str]] = None,
	) -> Optional[GitHubIssue]:
		if not self.is_configured():
			return None
		return await self._create.call(title, body, labels or [], assignees or [])

	async def find_similar_issue(self, title: str) -> Optional[GitHubIssue]:
		"""An issue, open or closed, whose title matches or closely resembles title."""
		normalized = normalize_title(title)
		for issue in await self.search_issues(f'"{title}" in:title', limit=5):
			if normalize_title(issue.title) == normalized:
				return issue
			if jaccard_similarity(title, issue.title) > SIMILARITY_THRESHOLD:
				return issue
		return None

	async def fetch_issue_summary(self, open_limit: int = 15, closed_limit: int = 10) -> IssueSummary:
		"""Open issues with labels and recently closed issues, formatted for prompts."""
		open_issues, closed_issues = await asyncio.gather(
			self.list_issues("open", open_limit),
			self.list_issues("closed", closed_limit),
		)
		return IssueSummary(
			open=[f"#{i.number}: {i.title} [{', '.join(i.labels)}]" for i in open_issues],
			recent=[f"#{i.number}: {i.title} (closed)" for i in closed_issues],
		)
