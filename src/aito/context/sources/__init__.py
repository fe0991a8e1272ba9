"""Built-in context sources."""

from .github import GitHubSource
from .market_data import MarketDataError, MarketDataSource
from .rag import RAGSource
from .team_status import TeamStatusSource

__all__ = [
	"GitHubSource",
	"MarketDataError",
	"MarketDataSource",
	"RAGSource",
	"TeamStatusSource",
]
