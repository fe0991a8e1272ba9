"""
Context aggregation for initiative prompts.

Sources produce text blocks for a role; the aggregator fetches them through a
TTL cache and drops any that are unavailable or fail.
"""

from .base import ContextSource, SourceName, UnknownSourceError
from .builder import ContextAggregator, format_context_prompt
from .cache import KeyValueCache, TTLCache

__all__ = [
	"ContextAggregator",
	"ContextSource",
	"KeyValueCache",
	"SourceName",
	"TTLCache",
	"UnknownSourceError",
	"format_context_prompt",
]
