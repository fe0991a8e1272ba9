"""Tests for LLM usage tracking."""

from datetime import datetime

from aito.usage import UsageRecord, UsageStore, estimate_tokens


def record(store, provider, tokens, when, success=True):
	store.record(UsageRecord(
		provider=provider,
		prompt_tokens=tokens,
		success=success,
		timestamp=when.isoformat(),
	))


class TestUsageStore:
	"""Recording and querying usage."""

	def test_estimate_tokens(self):
		"""Four characters count as one token."""
		assert estimate_tokens("x" * 41) == 10
		assert estimate_tokens("") == 0

	def test_query_filters_and_order(self, tmp_path):
		"""Queries filter by provider and return newest first."""
		store = UsageStore(tmp_path / "usage.db")
		record(store, "claude", 10, datetime(2025, 3, 1))
		record(store, "claude", 20, datetime(2025, 3, 5))
		record(store, "gemini", 30, datetime(2025, 3, 3))

		claude = store.query(provider="claude")
		assert [r.prompt_tokens for r in claude] == [20, 10]
		assert len(store.query(since=datetime(2025, 3, 2).isoformat())) == 2

	def test_tokens_this_month(self, tmp_path):
		"""Only records since the first of the current month count."""
		store = UsageStore(tmp_path / "usage.db")
		record(store, "claude", 500, datetime(2025, 2, 28, 23, 59))
		record(store, "claude", 40, datetime(2025, 3, 1, 0, 0))
		record(store, "claude", 2, datetime(2025, 3, 15))
		record(store, "gemini", 1000, datetime(2025, 3, 2))

		assert store.tokens_this_month("claude", now=datetime(2025, 3, 20)) == 42

	def test_quota(self, tmp_path):
		"""A budget is exhausted when the estimate would exceed it."""
		store = UsageStore(tmp_path / "usage.db", monthly_budgets={"claude": 100})
		now = datetime(2025, 3, 20)
		record(store, "claude", 90, datetime(2025, 3, 10))

		assert store.has_available_quota("claude", 10, now=now)
		assert not store.has_available_quota("claude", 11, now=now)
		assert store.has_available_quota("gemini", 10 ** 9, now=now)

	def test_stats(self, tmp_path):
		"""Stats aggregate requests, outcomes, and tokens per provider."""
		store = UsageStore(tmp_path / "usage.db")
		now = datetime(2025, 3, 1)
		record(store, "claude", 10, now)
		record(store, "claude", 20, now, success=False)
		record(store, "gemini", 5, now)

		stats = {s.provider: s for s in store.get_stats()}
		assert stats["claude"].requests == 2
		assert stats["claude"].successful == 1
		assert stats["claude"].failed == 1
		assert stats["claude"].total_tokens == 30
		assert stats["gemini"].requests == 1
