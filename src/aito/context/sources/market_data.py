"""
Market data source: spot prices and the Fear & Greed index over HTTP.

A failing endpoint or a malformed payload drops only its own section; when
neither yields anything the fetch raises and the aggregator omits the block.
"""

import asyncio
import logging
from typing import Callable, Optional

import aiohttp

from ...initiative.models import AgentRole
from ..base import ContextSource, SourceName

logger = logging.getLogger(__name__)

EXTREME_FEAR = 25
EXTREME_GREED = 75


class MarketDataError(Exception):
	"""Raised when no market endpoint returned usable data."""
	pass


def format_prices(data: dict) -> list[str]:
	"""Lines for a CoinGecko simple/price response with 24h change."""
	lines = ["## Crypto Market Overview"]
	for coin, quote in sorted(data.items()):
		if not isinstance(quote, dict) or "usd" not in quote:
			continue
		line = f"- {coin.upper()}: ${quote['usd']:,.2f}"
		change = quote.get("usd_24h_change")
		if change is not None:
			line += f" ({change:+.2f}% 24h)"
		lines.append(line)
	return lines if len(lines) > 1 else []


def format_fear_greed(data: dict) -> list[str]:
	"""Lines for an alternative.me fng response, newest entry first."""
	entries = data.get("data") or []
	if not entries:
		return []

	current = entries[0]
	value = int(current["value"])
	lines = ["## Fear & Greed Index", f"- Current: {value} ({current['value_classification']})"]
	if len(entries) > 1:
		previous = entries[1]
		lines.append(f"- Previous: {int(previous['value'])} ({previous['value_classification']})")
	if value <= EXTREME_FEAR:
		lines.append("- EXTREME FEAR: good time for contrarian messaging")
	elif value >= EXTREME_GREED:
		lines.append("- EXTREME GREED: risk of correction")
	return lines


def _format_section(formatter: Callable[[dict], list[str]], data: Optional[dict], url: str) -> list[str]:
	"""Formatted lines, or none when the payload is missing or malformed."""
	if data is None:
		return []
	try:
		return formatter(data)
	except (KeyError, TypeError, ValueError, AttributeError) as e:
		logger.warning(f"Malformed market data from {url}: {e!r}")
		return []


class MarketDataSource(ContextSource):
	name = SourceName.MARKET_DATA.value
	label = "Market Data"
	cache_ttl = 900

	def __init__(self, price_url: str, fear_greed_url: str, timeout: float = 10.0):
		self.price_url = price_url
		self.fear_greed_url = fear_greed_url
		self.timeout = timeout

	async def is_available(self) -> bool:
		return bool(self.price_url or self.fear_greed_url)

	async def fetch(self, role: AgentRole) -> str:
		async with aiohttp.ClientSession(
			timeout=aiohttp.ClientTimeout(total=self.timeout),
			headers={"Accept": "application/json"},
		) as session:
			prices, fear_greed = await asyncio.gather(
				self._get_json(session, self.price_url),
				self._get_json(session, self.fear_greed_url),
			)

		sections = [
			section
			for section in (
				_format_section(format_prices, prices, self.price_url),
				_format_section(format_fear_greed, fear_greed, self.fear_greed_url),
			)
			if section
		]
		if not sections:
			raise MarketDataError("No market data available")

		return "\n\n".join("\n".join(section) for section in sections)

	async def _get_json(self, session: aiohttp.ClientSession, url: str) -> Optional[dict]:
		if not url:
			return None
		try:
			async with session.get(url) as response:
				if response.status != 200:
					logger.warning(f"Market data request failed: HTTP {response.status} for {url}")
					return None
				return await response.json(content_type=None)
		except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
			logger.warning(f"Market data request failed for {url}: {e}")
			return None
