"""
Retry with exponential backoff for provider executions.

Only transient failures (rate limits, timeouts, 429/502/503, overloaded)
consume retry budget; anything else is surfaced immediately.
"""

import asyncio
import dataclasses
import logging
import random
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional

from .types import LLMResult, LLMSession

logger = logging.getLogger(__name__)

RETRYABLE_PATTERNS = (
	"rate_limit",
	"timeout",
	"timed out",
	"429",
	"502",
	"503",
	"overloaded",
)


@dataclass(frozen=True)
class RetryConfig:
	max_retries: int = 3
	base_delay_ms: int = 5000
	max_delay_ms: int = 60000
	jitter_ms: int = 1000


def is_retryable_error(
	error: Optional[str],
	output: str = "",
	patterns: Iterable[str] = RETRYABLE_PATTERNS,
) -> bool:
	"""Case-insensitive substring match of error and output against patterns."""
	haystack = f"{error or ''} {output or ''}".lower()
	return any(pattern in haystack for pattern in patterns)


def backoff_delay_ms(
	attempt: int,
	config: RetryConfig,
	rand: Callable[[], float] = random.random,
) -> float:
	"""min(base * 2^attempt + jitter, max)"""
	delay = config.base_delay_ms * (2 ** attempt) + rand() * config.jitter_ms
	return min(delay, config.max_delay_ms)


async def execute_with_retry(
	execute: Callable[[LLMSession], Awaitable[LLMResult]],
	session: LLMSession,
	config: RetryConfig,
	sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
	clock: Callable[[], float] = time.monotonic,
	rand: Callable[[], float] = random.random,
) -> LLMResult:
	"""
	Run execute up to max_retries + 1 times.

	Stops on the first success or the first non-retryable failure. The
	returned result's duration covers every attempt and backoff sleep, and
	retries_used counts the retries that were actually made.

	Args:
		execute: Single-attempt callable
		session: Request; its max_retries overrides the config when set
		config: Backoff parameters
		sleep: Awaitable sleep in seconds (injectable for tests)
		clock: Monotonic clock in seconds (injectable for tests)
		rand: Jitter source in [0, 1)
	"""
	max_retries = session.max_retries if session.max_retries is not None else config.max_retries
	started = clock()
	result: Optional[LLMResult] = None

	for attempt in range(max_retries + 1):
		if attempt > 0:
			delay = backoff_delay_ms(attempt - 1, config, rand)
			logger.warning(
				f"Retrying after {delay:.0f}ms (attempt {attempt + 1}/{max_retries + 1}): {result.error}"
			)
			await sleep(delay / 1000)

		result = await execute(session)
		elapsed_ms = int((clock() - started) * 1000)

		if result.success:
			return dataclasses.replace(result, duration_ms=elapsed_ms, retries_used=attempt)

		if not result.retryable:
			logger.info(f"{result.provider.value} failed with non-retryable error: {result.error}")
			return dataclasses.replace(result, duration_ms=elapsed_ms, retries_used=attempt)

	logger.error(f"{result.provider.value} exhausted {max_retries} retries: {result.error}")
	return dataclasses.replace(
		result,
		duration_ms=int((clock() - started) * 1000),
		retries_used=max_retries,
	)
