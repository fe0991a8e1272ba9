"""
Circuit Breaker - Fault isolation for external calls.

Wraps an async callable with a closed/open/half-open state machine:
- CLOSED: calls pass through, failures are counted in a rolling window
- OPEN: calls short-circuit to the fallback without invoking the callable
- HALF_OPEN: after the reset timeout exactly one trial call is let through

Breakers are kept in a CircuitBreakerRegistry keyed by name so health
checks can ask whether a dependency is currently isolated.
"""

import asyncio
import logging
import threading
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")


class CircuitState(str, Enum):
	"""Breaker state."""
	CLOSED = "closed"
	OPEN = "open"
	HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
	"""Raised when a call is rejected and the breaker has no fallback."""

	def __init__(self, name: str):
		super().__init__(f"Circuit breaker '{name}' is OPEN")
		self.name = name


@dataclass(frozen=True)
class CircuitBreakerOptions:
	"""Breaker tuning."""
	failure_threshold: int = 5
	reset_timeout_ms: int = 30000
	rolling_window_ms: int = 10000
	# Per-call timeout; a timeout counts as a failure
	timeout_ms: Optional[int] = None


DEFAULT_OPTIONS = CircuitBreakerOptions()

# GitHub can be slow, wait a minute before probing again
GITHUB_OPTIONS = CircuitBreakerOptions(
	failure_threshold=3,
	reset_timeout_ms=60000,
	rolling_window_ms=60000,
	timeout_ms=15000,
)

# One failure here is an exhausted retry sequence, so trip quickly
LLM_PROVIDER_OPTIONS = CircuitBreakerOptions(
	failure_threshold=3,
	reset_timeout_ms=120000,
	rolling_window_ms=600000,
)


@dataclass
class BreakerStats:
	"""Counters for observability."""
	successes: int = 0
	failures: int = 0
	rejects: int = 0
	timeouts: int = 0
	fallbacks: int = 0


class CircuitBreaker(Generic[R]):
	"""
	Circuit breaker around one async callable.

	State transitions happen inside a lock with no awaits, so concurrent
	callers (including ones on worker threads) see a consistent state.
	"""

	def __init__(
		self,
		name: str,
		fn: Callable[..., Awaitable[R]],
		options: CircuitBreakerOptions = DEFAULT_OPTIONS,
		fallback: Optional[Callable[..., R]] = None,
		is_failure: Optional[Callable[[R], bool]] = None,
		clock: Callable[[], float] = time.monotonic,
	):
		"""
		Args:
			name: Unique key for this breaker
			fn: Async callable to protect
			options: Thresholds and timeouts
			fallback: Sync callable receiving the call's arguments, used when the
				circuit is open or the call raises
			is_failure: Predicate marking a returned value as a failure; the value
				is still returned to the caller
			clock: Monotonic time source in seconds
		"""
		self.name = name
		self.fn = fn
		self.options = options
		self.fallback = fallback
		self.is_failure = is_failure
		self.stats = BreakerStats()

		self._clock = clock
		self._lock = threading.Lock()
		self._state = CircuitState.CLOSED
		self._failure_times: deque[float] = deque()
		self._opened_at: Optional[float] = None
		self._trial_in_flight = False

	@property
	def state(self) -> CircuitState:
		"""Current state; an open circuit past its reset timeout reports half-open."""
		with self._lock:
			if self._state == CircuitState.OPEN and self._reset_elapsed(self._clock()):
				return CircuitState.HALF_OPEN
			return self._state

	@property
	def is_open(self) -> bool:
		return self.state == CircuitState.OPEN

	async def call(self, *args: Any, **kwargs: Any) -> R:
		"""Invoke the protected callable through the breaker."""
		if not self._admit():
			self.stats.rejects += 1
			logger.warning(f"Circuit breaker '{self.name}' rejected call (circuit open)")
			return self._fallback_or_raise(CircuitOpenError(self.name), args, kwargs)

		try:
			if self.options.timeout_ms:
				result = await asyncio.wait_for(
					self.fn(*args, **kwargs),
					timeout=self.options.timeout_ms / 1000,
				)
			else:
				result = await self.fn(*args, **kwargs)
		except asyncio.TimeoutError as e:
			self.stats.timeouts += 1
			logger.warning(f"Circuit breaker '{self.name}' call timed out after {self.options.timeout_ms}ms")
			self._record_failure()
			return self._fallback_or_raise(e, args, kwargs)
		except asyncio.CancelledError:
			# Free the half-open trial slot so the breaker can't wedge
			self._record_failure()
			raise
		except Exception as e:
			logger.debug(f"Circuit breaker '{self.name}' call failed: {e}")
			self._record_failure()
			return self._fallback_or_raise(e, args, kwargs)

		if self.is_failure is not None and self.is_failure(result):
			self._record_failure()
		else:
			self._record_success()
		return result

	def trip(self) -> None:
		"""Force the circuit open."""
		with self._lock:
			self._open(self._clock())
		logger.warning(f"Circuit breaker '{self.name}' manually tripped")

	def close(self) -> None:
		"""Force the circuit closed and clear the failure tally."""
		with self._lock:
			self._close()
		logger.info(f"Circuit breaker '{self.name}' manually closed")

	def snapshot(self) -> dict:
		"""State and counters for health reporting."""
		return {"state": self.state.value, "stats": asdict(self.stats)}

	def _admit(self) -> bool:
		with self._lock:
			if self._state == CircuitState.CLOSED:
				return True

			if self._state == CircuitState.OPEN:
				if not self._reset_elapsed(self._clock()):
					return False
				self._state = CircuitState.HALF_OPEN
				self._trial_in_flight = True
				logger.info(f"Circuit breaker '{self.name}' half-open - allowing trial call")
				return True

			# HALF_OPEN: only one trial at a time
			if self._trial_in_flight:
				return False
			self._trial_in_flight = True
			return True

	def _record_success(self) -> None:
		with self._lock:
			self.stats.successes += 1
			if self._state == CircuitState.HALF_OPEN:
				self._close()
				logger.info(f"Circuit breaker '{self.name}' CLOSED - dependency recovered")
			elif self._state == CircuitState.CLOSED:
				self._failure_times.clear()

	def _record_failure(self) -> None:
		with self._lock:
			self.stats.failures += 1
			now = self._clock()

			if self._state == CircuitState.HALF_OPEN:
				self._open(now)
				logger.error(f"Circuit breaker '{self.name}' trial failed - OPEN again")
				return

			if self._state == CircuitState.OPEN:
				return

			self._failure_times.append(now)
			window = self.options.rolling_window_ms / 1000
			while self._failure_times and now - self._failure_times[0] > window:
				self._failure_times.popleft()

			if len(self._failure_times) >= self.options.failure_threshold:
				self._open(now)
				logger.error(
					f"Circuit breaker '{self.name}' OPENED after {self.options.failure_threshold} failures "
					f"- calls rejected for {self.options.reset_timeout_ms}ms"
				)

	def _open(self, now: float) -> None:
		self._state = CircuitState.OPEN
		self._opened_at = now
		self._trial_in_flight = False
		self._failure_times.clear()

	def _close(self) -> None:
		self._state = CircuitState.CLOSED
		self._opened_at = None
		self._trial_in_flight = False
		self._failure_times.clear()

	def _reset_elapsed(self, now: float) -> bool:
		if self._opened_at is None:
			return True
		return (now - self._opened_at) * 1000 >= self.options.reset_timeout_ms

	def _fallback_or_raise(self, error: BaseException, args: tuple, kwargs: dict) -> R:
		if self.fallback is None:
			raise error
		self.stats.fallbacks += 1
		logger.info(f"Circuit breaker '{self.name}' using fallback")
		return self.fallback(*args, **kwargs)


@dataclass
class CircuitBreakerRegistry:
	"""
	Breakers keyed by name.

	Registering an existing name swaps in the new callable and fallback but
	keeps the breaker's state and counters.
	"""

	clock: Callable[[], float] = time.monotonic
	_breakers: dict[str, CircuitBreaker] = field(default_factory=dict)
	_lock: threading.Lock = field(default_factory=threading.Lock)

	def register(
		self,
		name: str,
		fn: Callable[..., Awaitable[R]],
		options: CircuitBreakerOptions = DEFAULT_OPTIONS,
		fallback: Optional[Callable[..., R]] = None,
		is_failure: Optional[Callable[[R], bool]] = None,
	) -> CircuitBreaker[R]:
		with self._lock:
			breaker = self._breakers.get(name)
			if breaker is not None:
				breaker.fn = fn
				breaker.fallback = fallback
				breaker.is_failure = is_failure
				logger.debug(f"Reusing circuit breaker '{name}' ({breaker.state.value})")
				return breaker

			breaker = CircuitBreaker(
				name,
				fn,
				options=options,
				fallback=fallback,
				is_failure=is_failure,
				clock=self.clock,
			)
			self._breakers[name] = breaker
			return breaker

	def get(self, name: str) -> Optional[CircuitBreaker]:
		return self._breakers.get(name)

	def names(self) -> list[str]:
		return sorted(self._breakers)

	def is_open(self, name: str) -> bool:
		"""True only for a registered breaker that is currently rejecting calls."""
		breaker = self._breakers.get(name)
		return breaker.is_open if breaker else False

	def is_available(self, name: str) -> bool:
		return not self.is_open(name)

	def trip(self, name: str) -> bool:
		breaker = self._breakers.get(name)
		if breaker is None:
			return False
		breaker.trip()
		return True

	def close(self, name: str) -> bool:
		breaker = self._breakers.get(name)
		if breaker is None:
			return False
		breaker.close()
		return True

	def stats(self) -> dict[str, dict]:
		"""Snapshot of every registered breaker."""
		return {name: self._breakers[name].snapshot() for name in self.names()}


# Process-wide registry for callers that don't inject their own
default_registry = CircuitBreakerRegistry()


def is_circuit_open(name: str, registry: Optional[CircuitBreakerRegistry] = None) -> bool:
	"""Check whether a named breaker is open without invoking it."""
	return (registry or default_registry).is_open(name)


def is_circuit_available(name: str, registry: Optional[CircuitBreakerRegistry] = None) -> bool:
	"""Readiness predicate: a dependency is available unless its circuit is open."""
	return (registry or default_registry).is_available(name)
