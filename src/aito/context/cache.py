"""Key-value caches for context blocks."""

import time
from typing import Callable, Hashable, Optional, Protocol


class KeyValueCache(Protocol):
	def get(self, key: Hashable) -> Optional[str]:
		...

	def set(self, key: Hashable, value: str, ttl_seconds: float) -> None:
		...


class TTLCache:
	"""In-process cache whose entries expire after their TTL."""

	def __init__(self, clock: Callable[[], float] = time.monotonic):
		self._clock = clock
		self._entries: dict[Hashable, tuple[float, str]] = {}

	def get(self, key: Hashable) -> Optional[str]:
		entry = self._entries.get(key)
		if entry is None:
			return None
		expires_at, value = entry
		if self._clock() >= expires_at:
			self._entries.pop(key, None)
			return None
		return value

	def set(self, key: Hashable, value: str, ttl_seconds: float) -> None:
		self._entries[key] = (self._clock() + ttl_seconds, value)

	def clear(self) -> None:
		self._entries.clear()

	def __len__(self) -> int:
		return len(self._entries)
