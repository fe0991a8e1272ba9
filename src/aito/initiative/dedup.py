"""Initiative deduplication by title hash and word similarity."""

import hashlib
import logging
import re
from typing import Iterable

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[a-z0-9]+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")

EXACT_DUPLICATE_PENALTY = 100.0
SIMILAR_PENALTY_SCALE = 50.0
SIMILARITY_THRESHOLD = 0.8


def title_hash(title: str) -> str:
	"""SHA-256 of the trimmed, lowercased title; 16 hex chars (64 bits)."""
	return hashlib.sha256(title.lower().strip().encode("utf-8")).hexdigest()[:16]


def normalize_title(title: str) -> str:
	"""Lowercase alphanumerics only, for exact-match comparison."""
	return _NON_ALNUM_RE.sub("", title.lower())


def jaccard_similarity(a: str, b: str) -> float:
	"""Word-set Jaccard similarity in [0, 1]."""
	words_a = set(_WORD_RE.findall(a.lower()))
	words_b = set(_WORD_RE.findall(b.lower()))
	if not words_a and not words_b:
		return 1.0
	if not words_a or not words_b:
		return 0.0
	return len(words_a & words_b) / len(words_a | words_b)


def duplicate_penalty(title: str, existing_titles: Iterable[str]) -> float:
	"""
	Penalty against already-known titles.

	Exact match after normalization is 100; word similarity above 0.8 is
	50 x similarity. The first match found wins.
	"""
	normalized = normalize_title(title)
	for existing in existing_titles:
		if normalized == normalize_title(existing):
			return EXACT_DUPLICATE_PENALTY
		similarity = jaccard_similarity(title, existing)
		if similarity > SIMILARITY_THRESHOLD:
			return SIMILAR_PENALTY_SCALE * similarity
	return 0.0


class DeduplicationTracker:
	"""Remembers hashes of titles already executed in this process."""

	def __init__(self, titles: Iterable[str] = ()):
		self._hashes: set[str] = set()
		self._titles: list[str] = []
		for title in titles:
			self.mark_created(title)

	def was_created(self, title: str) -> bool:
		return title_hash(title) in self._hashes

	def mark_created(self, title: str) -> None:
		digest = title_hash(title)
		if digest not in self._hashes:
			self._hashes.add(digest)
			self._titles.append(title)
			logger.debug(f"Initiative marked as created: {title} ({digest})")

	@property
	def titles(self) -> list[str]:
		return list(self._titles)

	def __len__(self) -> int:
		return len(self._hashes)
