"""
Knowledge Index - Markdown notes in LanceDB for semantic search.

Features:
- Split notes by heading, then into overlapping word chunks
- Embed chunks with sentence-transformers
- Store per-source in LanceDB, replacing a source on re-index
"""

import hashlib
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import lancedb
from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "all-MiniLM-L6-v2"


@dataclass(frozen=True)
class KnowledgeHit:
	"""One search result."""
	source: str
	text: str
	title: str = ""
	section: str = ""
	distance: float = 0.0


@dataclass
class IndexStats:
	total_files: int
	total_chunks: int
	duration_seconds: float


class KnowledgeIndex:
	"""
	Semantic search over a directory of markdown notes.

	Usage:
		index = KnowledgeIndex(config.knowledge_db_path)
		index.index_directory(Path("notes/market"), source="market")
		hits = index.search("treasury management", limit=3)
	"""

	CHUNK_WORDS = 380
	OVERLAP_WORDS = 40
	TABLE_NAME = "knowledge"

	def __init__(self, db_path: Path, model_name: str = DEFAULT_MODEL):
		self.db_path = Path(db_path)
		self.model_name = model_name
		self._model: Optional[SentenceTransformer] = None
		self._db: Optional[lancedb.DBConnection] = None

	@property
	def model(self) -> SentenceTransformer:
		"""Lazy load the embedding model."""
		if self._model is None:
			logger.info(f"Loading embedding model: {self.model_name}")
			self._model = SentenceTransformer(self.model_name)
		return self._model

	@property
	def db(self) -> lancedb.DBConnection:
		"""Lazy connect to database."""
		if self._db is None:
			self.db_path.mkdir(parents=True, exist_ok=True)
			self._db = lancedb.connect(str(self.db_path))
		return self._db

	def has_index(self) -> bool:
		return self.TABLE_NAME in self.db.table_names()

	def index_directory(self, docs_dir: Path, source: Optional[str] = None) -> IndexStats:
		"""Index every markdown file under docs_dir, replacing earlier chunks of the same source."""
		start = datetime.now()
		if not docs_dir.is_dir():
			raise ValueError(f"Directory not found: {docs_dir}")

		source = source or docs_dir.name
		files = sorted(docs_dir.rglob("*.md"))
		chunks = [chunk for path in files for chunk in self._process_file(path, source)]
		logger.info(f"Found {len(files)} markdown files in {docs_dir} ({len(chunks)} chunks)")

		if chunks:
			embeddings = self.model.encode([c["content"] for c in chunks])
			for chunk, embedding in zip(chunks, embeddings):
				chunk["vector"] = embedding.tolist()
			self._replace_source(source, chunks)

		stats = IndexStats(
			total_files=len(files),
			total_chunks=len(chunks),
			duration_seconds=(datetime.now() - start).total_seconds(),
		)
		logger.info(f"Indexed {stats.total_chunks} chunks for '{source}' in {stats.duration_seconds:.1f}s")
		return stats

	def search(self, query: str, limit: int = 5) -> list[KnowledgeHit]:
		"""Nearest chunks to the query, closest first. Empty when nothing is indexed."""
		if not self.has_index():
			return []

		vector = self.model.encode(query).tolist()
		rows = self.db.open_table(self.TABLE_NAME).search(vector).limit(limit).to_list()
		return [
			KnowledgeHit(
				source=row.get("source", ""),
				text=row.get("content", ""),
				title=row.get("title", ""),
				section=row.get("section", ""),
				distance=float(row.get("_distance", 0.0)),
			)
			for row in rows
		]

	def _process_file(self, path: Path, source: str) -> list[dict]:
		body = path.read_text(encoding="utf-8")
		title = path.stem
		chunks = []
		for section, text in split_sections(body):
			for i, chunk_text in enumerate(chunk_words(text, self.CHUNK_WORDS, self.OVERLAP_WORDS)):
				key = f"{path}:{section}:{i}"
				chunks.append({
					"id": hashlib.md5(key.encode()).hexdigest()[:16],
					"source": source,
					"source_file": str(path),
					"title": title,
					"section": section,
					"content": chunk_text,
					"indexed_at": datetime.now().isoformat(),
				})
		return chunks

	def _replace_source(self, source: str, chunks: list[dict]) -> None:
		if self.has_index():
			table = self.db.open_table(self.TABLE_NAME)
			table.delete(f"source = '{source.replace(chr(39), chr(39) * 2)}'")
			table.add(chunks)
		else:
			self.db.create_table(self.TABLE_NAME, chunks)
		logger.debug(f"Stored {len(chunks)} chunks in {self.TABLE_NAME}")


def split_sections(content: str) -> list[tuple[str, str]]:
	"""Split markdown into (heading, text) pairs on #, ## and ### headings."""
	sections = []
	current = "Introduction"
	lines: list[str] = []

	for line in content.split("\n"):
		heading = re.match(r"^(#{1,3})\s+(.+)$", line)
		if heading:
			text = "\n".join(lines).strip()
			if text:
				sections.append((current, text))
			current = heading.group(2).strip()
			lines = []
		else:
			lines.append(line)

	text = "\n".join(lines).strip()
	if text:
		sections.append((current, text))
	return sections


def chunk_words(text: str, size: int, overlap: int) -> list[str]:
	"""Overlapping windows of at most size words."""
	words = text.split()
	chunks = []
	i = 0
	while i < len(words):
		end = min(i + size, len(words))
		chunks.append(" ".join(words[i:end]))
		i = max(end - overlap, i + 1) if end < len(words) else end
	return chunks
