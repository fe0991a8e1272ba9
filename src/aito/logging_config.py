"""Centralized logging configuration for aito."""

import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "aito"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("github", "urllib3", "httpx", "sentence_transformers", "aiosqlite")


class SensitiveDataFilter(logging.Filter):
	"""Redact credential-looking values from log messages."""

	SENSITIVE_PATTERNS = (
		(re.compile(r"\b(sk-ant-[A-Za-z0-9_\-]{8,}|sk-[A-Za-z0-9_\-]{16,})"), "[REDACTED_API_KEY]"),
		(re.compile(r"\b(gh[pousr]_[A-Za-z0-9]{16,}|github_pat_[A-Za-z0-9_]{16,})"), "[REDACTED_TOKEN]"),
		(re.compile(r"\bAIza[0-9A-Za-z_\-]{20,}"), "[REDACTED_API_KEY]"),
		(re.compile(r"(?i)(authorization:\s*bearer\s+)\S+"), r"\1[REDACTED_AUTH]"),
	)

	def filter(self, record: logging.LogRecord) -> bool:
		if isinstance(record.msg, str):
			msg = record.msg
			for pattern, replacement in self.SENSITIVE_PATTERNS:
				msg = pattern.sub(replacement, msg)
			record.msg = msg
		return True


def setup_logging(
	level: Optional[str] = None,
	log_dir: Optional[Path] = None,
	name: str = ROOT_LOGGER,
) -> logging.Logger:
	"""
	Set up logging with console and file handlers.

	Args:
		level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL or INFO.
		log_dir: Directory for the rotating log file. Console only when omitted.
		name: Logger name to configure

	Returns:
		Configured logger
	"""
	level = level or os.getenv("LOG_LEVEL", "INFO")
	log_level = getattr(logging, level.upper(), logging.INFO)

	logger = logging.getLogger(name)
	logger.setLevel(log_level)

	# Avoid duplicate handlers
	if logger.handlers:
		return logger

	for noisy in NOISY_LOGGERS:
		logging.getLogger(noisy).setLevel(logging.WARNING)

	sensitive_filter = SensitiveDataFilter()

	console_handler = logging.StreamHandler(sys.stdout)
	console_handler.setLevel(log_level)
	console_handler.setFormatter(logging.Formatter(
		"%(asctime)s [%(levelname)s] %(name)s - %(message)s",
		datefmt="%H:%M:%S",
	))
	console_handler.addFilter(sensitive_filter)
	logger.addHandler(console_handler)

	if log_dir is not None:
		log_dir.mkdir(parents=True, exist_ok=True)
		file_handler = RotatingFileHandler(
			log_dir / f"{name}.log",
			maxBytes=10 * 1024 * 1024,  # 10 MB
			backupCount=5,
		)
		file_handler.setLevel(logging.DEBUG)  # File gets all logs
		file_handler.setFormatter(logging.Formatter(
			"%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
			datefmt="%Y-%m-%d %H:%M:%S",
		))
		file_handler.addFilter(sensitive_filter)
		logger.addHandler(file_handler)

	return logger
