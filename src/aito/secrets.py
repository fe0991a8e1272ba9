"""Provider credential lookup: environment first, then the secrets file."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def _load_secrets(secrets_file: Path) -> dict:
	"""Load secrets from file."""
	if not secrets_file.exists():
		return {"keys": {}}
	try:
		with open(secrets_file, "r") as f:
			return json.load(f)
	except (json.JSONDecodeError, IOError) as e:
		logger.warning(f"Could not read secrets file {secrets_file}: {e}")
		return {"keys": {}}


class CredentialResolver:
	"""
	Resolves named credentials.

	Secrets file format: {"keys": {"NAME": "value"}}
	or {"keys": {"NAME": {"key": "value", "active": true}}}.
	"""

	def __init__(self, secrets_file: Optional[Path] = None):
		self.secrets_file = secrets_file

	def get(self, name: str) -> Optional[str]:
		"""Return the credential value, or None if absent or inactive."""
		value = os.environ.get(name)
		if value:
			return value

		if self.secrets_file is None:
			return None

		secret = _load_secrets(self.secrets_file).get("keys", {}).get(name)
		if isinstance(secret, str):
			return secret or None
		if isinstance(secret, dict) and secret.get("active", True):
			return secret.get("key") or None
		return None

