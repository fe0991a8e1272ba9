"""Gemini CLI adapter."""

from typing import Optional

from .cli_provider import CLIProvider
from .retry import RETRYABLE_PATTERNS
from .types import LLMSession, ProviderType


class GeminiProvider(CLIProvider):
	"""
	Runs `gemini -y -m <model> <prompt>`.

	The CLI has no system prompt flag, so it is prepended to the prompt.
	"""

	name = ProviderType.GEMINI
	binary = "gemini"
	credential_names = ("GEMINI_API_KEY", "GOOGLE_API_KEY")
	retryable_patterns = RETRYABLE_PATTERNS + (
		"overloaded_error",
		"529",
		"resource_exhausted",
		"quota_exceeded",
	)

	def __init__(self, *args, default_model: str = "gemini-2.5-flash", **kwargs):
		super().__init__(*args, **kwargs)
		self.default_model = default_model

	def resolve_model(self, session: LLMSession) -> Optional[str]:
		return session.model or self.default_model

	def build_args(self, session: LLMSession) -> list[str]:
		args = ["-m", self.resolve_model(session)]
		if session.enable_tools:
			# Auto-approve tool use
			args.insert(0, "-y")
		if session.mcp_servers:
			args.extend(["--allowed-mcp-server-names", *session.mcp_servers])
		# Prompt is positional and must come last
		args.append(self.with_system_prompt(session))
		return args
