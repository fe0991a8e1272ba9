"""OpenAI Codex CLI adapter (`codex exec`)."""

from typing import Optional

from .cli_provider import CLIProvider
from .types import LLMSession, ProviderType


class CodexProvider(CLIProvider):
	name = ProviderType.OPENAI
	binary = "codex"
	credential_names = ("OPENAI_API_KEY",)

	def __init__(self, *args, default_model: str = "gpt-5-codex", **kwargs):
		super().__init__(*args, **kwargs)
		self.default_model = default_model

	def resolve_model(self, session: LLMSession) -> Optional[str]:
		return session.model or self.default_model

	def build_args(self, session: LLMSession) -> list[str]:
		return ["exec", "--model", self.resolve_model(session), "--", self.with_system_prompt(session)]
