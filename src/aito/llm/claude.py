"""Claude Code CLI adapter (`claude --print`)."""

from .cli_provider import CLIProvider
from .types import LLMSession, ProviderType


class ClaudeProvider(CLIProvider):
	"""
	Runs `claude --print` with tools enabled and permissions skipped.

	Model selection is left to the CLI unless the session names one.
	"""

	name = ProviderType.CLAUDE
	binary = "claude"
	credential_names = ("ANTHROPIC_API_KEY", "CLAUDE_CODE_OAUTH_TOKEN")

	def build_args(self, session: LLMSession) -> list[str]:
		args = ["--print"]
		if session.enable_tools:
			args.extend(["--tools", "default", "--dangerously-skip-permissions"])
		if session.model:
			args.extend(["--model", session.model])
		if session.system_prompt:
			args.extend(["--system-prompt", session.system_prompt])
		args.append(session.prompt)
		return args
