"""Tests for the subprocess-driven CLI providers."""

import asyncio
import os
import sys
from unittest.mock import patch

import pytest

from aito.llm import ClaudeProvider, CLIProvider, CodexProvider, GeminiProvider, LLMSession, ProviderType, RetryConfig
from aito.resilience import CircuitBreakerRegistry
from aito.secrets import CredentialResolver

from .helpers import FakeSleep


class PythonCLI(CLIProvider):
	"""Runs a Python snippet in place of a real LLM CLI."""

	name = ProviderType.CLAUDE
	binary = sys.executable

	def __init__(self, code: str = "print('ok')", **kwargs):
		kwargs.setdefault("registry", CircuitBreakerRegistry())
		kwargs.setdefault("credentials", CredentialResolver())
		super().__init__(**kwargs)
		self.code = code

	def build_args(self, session: LLMSession) -> list[str]:
		return ["-c", self.code]


class KeyedCLI(PythonCLI):
	credential_names = ("AITO_TEST_PROVIDER_KEY",)


class TestExecute:
	"""Single attempts."""

	@pytest.mark.asyncio
	async def test_success_captures_stdout(self, tmp_path):
		"""Exit code 0 is a success carrying trimmed stdout."""
		provider = PythonCLI("print('  hello world  ')", workspace_dir=tmp_path)
		result = await provider.execute(LLMSession(prompt="hi"))
		assert result.success
		assert result.output == "hello world"
		assert result.provider == ProviderType.CLAUDE
		assert result.error is None

	@pytest.mark.asyncio
	async def test_runs_in_workspace(self, tmp_path):
		"""The process runs with the workspace as its working directory."""
		provider = PythonCLI("import os; print(os.getcwd())", workspace_dir=tmp_path)
		result = await provider.execute(LLMSession(prompt="hi"))
		assert os.path.samefile(result.output, tmp_path)

	@pytest.mark.asyncio
	async def test_nonzero_exit_uses_stderr(self, tmp_path):
		"""A failing process reports stderr as the error."""
		code = "import sys; sys.stderr.write('rate_limit_error'); sys.exit(1)"
		result = await PythonCLI(code, workspace_dir=tmp_path).execute(LLMSession(prompt="hi"))
		assert not result.success
		assert result.error == "rate_limit_error"
		assert result.retryable

	@pytest.mark.asyncio
	async def test_nonzero_exit_without_stderr(self, tmp_path):
		"""Without stderr the error names the exit code and is not retryable."""
		result = await PythonCLI("import sys; sys.exit(3)", workspace_dir=tmp_path).execute(LLMSession(prompt="hi"))
		assert not result.success
		assert result.error == "Exit code 3"
		assert not result.retryable

	@pytest.mark.asyncio
	async def test_timeout_kills_and_keeps_partial_output(self, tmp_path):
		"""Exceeding the session timeout is a retryable failure with partial stdout."""
		code = "import time; print('partial', flush=True); time.sleep(30)"
		provider = PythonCLI(code, workspace_dir=tmp_path)

		result = await provider.execute(LLMSession(prompt="hi", timeout_ms=1500))

		assert not result.success
		assert result.retryable
		assert result.output == "partial"
		assert result.error == "Execution timed out after 1500ms"

	@pytest.mark.asyncio
	async def test_missing_binary(self, tmp_path):
		"""A binary that doesn't exist is a failed result, not an exception."""
		provider = PythonCLI(workspace_dir=tmp_path, binary=str(tmp_path / "no-such-cli"))
		result = await provider.execute(LLMSession(prompt="hi"))
		assert not result.success
		assert "CLI not found" in result.error
		assert not result.retryable

	@pytest.mark.asyncio
	async def test_missing_credential(self, tmp_path):
		"""Without any credential the provider fails fast."""
		with patch.dict(os.environ, {}, clear=False):
			os.environ.pop("AITO_TEST_PROVIDER_KEY", None)
			result = await KeyedCLI(workspace_dir=tmp_path).execute(LLMSession(prompt="hi"))
		assert not result.success
		assert "AITO_TEST_PROVIDER_KEY" in result.error

	@pytest.mark.asyncio
	async def test_credential_and_ci_passed_to_process(self, tmp_path):
		"""The resolved credential and CI=true reach the child environment."""
		code = "import os; print(os.environ['AITO_TEST_PROVIDER_KEY'], os.environ['CI'])"
		with patch.dict(os.environ, {"AITO_TEST_PROVIDER_KEY": "sekrit"}):
			result = await KeyedCLI(code, workspace_dir=tmp_path).execute(LLMSession(prompt="hi"))
		assert result.output == "sekrit true"

	@pytest.mark.asyncio
	async def test_cancellation_propagates(self, tmp_path):
		"""Cancelling an execution raises CancelledError promptly."""
		provider = PythonCLI("import time; time.sleep(30)", workspace_dir=tmp_path)
		task = asyncio.create_task(provider.execute(LLMSession(prompt="hi")))
		await asyncio.sleep(0.3)
		task.cancel()
		with pytest.raises(asyncio.CancelledError):
			await asyncio.wait_for(task, timeout=10)


class TestAvailability:
	"""Availability probe."""

	@pytest.mark.asyncio
	async def test_available_when_version_succeeds(self, tmp_path):
		"""`<binary> --version` exiting 0 means available."""
		assert await PythonCLI(workspace_dir=tmp_path).is_available()

	@pytest.mark.asyncio
	async def test_unavailable_without_binary(self, tmp_path):
		"""A missing binary is unavailable."""
		provider = PythonCLI(workspace_dir=tmp_path, binary=str(tmp_path / "missing"))
		assert not await provider.is_available()

	@pytest.mark.asyncio
	async def test_unavailable_without_credential(self, tmp_path):
		"""A missing credential is unavailable without spawning anything."""
		with patch.dict(os.environ, {}, clear=False):
			os.environ.pop("AITO_TEST_PROVIDER_KEY", None)
			assert not await KeyedCLI(workspace_dir=tmp_path).is_available()


class TestRetryThroughBreaker:
	"""execute_with_retry wiring."""

	@pytest.mark.asyncio
	async def test_retries_transient_failures(self, tmp_path):
		"""Transient failures are retried up to the configured budget."""
		code = "import sys; sys.stderr.write('503 unavailable'); sys.exit(1)"
		sleep = FakeSleep()
		provider = PythonCLI(
			code, workspace_dir=tmp_path, retry_config=RetryConfig(max_retries=2, base_delay_ms=10), sleep=sleep,
		)

		result = await provider.execute_with_retry(LLMSession(prompt="hi"))

		assert not result.success
		assert result.retries_used == 2
		assert len(sleep.calls) == 2

	@pytest.mark.asyncio
	async def test_open_circuit_short_circuits(self, tmp_path):
		"""Once the provider's breaker is open, no process is spawned."""
		registry = CircuitBreakerRegistry()
		provider = PythonCLI(
			"import sys; sys.stderr.write('overloaded'); sys.exit(1)",
			workspace_dir=tmp_path,
			registry=registry,
			retry_config=RetryConfig(max_retries=0),
		)
		for _ in range(3):
			await provider.execute_with_retry(LLMSession(prompt="hi"))
		assert registry.is_open("llm-claude")

		provider.binary = str(tmp_path / "would-fail-if-spawned")
		result = await provider.execute_with_retry(LLMSession(prompt="hi"))
		assert not result.success
		assert "Circuit breaker 'llm-claude' is open" in result.error

	@pytest.mark.asyncio
	async def test_permanent_failures_do_not_trip(self, tmp_path):
		"""Non-retryable failures leave the breaker closed."""
		registry = CircuitBreakerRegistry()
		provider = PythonCLI(
			"import sys; sys.stderr.write('invalid prompt'); sys.exit(2)",
			workspace_dir=tmp_path,
			registry=registry,
		)
		for _ in range(5):
			await provider.execute_with_retry(LLMSession(prompt="hi"))
		assert not registry.is_open("llm-claude")


class TestArguments:
	"""Per-backend argument lists."""

	def test_claude_args(self):
		"""Claude gets --print, tools, model, system prompt, then the prompt."""
		session = LLMSession(prompt="do it", system_prompt="be brief", model="sonnet")
		assert ClaudeProvider(registry=CircuitBreakerRegistry()).build_args(session) == [
			"--print", "--tools", "default", "--dangerously-skip-permissions",
			"--model", "sonnet", "--system-prompt", "be brief", "do it",
		]

	def test_claude_without_tools(self):
		"""Disabling tools drops the permission flags."""
		session = LLMSession(prompt="do it", enable_tools=False)
		assert ClaudeProvider(registry=CircuitBreakerRegistry()).build_args(session) == ["--print", "do it"]

	def test_gemini_args(self):
		"""Gemini auto-approves tools, uses its default model, and inlines the system prompt."""
		session = LLMSession(prompt="do it", system_prompt="be brief", mcp_servers=("fs",))
		provider = GeminiProvider(registry=CircuitBreakerRegistry(), default_model="gemini-2.5-pro")
		assert provider.build_args(session) == [
			"-y", "-m", "gemini-2.5-pro", "--allowed-mcp-server-names", "fs",
			"System Instructions: be brief\n\ndo it",
		]

	def test_gemini_quota_errors_retryable(self):
		"""Gemini treats resource exhaustion as transient."""
		assert "resource_exhausted" in GeminiProvider.retryable_patterns

	def test_codex_args(self):
		"""Codex runs `exec` with the model and the prompt after --."""
		session = LLMSession(prompt="do it", model="gpt-5")
		assert CodexProvider(registry=CircuitBreakerRegistry()).build_args(session) == [
			"exec", "--model", "gpt-5", "--", "do it",
		]
