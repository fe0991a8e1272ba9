"""
CLI Provider - Runs an LLM command-line tool as a subprocess.

Each execution spawns the backend's CLI in non-interactive mode, reads
stdout/stderr concurrently, and kills the process if the session timeout
elapses. Process problems never raise: missing binaries, non-zero exits and
timeouts all come back as failed LLMResults.
"""

import asyncio
import contextlib
import logging
import os
import time
from abc import abstractmethod
from pathlib import Path
from typing import Awaitable, Callable, Optional

from ..resilience import (
	LLM_PROVIDER_OPTIONS,
	CircuitBreaker,
	CircuitBreakerOptions,
	CircuitBreakerRegistry,
	default_registry,
)
from ..secrets import CredentialResolver
from .retry import RETRYABLE_PATTERNS, RetryConfig, execute_with_retry, is_retryable_error
from .types import LLMProvider, LLMResult, LLMSession, ProviderType, breaker_name

logger = logging.getLogger(__name__)

READ_CHUNK = 4096


async def _drain(stream: Optional[asyncio.StreamReader], chunks: list[bytes]) -> None:
	"""Read a pipe to EOF, keeping what arrived so far if cancelled."""
	if stream is None:
		return
	while True:
		chunk = await stream.read(READ_CHUNK)
		if not chunk:
			return
		chunks.append(chunk)


def _decode(chunks: list[bytes]) -> str:
	return b"".join(chunks).decode(errors="replace").strip()


class CLIProvider(LLMProvider):
	"""
	Base adapter for subprocess-driven LLM CLIs.

	Subclasses set name, binary and credential_names, and build the argument
	list for a session.
	"""

	name: ProviderType
	binary: str
	# Any one of these is enough; the first found is passed to the process
	credential_names: tuple[str, ...] = ()
	retryable_patterns: tuple[str, ...] = RETRYABLE_PATTERNS

	def __init__(
		self,
		workspace_dir: Optional[Path] = None,
		credentials: Optional[CredentialResolver] = None,
		retry_config: Optional[RetryConfig] = None,
		probe_timeout_s: float = 5.0,
		registry: Optional[CircuitBreakerRegistry] = None,
		breaker_options: CircuitBreakerOptions = LLM_PROVIDER_OPTIONS,
		binary: Optional[str] = None,
		sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
		clock: Callable[[], float] = time.monotonic,
	):
		self.workspace_dir = workspace_dir or Path.cwd()
		self.credentials = credentials or CredentialResolver()
		self.retry_config = retry_config or RetryConfig()
		self.probe_timeout_s = probe_timeout_s
		self.registry = registry or default_registry
		self.breaker_options = breaker_options
		if binary:
			self.binary = binary
		self._sleep = sleep
		self._clock = clock
		self._breaker: Optional[CircuitBreaker[LLMResult]] = None

	@property
	def breaker_name(self) -> str:
		return breaker_name(self.name)

	@property
	def breaker(self) -> CircuitBreaker[LLMResult]:
		"""Lazily register this provider's circuit breaker."""
		if self._breaker is None:
			self._breaker = self.registry.register(
				self.breaker_name,
				self._retry_loop,
				options=self.breaker_options,
				fallback=self._circuit_open_result,
				# Only transient failures say anything about provider health
				is_failure=lambda result: not result.success and result.retryable,
			)
		return self._breaker

	@abstractmethod
	def build_args(self, session: LLMSession) -> list[str]:
		"""Arguments passed after the binary name."""

	def build_env(self, credential: Optional[tuple[str, str]]) -> dict[str, str]:
		env = os.environ.copy()
		env["CI"] = "true"
		if credential:
			key, value = credential
			env[key] = value
		return env

	def resolve_credential(self) -> Optional[tuple[str, str]]:
		"""First configured credential as (name, value)."""
		for key in self.credential_names:
			value = self.credentials.get(key)
			if value:
				return key, value
		return None

	def resolve_model(self, session: LLMSession) -> Optional[str]:
		"""Model passed to the CLI, None when the backend picks its own."""
		return session.model

	@staticmethod
	def with_system_prompt(session: LLMSession) -> str:
		"""Prepend the system prompt for CLIs without a dedicated flag."""
		if session.system_prompt:
			return f"System Instructions: {session.system_prompt}\n\n{session.prompt}"
		return session.prompt

	async def is_available(self) -> bool:
		"""Credential present and `<binary> --version` exits cleanly within the probe timeout."""
		if self.credential_names and self.resolve_credential() is None:
			logger.debug(f"{self.name.value} unavailable: none of {', '.join(self.credential_names)} set")
			return False

		try:
			process = await asyncio.create_subprocess_exec(
				self.binary,
				"--version",
				stdout=asyncio.subprocess.DEVNULL,
				stderr=asyncio.subprocess.DEVNULL,
			)
		except OSError as e:
			logger.debug(f"{self.name.value} unavailable: {e}")
			return False

		try:
			returncode = await asyncio.wait_for(process.wait(), timeout=self.probe_timeout_s)
		except asyncio.TimeoutError:
			logger.warning(f"{self.binary} --version did not respond within {self.probe_timeout_s}s")
			await self._kill(process)
			return False

		return returncode == 0

	async def execute(self, session: LLMSession) -> LLMResult:
		"""Single attempt bounded by the session timeout."""
		model = self.resolve_model(session)
		credential = self.resolve_credential()
		if self.credential_names and credential is None:
			return self._result(
				False,
				error=f"{self.name.value} not configured: set one of {', '.join(self.credential_names)}",
				model=model,
			)

		args = self.build_args(session)
		started = self._clock()
		logger.info(f"Executing {self.binary} ({len(session.prompt)} chars, model={model or 'default'})")

		try:
			process = await asyncio.create_subprocess_exec(
				self.binary,
				*args,
				stdin=asyncio.subprocess.DEVNULL,
				stdout=asyncio.subprocess.PIPE,
				stderr=asyncio.subprocess.PIPE,
				cwd=str(self.workspace_dir),
				env=self.build_env(credential),
			)
		except FileNotFoundError:
			return self._result(False, error=f"{self.binary} CLI not found. Is it installed?", model=model)
		except OSError as e:
			return self._result(False, error=f"Failed to start {self.binary}: {e}", model=model)

		stdout_chunks: list[bytes] = []
		stderr_chunks: list[bytes] = []
		timed_out = False
		try:
			await asyncio.wait_for(
				asyncio.gather(
					_drain(process.stdout, stdout_chunks),
					_drain(process.stderr, stderr_chunks),
					process.wait(),
				),
				timeout=session.timeout_ms / 1000,
			)
		except asyncio.TimeoutError:
			timed_out = True
		finally:
			# Also reached on cancellation: never leave the process running
			if process.returncode is None:
				await self._kill(process)

		duration_ms = int((self._clock() - started) * 1000)
		stdout = _decode(stdout_chunks)
		stderr = _decode(stderr_chunks)

		if timed_out:
			logger.warning(f"{self.binary} timed out after {session.timeout_ms}ms ({len(stdout)} chars of partial output)")
			return self._result(
				False,
				output=stdout,
				error=f"Execution timed out after {session.timeout_ms}ms",
				retryable=True,
				duration_ms=duration_ms,
				model=model,
			)

		if process.returncode != 0:
			error = stderr or f"Exit code {process.returncode}"
			retryable = is_retryable_error(error, stdout, self.retryable_patterns)
			logger.error(f"{self.binary} failed (exit {process.returncode}, retryable={retryable}): {error[:200]}")
			return self._result(
				False,
				output=stdout,
				error=error,
				retryable=retryable,
				duration_ms=duration_ms,
				model=model,
			)

		logger.info(f"{self.binary} completed in {duration_ms}ms ({len(stdout)} chars)")
		return self._result(True, output=stdout, duration_ms=duration_ms, model=model)

	async def execute_with_retry(self, session: LLMSession) -> LLMResult:
		"""Retry loop run through this provider's circuit breaker."""
		return await self.breaker.call(session)

	async def _retry_loop(self, session: LLMSession) -> LLMResult:
		return await execute_with_retry(
			self.execute,
			session,
			self.retry_config,
			sleep=self._sleep,
			clock=self._clock,
		)

	def _circuit_open_result(self, session: LLMSession) -> LLMResult:
		return self._result(
			False,
			error=f"Circuit breaker '{self.breaker_name}' is open",
			retryable=True,
			model=self.resolve_model(session),
		)

	def _result(
		self,
		success: bool,
		output: str = "",
		error: Optional[str] = None,
		retryable: bool = False,
		duration_ms: int = 0,
		model: Optional[str] = None,
	) -> LLMResult:
		return LLMResult(
			success=success,
			output=output,
			provider=self.name,
			duration_ms=duration_ms,
			error=error,
			retryable=retryable,
			model=model,
		)

	@staticmethod
	async def _kill(process: asyncio.subprocess.Process) -> None:
		with contextlib.suppress(ProcessLookupError):
			process.kill()
		await process.wait()
