"""CLI for aito: doctor, route, run, daemon, circuits, usage, and index commands."""

import argparse
import asyncio
import signal
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .config import ConfigError, load_config
from .initiative import AgentRole
from .llm import CLIProvider, TaskContext
from .llm.models import select_tier_for_context
from .logging_config import setup_logging
from .loop import CycleStatus
from .runtime import Runtime, build_runtime

CORE_DEPS = [
	"aiohttp",
	"aiosqlite",
	"lancedb",
	"platformdirs",
	"pydantic",
	"PyGithub",
	"python-dotenv",
	"PyYAML",
	"rich",
	"sentence-transformers",
]

STATE_STYLES = {"closed": "green", "half_open": "yellow", "open": "red"}
OUTCOME_STYLES = {
	CycleStatus.EXECUTED: "green",
	CycleStatus.FAILED: "red",
	CycleStatus.COOLDOWN: "dim",
	CycleStatus.NO_CANDIDATES: "yellow",
}


def _runtime() -> Runtime:
	try:
		config = load_config()
		setup_logging(log_dir=config.log_dir)
		return build_runtime(config)
	except ConfigError as e:
		print(f"Configuration error: {e}", file=sys.stderr)
		sys.exit(2)


def _roles(names: Optional[list[str]]) -> list[AgentRole]:
	if not names:
		return list(AgentRole)
	try:
		return [AgentRole(name.lower()) for name in names]
	except ValueError as e:
		print(f"Unknown role: {e}", file=sys.stderr)
		sys.exit(2)


def cmd_doctor(args: argparse.Namespace) -> None:
	"""Health check - dependencies, configuration, and backend availability."""
	print("aito doctor")
	print(f"{'=' * 40}")
	runtime = _runtime()
	config = runtime.config
	issues: list[str] = []

	print("  Core deps:")
	for dep in CORE_DEPS:
		try:
			print(f"    {dep:22s} {pkg_version(dep)}")
		except PackageNotFoundError:
			print(f"    {dep:22s} NOT INSTALLED")
			issues.append(f"{dep} package not installed")
	print()

	print("  Config:")
	print(f"    Config dir:          {config.config_dir}")
	print(f"    Data dir:            {config.data_dir}")
	print(f"    Workspace:           {config.workspace_dir}")
	print(f"    Routing strategy:    {config.routing_strategy}")
	print(f"    Focus file:          {'found' if config.focus_file.exists() else 'not found (defaults)'}")
	print(f"    Secrets file:        {'found' if config.secrets_file.exists() else 'not found'}")
	print()

	print("  LLM providers:")
	availability = asyncio.run(runtime.router.check_availability())
	for provider_type, available in availability.items():
		provider = runtime.providers[provider_type]
		binary = provider.binary if isinstance(provider, CLIProvider) else "-"
		print(f"    {provider_type.value:10s} {binary:10s} {'available' if available else 'UNAVAILABLE'}")
	if not any(availability.values()):
		issues.append("No LLM provider is available")
	print()

	print("  Context sources:")
	github_status = "available" if runtime.github.is_github_available() else "not configured"
	print(f"    github:              {github_status} ({runtime.github.full_name})")
	knowledge_status = "indexed" if runtime.knowledge.has_index() else "empty"
	print(f"    rag:                 {knowledge_status} ({config.knowledge_db_path})")
	print()

	if issues:
		print(f"  {len(issues)} issue(s) found:")
		for issue in issues:
			print(f"    - {issue}")
		sys.exit(1)
	print("  All checks passed.")


def cmd_route(args: argparse.Namespace) -> None:
	"""Show the routing decision and model tier for a task, without executing."""
	runtime = _runtime()
	context = TaskContext(
		task_type=args.task_type,
		agent_type=args.agent,
		priority=args.priority,
		requires_reasoning=args.reasoning,
		estimated_complexity=args.complexity,
	)

	async def decide():
		if args.probe:
			await runtime.router.check_availability()
		return await runtime.router.route(context)

	decision = asyncio.run(decide())
	tier = select_tier_for_context(context)
	console = Console()
	console.print(f"[bold]Primary:[/bold]  {decision.primary.value} ({tier.model_for(decision.primary) or 'default'})")
	console.print(f"[bold]Fallback:[/bold] {decision.fallback.value} ({tier.model_for(decision.fallback) or 'default'})")
	console.print(f"[bold]Tier:[/bold]     {tier.complexity.value} - {tier.description}")
	console.print(f"[bold]Reason:[/bold]   {decision.reason}")


def cmd_run(args: argparse.Namespace) -> None:
	"""Run one selection cycle for the given roles."""
	runtime = _runtime()
	loop = runtime.selection_loop()
	roles = _roles(args.roles)

	async def run():
		await loop.start()
		return await asyncio.gather(*(loop.run_cycle(role) for role in roles))

	outcomes = asyncio.run(run())

	table = Table(title="Selection Cycle")
	table.add_column("Role", style="cyan")
	table.add_column("Outcome")
	table.add_column("Initiative")
	table.add_column("Provider")
	table.add_column("Duration", justify="right")
	table.add_column("Proposals", justify="right")
	for outcome in outcomes:
		style = OUTCOME_STYLES[outcome.status]
		result = outcome.result
		table.add_row(
			outcome.role.value,
			f"[{style}]{outcome.status.value}[/{style}]",
			outcome.title or "-",
			result.provider.value if result else "-",
			f"{result.duration_ms}ms" if result else "-",
			str(len(outcome.proposals)),
		)
	Console().print(table)

	if any(outcome.status == CycleStatus.FAILED for outcome in outcomes):
		sys.exit(1)


def cmd_daemon(args: argparse.Namespace) -> None:
	"""Run the selection loop until interrupted."""
	runtime = _runtime()
	loop = runtime.selection_loop()
	roles = _roles(args.roles)

	async def run():
		event_loop = asyncio.get_running_loop()
		for sig in (signal.SIGTERM, signal.SIGINT):
			event_loop.add_signal_handler(sig, lambda: asyncio.create_task(loop.stop()))
		await loop.run_forever(roles)

	asyncio.run(run())


def cmd_circuits(args: argparse.Namespace) -> None:
	"""Show this process's circuit breaker states."""
	runtime = _runtime()
	for provider in runtime.providers.values():
		if isinstance(provider, CLIProvider):
			# Registration is lazy; touch each breaker so it is listed
			provider.breaker

	table = Table(title="Circuit Breakers")
	table.add_column("Name", style="cyan")
	table.add_column("State", justify="center")
	table.add_column("Successes", justify="right")
	table.add_column("Failures", justify="right")
	table.add_column("Rejects", justify="right")
	table.add_column("Timeouts", justify="right")
	table.add_column("Fallbacks", justify="right")
	for name, snapshot in runtime.registry.stats().items():
		state = snapshot["state"]
		style = STATE_STYLES.get(state, "white")
		stats = snapshot["stats"]
		table.add_row(
			name,
			f"[{style}]{state}[/{style}]",
			str(stats["successes"]),
			str(stats["failures"]),
			str(stats["rejects"]),
			str(stats["timeouts"]),
			str(stats["fallbacks"]),
		)
	Console().print(table)


def cmd_usage(args: argparse.Namespace) -> None:
	"""Show recorded LLM usage per provider."""
	runtime = _runtime()
	console = Console()
	stats = runtime.usage.get_stats()
	if not stats:
		console.print("[dim]No LLM usage recorded yet.[/dim]")
		return

	table = Table(title="LLM Usage")
	table.add_column("Provider", style="cyan")
	table.add_column("Requests", justify="right")
	table.add_column("Success %", justify="right")
	table.add_column("Tokens (est.)", justify="right")
	table.add_column("This Month", justify="right")
	table.add_column("Budget", justify="right")
	table.add_column("Avg Duration", justify="right")
	for s in stats:
		rate = 100 * s.successful / s.requests if s.requests else 0.0
		style = "green" if rate >= 90 else ("yellow" if rate >= 70 else "red")
		budget = runtime.usage.monthly_budgets.get(s.provider)
		table.add_row(
			s.provider,
			str(s.requests),
			f"[{style}]{rate:.1f}%[/{style}]",
			f"{s.total_tokens or 0:,}",
			f"{runtime.usage.tokens_this_month(s.provider):,}",
			f"{budget:,}" if budget else "unlimited",
			f"{s.avg_duration_ms or 0:.0f}ms",
		)
	console.print(table)


def cmd_index(args: argparse.Namespace) -> None:
	"""Index a directory of markdown notes for the rag context source."""
	runtime = _runtime()
	docs_dir = Path(args.directory).expanduser()
	try:
		stats = runtime.knowledge.index_directory(docs_dir, source=args.source)
	except ValueError as e:
		print(f"Error: {e}", file=sys.stderr)
		sys.exit(1)
	print(f"Indexed {stats.total_chunks} chunks from {stats.total_files} files in {stats.duration_seconds:.1f}s")


def main() -> None:
	"""CLI entry point."""
	load_dotenv()

	parser = argparse.ArgumentParser(
		prog="aito",
		description="Agent initiative selection with resilient multi-provider LLM execution",
	)
	try:
		parser.add_argument("--version", action="version", version=f"%(prog)s {pkg_version('aito')}")
	except PackageNotFoundError:
		pass
	subparsers = parser.add_subparsers(dest="command")

	# doctor
	doctor_parser = subparsers.add_parser("doctor", help="Health check")
	doctor_parser.set_defaults(func=cmd_doctor)

	# route
	route_parser = subparsers.add_parser("route", help="Show routing decision for a task")
	route_parser.add_argument("--task-type", type=str, default=None, help="Task type (e.g. loop, vote, alert)")
	route_parser.add_argument("--agent", type=str, default=None, help="Agent role (e.g. ceo, cmo)")
	route_parser.add_argument(
		"--priority", type=str, default=None, choices=["low", "normal", "high", "critical"], help="Task priority",
	)
	route_parser.add_argument("--complexity", type=str, default=None, help="Explicit complexity override")
	route_parser.add_argument("--reasoning", action="store_true", help="Task requires deep reasoning")
	route_parser.add_argument("--probe", action="store_true", help="Probe provider availability first")
	route_parser.set_defaults(func=cmd_route)

	# run
	run_parser = subparsers.add_parser("run", help="Run one selection cycle")
	run_parser.add_argument("roles", nargs="*", help="Roles to run (default: all)")
	run_parser.set_defaults(func=cmd_run)

	# daemon
	daemon_parser = subparsers.add_parser("daemon", help="Run the selection loop continuously")
	daemon_parser.add_argument("roles", nargs="*", help="Roles to run (default: all)")
	daemon_parser.set_defaults(func=cmd_daemon)

	# circuits
	circuits_parser = subparsers.add_parser("circuits", help="Circuit breaker states")
	circuits_parser.set_defaults(func=cmd_circuits)

	# usage
	usage_parser = subparsers.add_parser("usage", help="LLM usage per provider")
	usage_parser.set_defaults(func=cmd_usage)

	# index
	index_parser = subparsers.add_parser("index", help="Index markdown notes for the rag source")
	index_parser.add_argument("directory", type=str, help="Directory of markdown files")
	index_parser.add_argument("--source", type=str, default=None, help="Source name (default: directory name)")
	index_parser.set_defaults(func=cmd_index)

	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	args.func(args)


if __name__ == "__main__":
	main()
