"""
Initiative proposals - Derived initiatives parsed from LLM output.

A successful loop execution ends with a JSON block of actions; every
`propose_initiative` action becomes a derived initiative for the role.
Out-of-range numbers are clamped and unknown priorities fall back to medium,
so a sloppy proposal is kept rather than dropped.
"""

import json
import logging
import re
from typing import Any, Iterator

from .models import AgentRole, FocusProfile, Initiative, InitiativePriority, InitiativeSource

logger = logging.getLogger(__name__)

PROPOSE_ACTION = "propose_initiative"

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_PRIORITIES = {p.value for p in InitiativePriority}


def _clamp(value: Any, low: int = 1, high: int = 10, default: int = 5) -> int:
	try:
		number = int(value)
	except (TypeError, ValueError):
		number = default
	# 0 counts as missing
	return min(high, max(low, number or default))


def _json_objects(output: str) -> Iterator[dict]:
	"""Fenced JSON blocks first, then the outermost braces of the raw text."""
	candidates = _FENCED_JSON_RE.findall(output)
	start, end = output.find("{"), output.rfind("}")
	if start != -1 and end > start:
		candidates.append(output[start:end + 1])
	for candidate in candidates:
		try:
			parsed = json.loads(candidate)
		except json.JSONDecodeError:
			continue
		if isinstance(parsed, dict):
			yield parsed


def initiative_from_proposal(data: dict, role: AgentRole) -> Initiative:
	"""Build a derived initiative from one proposal payload."""
	priority = str(data.get("priority", "")).lower()
	if priority not in _PRIORITIES:
		priority = InitiativePriority.MEDIUM.value
	tags = data.get("tags")
	return Initiative(
		title=str(data["title"]).strip(),
		description=str(data.get("description") or ""),
		tags=frozenset(str(t) for t in tags) if isinstance(tags, list) else frozenset(),
		suggested_assignee=role,
		source=InitiativeSource.DERIVED,
		priority=InitiativePriority(priority),
		revenue_impact=_clamp(data.get("revenueImpact")),
		effort=_clamp(data.get("effort")),
	)


def parse_proposals(output: str, role: AgentRole) -> list[Initiative]:
	"""Every proposed initiative in the output, first occurrence of each title only."""
	proposals: list[Initiative] = []
	seen: set[str] = set()
	for obj in _json_objects(output or ""):
		actions = obj.get("actions")
		if not isinstance(actions, list):
			continue
		for action in actions:
			if not isinstance(action, dict) or action.get("type") != PROPOSE_ACTION:
				continue
			data = action.get("data")
			if not isinstance(data, dict) or not str(data.get("title") or "").strip():
				logger.warning(f"{role.value}: ignoring proposal without a title")
				continue
			initiative = initiative_from_proposal(data, role)
			if initiative.title.lower() not in seen:
				seen.add(initiative.title.lower())
				proposals.append(initiative)
	return proposals


def issue_labels(initiative: Initiative) -> list[str]:
	return [
		f"priority:{initiative.priority.value}",
		f"agent:{initiative.suggested_assignee.value}",
		*sorted(tag.lower() for tag in initiative.tags),
	]


def issue_body(initiative: Initiative, profile: FocusProfile) -> str:
	"""Markdown body for the GitHub issue tracking a derived initiative."""
	angles = ", ".join(profile.revenue_angles) or "TBD"
	return "\n".join([
		"## Description",
		"",
		initiative.description,
		"",
		"## Priority",
		"",
		f"**{initiative.priority.value.upper()}** (Revenue Impact: {initiative.revenue_impact}/10, "
		f"Effort: {initiative.effort}/10)",
		"",
		"## Revenue Angle",
		"",
		f"This initiative contributes to revenue by: {angles}",
		"",
		"## Suggested Assignee",
		"",
		f"@{initiative.suggested_assignee.value}-agent",
		"",
		"---",
		"*Created by the aito initiative loop*",
	])
