"""
robots.txt AI-crawler block detection.

Deliberately a narrow single-pass line scanner, not a robots-exclusion parser:

- Each `user-agent:` line resets the "inside an AI agent block" flag, so a
  group of several user-agent lines sharing one directive set is only honored
  when the AI agent line comes last, right before its `disallow:` lines.
  Group inheritance from the robots-exclusion standard is NOT implemented.
- A blanket `user-agent: *` + `disallow: /` counts as blocking only when the
  file has no `allow:` directive anywhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


AI_AGENT_TOKENS = ("gptbot", "chatgpt")


@dataclass(frozen=True)
class RobotsVerdict:
    blocks_ai_agents: bool


def _names_ai_agent(value: str) -> bool:
    return any(token in value for token in AI_AGENT_TOKENS)


def _directive(line: str, name: str) -> Optional[str]:
    """Value of `name:` on a lowercased, stripped line, or None."""
    prefix = name + ":"
    if not line.startswith(prefix):
        return None
    return line[len(prefix):].strip()


def _ai_block_disallows(lines) -> bool:
    in_ai_block = False
    for line in lines:
        agent = _directive(line, "user-agent")
        if agent is not None:
            in_ai_block = _names_ai_agent(agent)
            continue
        if not in_ai_block:
            continue
        path = _directive(line, "disallow")
        if path:
            return True
    return False


def _blanket_block(lines) -> bool:
    if any(_directive(line, "allow") is not None for line in lines):
        return False

    in_wildcard_block = False
    for line in lines:
        agent = _directive(line, "user-agent")
        if agent is not None:
            in_wildcard_block = agent == "*"
        elif in_wildcard_block and _directive(line, "disallow") == "/":
            return True
    return False


def analyze(text: Optional[str]) -> RobotsVerdict:
    """Never raises; anything unreadable is reported as not blocking."""
    if not text or not isinstance(text, str):
        return RobotsVerdict(blocks_ai_agents=False)

    lines = [ln.strip().lower() for ln in text.splitlines()]
    blocked = _ai_block_disallows(lines) or _blanket_block(lines)
    return RobotsVerdict(blocks_ai_agents=blocked)
