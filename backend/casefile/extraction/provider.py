"""Structured extraction provider backed by the Strands extraction agent."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Protocol

from pydantic import ValidationError

from casefile.errors import ExtractionParseError
from casefile.merge import merge_extraction
from casefile.models.profile import Profile

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 50_000

_FENCE = re.compile(r"```(?:json)?\s*\n?")


class ExtractionProvider(Protocol):
    async def extract(self, text: str) -> dict[str, Any]: ...


def build_prompt(text: str) -> str:
    return (
        "Extract structured profile data from this investigation document:\n\n"
        + text[:MAX_INPUT_CHARS]
    )


def parse_extraction(raw: str) -> dict[str, Any]:
    """Parse the model's answer into an extraction dict.

    Markdown code fences are stripped first.  Anything that is not a JSON
    object, or whose sections do not fit the profile shape, raises
    :class:`ExtractionParseError`.
    """
    cleaned = _FENCE.sub("", raw).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ExtractionParseError(f"Failed to parse extraction output: {exc}") from exc
    if not isinstance(data, dict):
        raise ExtractionParseError(
            f"Extraction output must be a JSON object, got {type(data).__name__}"
        )

    # Dry-run merge so shape problems surface here rather than on apply.
    try:
        merge_extraction(Profile(), data)
    except ValidationError as exc:
        raise ExtractionParseError(
            f"Extraction output does not match the profile schema: {exc.error_count()} error(s)"
        ) from exc
    return data


class AgentExtractionProvider:
    """Runs the extraction agent in a worker thread and parses its answer."""

    def __init__(self, agent_factory=None) -> None:
        if agent_factory is None:
            from casefile.agents.extraction_agent import create_agent

            agent_factory = create_agent
        self._agent_factory = agent_factory

    async def extract(self, text: str) -> dict[str, Any]:
        agent = self._agent_factory()
        prompt = build_prompt(text)
        logger.info("Running extraction agent on %d characters", min(len(text), MAX_INPUT_CHARS))
        result = await asyncio.to_thread(agent, prompt)
        return parse_extraction(str(result))
