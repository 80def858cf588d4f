"""Extraction oracles: LLM calls that return themes, definitions and shared concepts."""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import anthropic

from ..errors import ExtractionFormatError, OracleUnavailableError
from .prompts import build_analysis_prompt

logger = logging.getLogger(__name__)


class ExtractionOracle(ABC):
    """Common interface for extraction backends."""

    @abstractmethod
    def extract(self, documents: list[dict[str, Any]], options: dict[str, Any]) -> dict[str, Any]:
        """Analyze ``{title, content}`` documents and return the raw JSON payload.

        Raises OracleUnavailableError on network/API failure and
        ExtractionFormatError when no JSON object can be recovered.
        """


def parse_json_response(text: str) -> dict[str, Any]:
    """Extract a JSON object from an LLM response, handling markdown code blocks."""
    text = (text or "").strip()
    candidates = [text]

    match = re.search(r"```(?:json)?\s*\n?(.*?)\n?\s*```", text, re.DOTALL)
    if match:
        candidates.append(match.group(1).strip())

    match = re.search(r"\{.*\}", text, re.DOTALL)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise ExtractionFormatError(f"No JSON object found in oracle response: {text[:200]!r}")


class ClaudeExtractionOracle(ExtractionOracle):
    """Extracts document structure with the Claude API."""

    def __init__(self, config: dict[str, Any]):
        api_key = config.get("claude_api_key")
        if not api_key:
            raise ValueError("Claude API key required for extraction. Set ANTHROPIC_API_KEY or claude_api_key in config.")

        self.client = anthropic.Anthropic(api_key=api_key)
        self.model = config.get("claude_model", "claude-sonnet-4-20250514")
        extraction_cfg = config.get("extraction", {})
        self.max_tokens = extraction_cfg.get("max_tokens", 4000)
        self.temperature = extraction_cfg.get("temperature", 0.2)
        self.max_chars = extraction_cfg.get("max_chars_per_document", 4000)

    def extract(self, documents: list[dict[str, Any]], options: dict[str, Any]) -> dict[str, Any]:
        prompt = build_analysis_prompt(documents, options, max_chars=self.max_chars)
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            raise OracleUnavailableError(f"Claude API error: {e}") from e

        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        if not text:
            raise ExtractionFormatError("No content in oracle response")
        logger.debug(f"Extraction response: {len(text)} chars")
        return parse_json_response(text)
