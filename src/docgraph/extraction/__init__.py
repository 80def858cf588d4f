"""LLM extraction of themes, definitions and shared concepts."""

from .oracle import ClaudeExtractionOracle, ExtractionOracle, parse_json_response
from .schema import ExtractionResult, parse_extraction

__all__ = ["ClaudeExtractionOracle", "ExtractionOracle", "ExtractionResult", "parse_extraction", "parse_json_response"]
