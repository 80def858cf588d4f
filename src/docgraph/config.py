"""Configuration management for docgraph."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG = {
    "claude_model": "claude-sonnet-4-20250514",
    "embedding_model": "intfloat/e5-large-v2",
    "log_level": "INFO",
    "analysis": {
        "min_theme_confidence": 0.7,
        "max_themes_per_document": 8,
        "semantic_similarity_threshold": 0.7,
        "connection_strength_threshold": 0.4,
        "enable_semantic_analysis": True,
        "enable_hierarchical_themes": True,
        "include_definitions": True,
        "detect_relationships": True,
        "cache_results": True,
    },
    "embedding": {"backend": "sentence-transformers", "prefix": "query: ", "batch_size": 32, "fallback_dimensions": 384},
    "extraction": {"max_tokens": 4000, "temperature": 0.2, "max_chars_per_document": 4000},
}


def _find_config_file() -> Path | None:
    """Look for config.yaml in standard locations."""
    candidates = [
        Path.cwd() / "config" / "config.yaml",
        Path.cwd() / "config.yaml",
        Path.home() / ".docgraph" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else _find_config_file()
    if path and path.exists():
        with open(path) as f:
            file_cfg = yaml.safe_load(f) or {}
        _deep_merge(cfg, file_cfg)

    # Env overrides
    if api_key := os.environ.get("ANTHROPIC_API_KEY"):
        cfg["claude_api_key"] = api_key
    if log_level := os.environ.get("DOCGRAPH_LOG_LEVEL"):
        cfg["log_level"] = log_level.upper()

    return cfg


def analysis_options(config: dict[str, Any], overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    """The ``analysis`` section with per-call overrides applied."""
    options = dict(DEFAULT_CONFIG["analysis"])
    options.update(config.get("analysis", {}))
    options.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return options


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
