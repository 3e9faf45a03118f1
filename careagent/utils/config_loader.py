"""
Configuration Loader for the Clinical Assistant

This module provides utilities for loading and managing assistant configuration
from YAML files. Values missing from the file are filled in from built-in
defaults, so every section getter returns a complete dictionary.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Any

import yaml

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_ENV_VAR = "CAREAGENT_CONFIG"

DEFAULT_CONFIG: Dict[str, Any] = {
    'llm': {
        'model_name': 'llama3.1:8b',
        'base_url': 'http://localhost:11434',
        'temperature': 0.1,
        'max_tokens': 512,
        'timeout': 120,
        'check_health': True,
    },
    'agent': {
        'max_iterations': 5,
    },
    'retrieval': {
        'strategy': 'keyword',
        'top_k': 3,
        'chunk_size': 450,
        'chunk_overlap': 120,
        'bm25': {'k1': 1.5, 'b': 0.75},
        'hybrid': {'semantic_weight': 0.5, 'keyword_weight': 0.5, 'rrf_k': 60},
    },
    'models': {
        'embedding': {
            'model_name': 'sentence-transformers/all-MiniLM-L6-v2',
            'device': 'auto',
        },
    },
    'paths': {
        'guidelines_path': 'data/guidelines/clinical_guidelines.json',
        'index_dir': 'data/indexes',
        'patients_path': 'data/patients.json',
        'interactions_path': 'data/drug_interactions.json',
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``base`` with ``override`` merged in recursively."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Load and manage assistant configuration from YAML files."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize config loader.

        Args:
            config_path: Path to YAML config file. Falls back to the
                CAREAGENT_CONFIG environment variable, then to
                config/agent_config.yaml.
        """
        if config_path is None:
            config_path = os.environ.get(CONFIG_ENV_VAR)
        if config_path is None:
            config_path = str(PROJECT_ROOT / "config" / "agent_config.yaml")

        self.config_path = Path(config_path)
        self.config: Dict[str, Any] = {}
        self.load()

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from YAML file.

        Returns:
            Configuration dictionary (file values merged over defaults)
        """
        if not self.config_path.exists():
            logger.warning("Config file not found at %s, using defaults", self.config_path)
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return self.config

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config %s: %s, using defaults", self.config_path, e)
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return self.config

        if not isinstance(loaded, dict):
            logger.error("Config %s is not a mapping, using defaults", self.config_path)
            loaded = {}

        self.config = _deep_merge(DEFAULT_CONFIG, loaded)
        return self.config

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key_path: Dot-separated path (e.g., 'llm.model_name')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default

    def get_llm_config(self) -> Dict[str, Any]:
        """Get chat model configuration."""
        return dict(self.config.get('llm', {}))

    def get_agent_config(self) -> Dict[str, Any]:
        """Get tool-calling agent configuration."""
        return dict(self.config.get('agent', {}))

    def get_retrieval_config(self) -> Dict[str, Any]:
        """Get retrieval configuration, flattened for the retriever factory."""
        retrieval = self.config.get('retrieval', {})
        bm25 = retrieval.get('bm25', {})
        hybrid = retrieval.get('hybrid', {})
        return {
            'strategy': retrieval.get('strategy', 'keyword'),
            'top_k': retrieval.get('top_k', 3),
            'chunk_size': retrieval.get('chunk_size', 450),
            'chunk_overlap': retrieval.get('chunk_overlap', 120),
            'bm25_k1': bm25.get('k1', 1.5),
            'bm25_b': bm25.get('b', 0.75),
            'semantic_weight': hybrid.get('semantic_weight', 0.5),
            'keyword_weight': hybrid.get('keyword_weight', 0.5),
            'rrf_k': hybrid.get('rrf_k', 60),
        }

    def get_model_config(self) -> Dict[str, Any]:
        """Get embedding model configuration."""
        return copy.deepcopy(self.config.get('models', {}))

    def get_paths_config(self) -> Dict[str, Any]:
        """Get data paths configuration."""
        return dict(self.config.get('paths', {}))

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return dict(self.config.get('logging', {}))

    def resolve_path(self, key: str) -> Path:
        """
        Resolve a path from the ``paths`` section against the project root.

        Absolute paths are returned unchanged.
        """
        raw = self.get(f'paths.{key}')
        if raw is None:
            raise KeyError(f"No path configured for '{key}'")
        path = Path(raw)
        if path.is_absolute():
            return path
        return PROJECT_ROOT / path


def load_config(config_path: Optional[str] = None) -> ConfigLoader:
    """
    Load configuration from file.

    Args:
        config_path: Path to config file (optional)

    Returns:
        ConfigLoader instance
    """
    return ConfigLoader(config_path)
