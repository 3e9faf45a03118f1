"""Configuration and logging helpers."""

from .config_loader import ConfigLoader, load_config
from .logging_utils import setup_logging

__all__ = [
    'ConfigLoader',
    'load_config',
    'setup_logging'
]
