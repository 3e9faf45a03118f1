"""Logging setup shared by scripts and the MCP server."""

import logging
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'


def setup_logging(level: str = "INFO", fmt: Optional[str] = None) -> None:
    """Configure the root logger. Unknown level names fall back to INFO."""
    resolved = getattr(logging, str(level).upper(), None)
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(level=resolved, format=fmt or DEFAULT_FORMAT, force=True)
