"""Utility functions for web2journal."""

import logging
import sys
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def extract_domain(url: str) -> str:
    """Extract the domain from a URL."""
    parsed = urlparse(url)
    domain = parsed.netloc
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 chars per token for English)."""
    return len(text) // 4


def configure_logging(log_file: Optional[Path] = None, verbose: bool = False) -> None:
    """Send package logs to log_file (everything) and stderr (warnings, or all if verbose)."""
    root = logging.getLogger("web2journal")
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
