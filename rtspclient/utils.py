"""Utilities: logging, URL parsing, validation helpers.

parse_rtsp_url returns a 3-tuple:
    (host, port, path)
"""

from __future__ import annotations

import logging
import re
from typing import Tuple

from .exceptions import RTSPValidationError

logger = logging.getLogger("rtspclient")
logger.addHandler(logging.NullHandler())

DEFAULT_PORT = 554

_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_RTSP_URL_RE = re.compile(r"^rtsp://([\w\-.]+)(?::(\d+))?(/.*)$")

def validate_token(name: str, value: str, mode: str = "strict") -> None:
    """Validate small token-like strings (header names or methods)."""
    if not isinstance(value, str):
        raise RTSPValidationError(f"{name} must be str")
    if not _TOKEN_RE.match(value):
        if mode == "strict":
            raise RTSPValidationError(f"Invalid {name}: {value!r}")
        else:
            logger.warning("lenient: invalid %s %r - continuing", name, value)

def parse_rtsp_url(url: str) -> Tuple[str, int, str]:
    """Split ``rtsp://host[:port]/path`` into its parts.

    The host is a run of word, hyphen and dot characters; the path is the
    mandatory ``/``-prefixed remainder and is returned as-is (query string
    included).

    Returns:
        (host, port, path)
    Raises:
        RTSPValidationError if the host or path cannot be extracted.
    """
    if not isinstance(url, str):
        raise RTSPValidationError("url must be a string")
    m = _RTSP_URL_RE.match(url)
    if not m:
        raise RTSPValidationError(f"Invalid RTSP URL: {url!r}")
    host, port, path = m.groups()
    return host, int(port) if port else DEFAULT_PORT, path
