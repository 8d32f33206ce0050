from __future__ import annotations

import posixpath
import re
from urllib.parse import urlsplit

DEFAULT_PORTS = {"http": 80, "https": 443}


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlsplit(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except ValueError:
        return False


def host_with_port(url: str) -> str | None:
    """Return ``host[:port]`` for a URL, omitting the scheme's default port.

    Returns None when the URL cannot be parsed or has no host.
    """
    try:
        parsed = urlsplit(url.strip())
        hostname = parsed.hostname
        port = parsed.port
    except ValueError:
        return None
    if not parsed.scheme or not hostname:
        return None

    if ":" in hostname:
        hostname = f"[{hostname}]"
    if port is not None and DEFAULT_PORTS.get(parsed.scheme.lower()) != port:
        return f"{hostname}:{port}"
    return hostname


def normalize_path(path: str) -> str:
    """Resolve "." and ".." segments, keeping a trailing slash. Empty paths become "/"."""
    if not path:
        return "/"
    normalized = posixpath.normpath(path)
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    if path.endswith("/") and not normalized.endswith("/"):
        normalized += "/"
    return normalized


def extract_url_pattern(url: str) -> str:
    """Derive the strategy-learning key for a URL by dropping its last path segment.

    https://yelp.com/biz/dolly-san-francisco -> yelp.com/biz/
    https://example.com/blog/2024/article    -> example.com/blog/2024/
    https://example.com/about                -> example.com

    Input that does not parse as an absolute URL is returned unchanged.
    """
    host = host_with_port(url)
    if host is None:
        return url

    path = normalize_path(urlsplit(url.strip()).path)
    if path == "/":
        return host

    segments = [s for s in path.split("/") if s]
    if len(segments) <= 1:
        return host

    return host + "/" + "/".join(segments[:-1]) + "/"


def sanitize_url_fragment(url: str, max_length: int = 120) -> str:
    """Turn a URL into a filesystem/URI-safe fragment."""
    fragment = re.sub(r"^https?://", "", url.strip())
    fragment = re.sub(r"[^a-zA-Z0-9.-]", "_", fragment)
    return fragment[:max_length] or "resource"


def truncate_content(text: str, max_chars: int, start_index: int = 0) -> tuple[str, bool]:
    """Slice content for paginated output. Returns (chunk, was_truncated)."""
    if start_index > 0:
        text = text[start_index:]
    if max_chars > 0 and len(text) > max_chars:
        return text[:max_chars], True
    return text, False


def timeout_seconds(timeout_ms: int | None, default_ms: int) -> float:
    """Convert a per-call millisecond timeout to httpx seconds, falling back to the default."""
    ms = timeout_ms if timeout_ms and timeout_ms > 0 else default_ms
    return max(ms / 1000.0, 0.001)


def media_type(content_type_header: str | None) -> str | None:
    """Lowercased media type from a Content-Type header, without parameters."""
    if not content_type_header:
        return None
    return content_type_header.split(";", 1)[0].strip().lower() or None
