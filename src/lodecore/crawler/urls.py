"""
URL helpers: canonical forms for cache keys, absolute-link resolution.
"""

from __future__ import annotations

import hashlib
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse


def canonicalize_url(url: str) -> str:
    """
    Canonical form of a URL used for cache keys.

    Equivalent targets collide: the fragment is dropped, query parameters
    are sorted, scheme and host are lower-cased and a trailing slash on the
    path is removed. Strings that do not parse as absolute URLs are
    returned stripped, unchanged otherwise.
    """
    url = url.strip()
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return url

    path = parsed.path.rstrip("/")
    query = urlencode(sorted(parse_qsl(parsed.query, keep_blank_values=True)))
    return urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), path, parsed.params, query, ""))


def cache_key(url: str) -> str:
    """Hex digest of the canonical URL."""
    return hashlib.md5(canonicalize_url(url).encode("utf-8")).hexdigest()


def get_domain(url: str) -> str:
    return urlparse(url).netloc.lower()


def get_origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def to_absolute(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve ``href`` against ``base_url``; None for empty or non-navigable links."""
    if not href:
        return None
    href = href.strip()
    if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
        return None
    return urljoin(base_url, href)


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
