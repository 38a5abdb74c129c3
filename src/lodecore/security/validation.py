"""
Target validation for the acquisition engine.

Rejects URLs the engine must never fetch: non-HTTP schemes, oversized
URLs, loopback/private/link-local hosts and cloud metadata endpoints.
"""

from __future__ import annotations

import ipaddress
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from lodecore.recovery.errors import InvalidTargetError


class TargetValidationRules(BaseModel):
    """Rules applied to every acquisition target."""

    allowed_schemes: List[str] = Field(default=["http", "https"])
    allowed_domains: Optional[List[str]] = None
    blocked_domains: List[str] = Field(
        default_factory=lambda: [
            "localhost",
            "0.0.0.0",
            "169.254.169.254",  # cloud metadata endpoint
            "metadata.google.internal",
        ]
    )
    max_url_length: int = 2048
    allow_private_ips: bool = False


class TargetValidator:
    """Validates target URLs before any strategy touches the network."""

    def __init__(self, rules: Optional[TargetValidationRules] = None):
        self.rules = rules or TargetValidationRules()

    def validate_url(self, url: str) -> str:
        """
        Validate a target URL.

        Returns:
            The URL, stripped of surrounding whitespace.

        Raises:
            InvalidTargetError: If the URL is malformed or points somewhere disallowed.
        """
        url = (url or "").strip()
        if not url:
            raise InvalidTargetError("Empty target URL")

        if len(url) > self.rules.max_url_length:
            raise InvalidTargetError(f"URL exceeds maximum length of {self.rules.max_url_length}", url=url)

        try:
            parsed = urlparse(url)
            hostname = parsed.hostname
        except ValueError as e:
            raise InvalidTargetError(f"Invalid URL format: {e}", url=url) from e

        if parsed.scheme not in self.rules.allowed_schemes:
            raise InvalidTargetError(f"Invalid URL scheme: {parsed.scheme or '<none>'}", url=url)

        if not hostname:
            raise InvalidTargetError("URL has no host", url=url)

        if not self.rules.allow_private_ips:
            if hostname in self.rules.blocked_domains or hostname.endswith(".localhost"):
                raise InvalidTargetError(f"Blocked domain: {hostname}", url=url)
            if self._is_private_ip(hostname):
                raise InvalidTargetError(f"Private IP addresses not allowed: {hostname}", url=url)

        if self.rules.allowed_domains:
            if not any(hostname == d or hostname.endswith("." + d) for d in self.rules.allowed_domains):
                raise InvalidTargetError(f"Domain not in allowlist: {hostname}", url=url)

        return url

    def _is_private_ip(self, hostname: str) -> bool:
        try:
            ip = ipaddress.ip_address(hostname)
        except ValueError:
            # Not an IP address
            return False
        return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified


_default_validator = TargetValidator()


def validate_target_url(url: str) -> str:
    """Validate a URL using the default rules."""
    return _default_validator.validate_url(url)
