"""
Name resolution -- human-readable names to vault keys.

Keys resolve to themselves. Other names are looked up at
https://<name>/.well-known/dweb, which answers with

    dweb://<64 hex key>
    ttl=3600

Answers are cached in process for their TTL.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import TYPE_CHECKING, Optional

from .errors import AddressError, NameResolutionError
from .url import SCHEME, is_vault_key, parse_address

if TYPE_CHECKING:
    from .config import VaultConfig

logger = logging.getLogger("dwebvault.dns")

WELL_KNOWN_PATH = "/.well-known/dweb"
DEFAULT_TTL_SECONDS = 3600

_NAME_REGEX = re.compile(r"^(?:[a-z]+://)?(?P<host>[^/+?#:]+)", re.IGNORECASE)
_TTL_REGEX = re.compile(r"^ttl=(\d+)$", re.IGNORECASE)


class NameResolver:
    """Resolves names to keys with a TTL cache.

    Args:
        timeout_seconds: HTTP timeout per lookup.
        default_ttl: Cache lifetime when the answer names none.
    """

    def __init__(self, timeout_seconds: float = 5.0, default_ttl: int = DEFAULT_TTL_SECONDS) -> None:
        self.timeout_seconds = timeout_seconds
        self.default_ttl = default_ttl
        self._cache: dict[str, tuple[str, float]] = {}

    async def resolve_name(self, name: str) -> str:
        """Resolve a name (or key, or dweb:// URL) to a 64-hex key.

        Raises:
            NameResolutionError: If the name has no valid answer.
        """
        try:
            return parse_address(name).key
        except AddressError:
            pass

        match = _NAME_REGEX.match((name or "").strip())
        if not match:
            raise NameResolutionError(f"Invalid name: {name!r}")
        host = match.group("host").lower()

        cached = self._cache.get(host)
        if cached and cached[1] > time.monotonic():
            return cached[0]

        body = await asyncio.to_thread(self._fetch_well_known, host)
        key, ttl = self._parse_answer(host, body)
        self._cache[host] = (key, time.monotonic() + ttl)
        logger.debug("Resolved %s -> %s (ttl %ds)", host, key, ttl)
        return key

    def clear(self) -> None:
        self._cache.clear()

    def _fetch_well_known(self, host: str) -> str:
        import urllib.error
        import urllib.request

        url = f"https://{host}{WELL_KNOWN_PATH}"
        try:
            with urllib.request.urlopen(url, timeout=self.timeout_seconds) as resp:
                return resp.read().decode("utf-8", errors="replace")
        except (urllib.error.URLError, OSError) as exc:
            raise NameResolutionError(f"Lookup of {host} failed: {exc}") from exc

    def _parse_answer(self, host: str, body: str) -> tuple[str, int]:
        lines = [line.strip() for line in body.splitlines() if line.strip()]
        if not lines:
            raise NameResolutionError(f"Empty answer for {host}")

        first = lines[0]
        prefix = f"{SCHEME}://"
        if first.lower().startswith(prefix):
            first = first[len(prefix):]
        key = first.strip("/").lower()
        if not is_vault_key(key):
            raise NameResolutionError(f"Answer for {host} is not a vault key: {lines[0]!r}")

        ttl = self.default_ttl
        for line in lines[1:]:
            ttl_match = _TTL_REGEX.match(line)
            if ttl_match:
                ttl = int(ttl_match.group(1))
        return key, ttl


_resolver: Optional[NameResolver] = None


def get_resolver(config: Optional["VaultConfig"] = None) -> NameResolver:
    """Return the process-wide resolver, applying the DNS settings of `config` if given."""
    global _resolver
    if _resolver is None:
        _resolver = NameResolver()
    if config is not None:
        _resolver.timeout_seconds = config.dns_timeout_seconds
        _resolver.default_ttl = config.dns_cache_ttl_seconds
    return _resolver


async def resolve_name(name: str, config: Optional["VaultConfig"] = None) -> str:
    """Resolve with the process-wide resolver."""
    return await get_resolver(config).resolve_name(name)
