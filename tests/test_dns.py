"""Tests for name resolution."""

from __future__ import annotations

import pytest

from dwebvault import dns
from dwebvault.config import VaultConfig
from dwebvault.dns import NameResolver
from dwebvault.errors import NameResolutionError
from dwebvault.vault import DWebVault

KEY = "ab" * 32


@pytest.fixture
def resolver(monkeypatch: pytest.MonkeyPatch):
    """A resolver whose HTTP lookups are answered from a dict."""
    answers: dict[str, str] = {}
    lookups: list[str] = []
    resolver = NameResolver(default_ttl=60)

    def fake_fetch(host: str) -> str:
        lookups.append(host)
        if host not in answers:
            raise NameResolutionError(f"Lookup of {host} failed: unreachable")
        return answers[host]

    monkeypatch.setattr(resolver, "_fetch_well_known", fake_fetch)
    resolver.answers = answers
    resolver.lookups = lookups
    return resolver


class TestResolveName:
    """Tests for NameResolver.resolve_name."""

    @pytest.mark.asyncio
    async def test_key_resolves_to_itself(self, resolver) -> None:
        assert await resolver.resolve_name(KEY) == KEY
        assert await resolver.resolve_name(f"dweb://{KEY}+2/index.html") == KEY
        assert resolver.lookups == []

    @pytest.mark.asyncio
    async def test_well_known_lookup(self, resolver) -> None:
        resolver.answers["example.com"] = f"dweb://{KEY}/\nttl=3600\n"
        assert await resolver.resolve_name("example.com") == KEY
        assert await resolver.resolve_name("dweb://Example.com/path") == KEY
        assert resolver.lookups == ["example.com"]

    @pytest.mark.asyncio
    async def test_bare_key_answer(self, resolver) -> None:
        resolver.answers["bare.org"] = KEY.upper()
        assert await resolver.resolve_name("bare.org") == KEY

    @pytest.mark.asyncio
    async def test_expired_entry_refetched(self, resolver) -> None:
        resolver.answers["short.org"] = f"dweb://{KEY}\nttl=0"
        await resolver.resolve_name("short.org")
        await resolver.resolve_name("short.org")
        assert resolver.lookups == ["short.org", "short.org"]

    @pytest.mark.asyncio
    async def test_clear(self, resolver) -> None:
        resolver.answers["example.com"] = KEY
        await resolver.resolve_name("example.com")
        resolver.clear()
        await resolver.resolve_name("example.com")
        assert len(resolver.lookups) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["", "\n\n", "dweb://not-a-key", "hello world"])
    async def test_bad_answers(self, resolver, body: str) -> None:
        resolver.answers["bad.org"] = body
        with pytest.raises(NameResolutionError):
            await resolver.resolve_name("bad.org")

    @pytest.mark.asyncio
    async def test_unreachable(self, resolver) -> None:
        with pytest.raises(NameResolutionError, match="unreachable"):
            await resolver.resolve_name("nowhere.invalid")

    @pytest.mark.asyncio
    async def test_empty_name(self, resolver) -> None:
        with pytest.raises(NameResolutionError):
            await resolver.resolve_name("")


class TestParseAnswer:
    """Tests for the well-known body format."""

    def test_ttl(self) -> None:
        assert NameResolver(default_ttl=5)._parse_answer("h", f"dweb://{KEY}\nttl=120") == (KEY, 120)

    def test_default_ttl(self) -> None:
        assert NameResolver(default_ttl=5)._parse_answer("h", KEY) == (KEY, 5)


@pytest.mark.asyncio
async def test_module_level_resolver() -> None:
    assert dns.get_resolver() is dns.get_resolver()
    assert await dns.resolve_name(KEY) == KEY


class TestSharedResolver:
    """Tests for the process-wide resolver and its config."""

    @pytest.fixture(autouse=True)
    def fresh_resolver(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(dns, "_resolver", None)

    def test_config_applied(self) -> None:
        resolver = dns.get_resolver(VaultConfig(dns_timeout_seconds=2.5, dns_cache_ttl_seconds=10))
        assert resolver.timeout_seconds == 2.5
        assert resolver.default_ttl == 10
        assert dns.get_resolver() is resolver

    @pytest.mark.asyncio
    async def test_vault_resolve_uses_config_ttl(self, monkeypatch: pytest.MonkeyPatch) -> None:
        lookups = []

        def fake_fetch(host: str) -> str:
            lookups.append(host)
            return f"dweb://{KEY}"

        monkeypatch.setattr(dns.get_resolver(), "_fetch_well_known", fake_fetch)
        config = VaultConfig(dns_cache_ttl_seconds=0)
        assert await DWebVault.resolve_name("example.com", config) == KEY
        assert await DWebVault.resolve_name("example.com", config) == KEY
        assert lookups == ["example.com", "example.com"]
