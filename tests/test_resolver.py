import logging
from types import SimpleNamespace

import dns.resolver
import pytest

from marionette.resolver import (
    DnsResolver,
    FactResolver,
    IdentityResolver,
    build_resolver,
)


class FakeDns:
    def __init__(self, answers):
        self.answers = answers
        self.queries: list[tuple[str, str]] = []

    def resolve(self, name, rdtype):
        self.queries.append((name, rdtype))
        answer = self.answers[name]
        if isinstance(answer, Exception):
            raise answer
        return [SimpleNamespace(address=address) for address in answer]


class FakeInventory:
    def __init__(self, facts):
        self.facts = facts
        self.calls: list[str] = []

    def fetch_facts(self, node):
        self.calls.append(node)
        return self.facts.get(node, {})


def test_identity_returns_node() -> None:
    assert IdentityResolver().resolve("web1.example.com") == "web1.example.com"


def test_dns_returns_first_address() -> None:
    fake = FakeDns({"web1.example.com": ["10.0.0.1", "10.0.0.2"]})
    resolver = DnsResolver("10.0.0.53", resolver=fake)

    assert resolver.resolve("web1.example.com") == "10.0.0.1"
    assert fake.queries == [("web1.example.com", "A")]


def test_dns_failure_skips_node() -> None:
    fake = FakeDns(
        {
            "gone.example.com": dns.resolver.NXDOMAIN(),
            "quiet.example.com": dns.resolver.NoAnswer(),
            "empty.example.com": [],
        }
    )
    resolver = DnsResolver("10.0.0.53", resolver=fake)

    assert resolver.resolve("gone.example.com") is None
    assert resolver.resolve("quiet.example.com") is None
    assert resolver.resolve("empty.example.com") is None


def test_dns_keeps_ip_nameserver() -> None:
    assert DnsResolver._nameserver_address("192.0.2.53") == "192.0.2.53"
    assert DnsResolver._nameserver_address("2001:db8::53") == "2001:db8::53"


def test_fact_resolver_reads_ipaddress() -> None:
    inventory = FakeInventory({"web1": {"ipaddress": "10.1.1.1"}})
    assert FactResolver(inventory).resolve("web1") == "10.1.1.1"
    assert inventory.calls == ["web1"]


def test_fact_resolver_falls_back_with_one_warning(caplog) -> None:
    inventory = FakeInventory({"web1": {"osfamily": "RedHat"}, "web2": {}})
    resolver = FactResolver(inventory)

    with caplog.at_level(logging.WARNING):
        assert resolver.resolve("web1") == "web1"
        assert resolver.resolve("web2") == "web2"

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 2
    assert "web1" in warnings[0].getMessage()
    assert "web2" in warnings[1].getMessage()


def test_build_resolver_selects_strategy() -> None:
    inventory = FakeInventory({})

    assert isinstance(build_resolver(inventory), IdentityResolver)
    assert isinstance(build_resolver(inventory, use_fact=True), FactResolver)
    assert isinstance(build_resolver(inventory, nameserver="192.0.2.53"), DnsResolver)


def test_build_resolver_rejects_both_strategies() -> None:
    with pytest.raises(ValueError):
        build_resolver(FakeInventory({}), nameserver="192.0.2.53", use_fact=True)
