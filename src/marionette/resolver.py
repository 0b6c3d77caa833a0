from __future__ import annotations

from typing import Optional, Protocol
import ipaddress
import logging
import socket

import dns.exception
import dns.resolver

from .inventory import InventoryClient
from .types import Node

DEFAULT_ADDRESS_FACT = "ipaddress"


class AddressResolver(Protocol):
    def resolve(self, node: Node) -> Optional[str]:
        """Return the address for ``node`` or ``None`` to drop it."""


class IdentityResolver:
    def resolve(self, node: Node) -> Optional[str]:
        return node


class DnsResolver:
    """Forward A lookups against one specific nameserver.

    Lookup failures drop the node from the target list; they never fall back
    to the node name because that could silently reach the wrong host.
    """

    def __init__(
        self,
        nameserver: str,
        *,
        resolver: Optional[dns.resolver.Resolver] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.nameserver = nameserver
        self.logger = logger or logging.getLogger(__name__)
        if resolver is None:
            resolver = dns.resolver.Resolver(configure=False)
            resolver.nameservers = [self._nameserver_address(nameserver)]
        self.resolver = resolver

    def resolve(self, node: Node) -> Optional[str]:
        try:
            answer = self.resolver.resolve(node, "A")
        except dns.exception.DNSException as exc:
            self.logger.debug("Skipping %s: lookup via %s failed (%s)", node, self.nameserver, exc)
            return None
        addresses = [rdata.address for rdata in answer]
        if not addresses:
            self.logger.debug("Skipping %s: empty answer from %s", node, self.nameserver)
            return None
        return addresses[0]

    @staticmethod
    def _nameserver_address(nameserver: str) -> str:
        try:
            ipaddress.ip_address(nameserver)
        except ValueError:
            pass
        else:
            return nameserver
        try:
            return socket.gethostbyname(nameserver)
        except OSError as exc:
            raise ValueError(f"Cannot resolve nameserver {nameserver}: {exc}") from None


class FactResolver:
    """Use an inventory fact (the node's IP address by default) as address."""

    def __init__(
        self,
        client: InventoryClient,
        fact: str = DEFAULT_ADDRESS_FACT,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.fact = fact
        self.logger = logger or logging.getLogger(__name__)

    def resolve(self, node: Node) -> Optional[str]:
        value = self.client.fetch_facts(node).get(self.fact)
        if value in (None, ""):
            self.logger.warning("Fact %s not found for %s, using the node name", self.fact, node)
            return node
        return str(value)


def build_resolver(
    client: InventoryClient,
    *,
    nameserver: Optional[str] = None,
    use_fact: bool = False,
    fact: str = DEFAULT_ADDRESS_FACT,
    logger: Optional[logging.Logger] = None,
) -> AddressResolver:
    if nameserver and use_fact:
        raise ValueError("--nameserver and --use-ipaddress-fact are mutually exclusive")
    log = logger or logging.getLogger(__name__)
    if nameserver:
        log.info("DNS Server: %s", nameserver)
        log.info("Resolving node names... (may take a while)")
        return DnsResolver(nameserver, logger=log)
    if use_fact:
        log.info("Using the %s fact as node address", fact)
        return FactResolver(client, fact, logger=log)
    return IdentityResolver()
