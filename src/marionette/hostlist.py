from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional
import logging

from .resolver import AddressResolver
from .types import Node, ResolvedTarget, TargetList

DEFAULT_HOSTLIST = Path("/tmp/puppet-pssh-run-hostlist")


class TargetListBuilder:
    """Writes the host list file handed to parallel-ssh."""

    def __init__(self, resolver: AddressResolver, *, logger: Optional[logging.Logger] = None):
        self.resolver = resolver
        self.logger = logger or logging.getLogger(__name__)

    def build(self, nodes: Iterable[Node], path: Path, *, use_cache: bool = False) -> TargetList:
        path = Path(path)
        if use_cache and path.exists():
            self.logger.warning("Using cached hostlist in %s", path)
            return TargetList(path=path, addresses=self.read(path), from_cache=True)

        self.logger.info("Generating hostlist...")
        self.logger.debug("Hostlist path: %s", path)
        path.unlink(missing_ok=True)

        addresses: list[str] = []
        seen: set[str] = set()
        for target in self.resolve_all(nodes):
            if target.address in seen:
                self.logger.debug("Skipping duplicate address %s (%s)", target.address, target.node)
                continue
            self.logger.debug("Adding %s", target.address)
            seen.add(target.address)
            addresses.append(target.address)

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("".join(f"{address}\n" for address in addresses))
        return TargetList(path=path, addresses=addresses)

    def resolve_all(self, nodes: Iterable[Node]) -> list[ResolvedTarget]:
        """Resolve each node once; nodes without an address are left out."""

        targets: list[ResolvedTarget] = []
        for node in nodes:
            address = self.resolver.resolve(node)
            if address is not None:
                targets.append(ResolvedTarget(node=node, address=address))
        return targets

    @staticmethod
    def read(path: Path) -> list[str]:
        return [line for line in path.read_text().splitlines() if line.strip()]
