from __future__ import annotations

from typing import Iterable, Optional, TextIO
import json
import sys

from .inventory import InventoryClient
from .types import Node, NodeCount, NodeStatus

FACT_NOT_FOUND = "fact_not_found"
UNKNOWN = "unknown"


class NodeReporter:
    """Prints node listings for the ``list`` and ``count-nodes`` commands.

    Fact and status modes issue one inventory request per node.
    """

    def __init__(self, client: Optional[InventoryClient] = None, *, out: Optional[TextIO] = None):
        self.client = client
        self.out = out or sys.stdout

    def plain(self, nodes: Iterable[Node]) -> None:
        for node in nodes:
            self._emit(node)

    def all_facts(self, nodes: Iterable[Node]) -> None:
        for node in nodes:
            record = self._client().fetch_record(node, facts=True)
            self._emit(node)
            self._emit(json.dumps(record.facts, indent=2, sort_keys=True))

    def single_fact(self, nodes: Iterable[Node], fact: str) -> None:
        for node in nodes:
            facts = self._client().fetch_facts(node)
            value = facts.get(fact, FACT_NOT_FOUND)
            self._emit(node)
            self._emit(f"  {fact}: {_render_value(value)}")

    def with_facts(self, nodes: Iterable[Node], required: str) -> None:
        wanted = {name.strip() for name in required.split(",") if name.strip()}
        for node in nodes:
            facts = self._client().fetch_facts(node)
            if wanted & set(facts):
                self._emit(node)

    def status(self, nodes: Iterable[Node]) -> None:
        for node in nodes:
            record = self._client().fetch_record(node, status=True)
            assert record.status is not None
            for line in format_status(record.status):
                self._emit(line)

    def count(self, counts: NodeCount) -> None:
        self._emit(f"active: {counts.active}")
        self._emit(f"deactivated: {counts.deactivated}")
        self._emit(f"total: {counts.total}")

    def _client(self) -> InventoryClient:
        if self.client is None:
            raise RuntimeError("an inventory client is required for fact and status listings")
        return self.client

    def _emit(self, line: str) -> None:
        print(line, file=self.out)


def format_status(status: NodeStatus) -> list[str]:
    if status.is_deactivated:
        deactivated = f"yes ({status.deactivated})"
    else:
        deactivated = "no"
    return [
        status.name,
        f"  deactivated: {deactivated}",
        f"  catalog_timestamp: {status.catalog_timestamp or UNKNOWN}",
        f"  facts_timestamp: {status.facts_timestamp or UNKNOWN}",
    ]


def _render_value(value: object) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)
