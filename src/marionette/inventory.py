from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Optional
from urllib.parse import quote
import json
import logging
import re

import requests

from .types import Node, NodeCount, NodeRecord, NodeStatus

DEFAULT_HOST = "puppet"
DEFAULT_PORT = 8080
MATCH_ALL = ".*"


class InventoryErrorKind(Enum):
    PARSE = "parse"
    UNREACHABLE = "unreachable"


class InventoryError(RuntimeError):
    """Failure talking to the inventory service, tagged with its kind."""

    kind: InventoryErrorKind

    def __init__(self, message: str, *, host: str):
        super().__init__(message)
        self.host = host


class InventoryParseError(InventoryError):
    kind = InventoryErrorKind.PARSE

    def __init__(self, host: str, detail: Optional[str] = None):
        message = f"Error retrieving node list from master host: {host}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, host=host)


class InventoryUnreachableError(InventoryError):
    kind = InventoryErrorKind.UNREACHABLE

    def __init__(self, host: str, detail: Optional[str] = None):
        message = f"Could not connect to the puppet master host: {host}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, host=host)


def active_predicate(active: bool) -> str:
    return json.dumps(["=", ["node", "active"], active])


def filter_nodes(nodes: Iterable[Node], pattern: str = MATCH_ALL) -> list[Node]:
    """Keep the nodes whose identifier contains a match for ``pattern``."""

    try:
        regex = re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"Invalid match pattern {pattern!r}: {exc}") from None
    return [node for node in nodes if regex.search(node)]


class InventoryClient:
    """Read-only client for the inventory (PuppetDB) HTTP API.

    Every public call issues exactly one GET; nothing is retried. Transport
    and decoding failures come back as :class:`InventoryError` subclasses so
    callers never need to know about ``requests`` exception types.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        use_tls: bool = False,
        *,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.host = host
        self.port = int(port)
        self.use_tls = use_tls
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_tls else "http"
        return f"{scheme}://{self.host}:{self.port}"

    def query_nodes(self, active: bool = True) -> list[Node]:
        predicate = quote(active_predicate(active), safe="")
        payload = self._get(f"/nodes?query={predicate}")
        if not isinstance(payload, list):
            raise InventoryParseError(self.host, "expected a list of nodes")
        nodes: list[Node] = []
        for item in payload:
            # Some inventory versions return node objects instead of names.
            if isinstance(item, dict) and "name" in item:
                item = item["name"]
            if not isinstance(item, str):
                raise InventoryParseError(self.host, f"unexpected node entry {item!r}")
            nodes.append(item)
        self.logger.debug("Found %d %s nodes", len(nodes), "active" if active else "deactivated")
        return nodes

    def get_nodes(self, *, include_deactivated: bool = False) -> list[Node]:
        nodes = self.query_nodes(active=True)
        if include_deactivated:
            nodes.extend(self.query_nodes(active=False))
        return nodes

    def count_nodes(self) -> NodeCount:
        return NodeCount(
            active=len(self.query_nodes(active=True)),
            deactivated=len(self.query_nodes(active=False)),
        )

    def fetch_facts(self, node: Node) -> dict[str, Any]:
        payload = self._get(f"/facts/{quote(node, safe='')}")
        if not isinstance(payload, dict):
            raise InventoryParseError(self.host, f"expected a facts object for {node}")
        facts = payload.get("facts") or {}
        if not isinstance(facts, dict):
            raise InventoryParseError(self.host, f"facts for {node} are not a mapping")
        return facts

    def fetch_status(self, node: Node) -> NodeStatus:
        payload = self._get(f"/status/nodes/{quote(node, safe='')}")
        if not isinstance(payload, dict):
            raise InventoryParseError(self.host, f"expected a status object for {node}")
        return NodeStatus(
            name=str(payload.get("name") or node),
            deactivated=_optional_str(payload.get("deactivated")),
            catalog_timestamp=_optional_str(payload.get("catalog_timestamp")),
            facts_timestamp=_optional_str(payload.get("facts_timestamp")),
        )

    def fetch_record(self, node: Node, *, facts: bool = False, status: bool = False) -> NodeRecord:
        record = NodeRecord(name=node)
        if facts:
            record.facts = self.fetch_facts(node)
        if status:
            record.status = self.fetch_status(node)
            record.active = not record.status.is_deactivated
        return record

    def _get(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        self.logger.debug("GET %s", url)
        try:
            response = self.session.get(url)
        except requests.exceptions.RequestException as exc:
            raise InventoryUnreachableError(self.host, str(exc)) from exc
        if response.status_code >= 400:
            raise InventoryParseError(self.host, f"HTTP {response.status_code} for {path}")
        try:
            return response.json()
        except ValueError as exc:
            raise InventoryParseError(self.host, "response is not JSON") from exc


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)
