import io
import json

from marionette.reporter import NodeReporter, format_status
from marionette.types import NodeCount, NodeRecord, NodeStatus


class FakeInventory:
    def __init__(self, facts=None, statuses=None):
        self.facts = facts or {}
        self.statuses = statuses or {}
        self.calls: list[str] = []

    def fetch_facts(self, node):
        self.calls.append(node)
        return self.facts.get(node, {})

    def fetch_status(self, node):
        self.calls.append(node)
        return self.statuses[node]

    def fetch_record(self, node, *, facts=False, status=False):
        record = NodeRecord(name=node)
        if facts:
            record.facts = self.fetch_facts(node)
        if status:
            record.status = self.fetch_status(node)
        return record


def _reporter(inventory=None):
    out = io.StringIO()
    return NodeReporter(inventory, out=out), out


def test_plain_listing() -> None:
    reporter, out = _reporter()
    reporter.plain(["web1", "web2"])
    assert out.getvalue() == "web1\nweb2\n"


def test_all_facts_pretty_prints() -> None:
    inventory = FakeInventory({"web1": {"osfamily": "Debian", "ipaddress": "10.0.0.1"}})
    reporter, out = _reporter(inventory)

    reporter.all_facts(["web1"])

    lines = out.getvalue().splitlines()
    assert lines[0] == "web1"
    assert json.loads("\n".join(lines[1:])) == {"osfamily": "Debian", "ipaddress": "10.0.0.1"}


def test_single_fact_uses_sentinel() -> None:
    inventory = FakeInventory({"web1": {"kernel": "Linux"}, "web2": {}})
    reporter, out = _reporter(inventory)

    reporter.single_fact(["web1", "web2"], "kernel")

    assert out.getvalue() == "web1\n  kernel: Linux\nweb2\n  kernel: fact_not_found\n"
    assert inventory.calls == ["web1", "web2"]


def test_with_facts_prints_nodes_having_any_fact() -> None:
    inventory = FakeInventory(
        {
            "web1": {"mysql_version": "8.0", "kernel": "Linux"},
            "web2": {"kernel": "Linux"},
            "db1": {"mysql_version": "8.0", "pg_version": "15"},
        }
    )
    reporter, out = _reporter(inventory)

    reporter.with_facts(["web1", "web2", "db1"], "mysql_version, pg_version")

    assert out.getvalue() == "web1\ndb1\n"


def test_status_active_node() -> None:
    status = NodeStatus("web1", None, "2023-01-02T10:00:00Z", "2023-01-02T09:00:00Z")
    reporter, out = _reporter(FakeInventory(statuses={"web1": status}))

    reporter.status(["web1"])

    assert out.getvalue().splitlines() == [
        "web1",
        "  deactivated: no",
        "  catalog_timestamp: 2023-01-02T10:00:00Z",
        "  facts_timestamp: 2023-01-02T09:00:00Z",
    ]


def test_status_deactivated_node() -> None:
    lines = format_status(NodeStatus("old", deactivated="2023-01-01"))

    assert "  deactivated: yes (2023-01-01)" in lines
    assert "  catalog_timestamp: unknown" in lines


def test_count() -> None:
    reporter, out = _reporter()
    reporter.count(NodeCount(active=3, deactivated=2))
    assert out.getvalue() == "active: 3\ndeactivated: 2\ntotal: 5\n"
