"""Run commands on the nodes known to a puppet master via parallel-ssh."""

from .executors import FanOutExecutor
from .hostlist import TargetListBuilder
from .inventory import InventoryClient, filter_nodes

__all__ = ["FanOutExecutor", "InventoryClient", "TargetListBuilder", "filter_nodes"]
