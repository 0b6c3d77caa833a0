from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

Node = str

DEFAULT_THREADS = 40
DEFAULT_TIMEOUT = 300


@dataclass
class NodeStatus:
    name: str
    deactivated: Optional[str] = None
    catalog_timestamp: Optional[str] = None
    facts_timestamp: Optional[str] = None

    @property
    def is_deactivated(self) -> bool:
        return bool(self.deactivated)


@dataclass
class NodeRecord:
    name: Node
    active: bool = True
    facts: dict[str, Any] = field(default_factory=dict)
    status: Optional[NodeStatus] = None


@dataclass
class NodeCount:
    active: int
    deactivated: int

    @property
    def total(self) -> int:
        return self.active + self.deactivated


@dataclass
class ResolvedTarget:
    node: Node
    address: str


@dataclass
class TargetList:
    path: Path
    addresses: list[str]
    from_cache: bool = False

    def __len__(self) -> int:
        return len(self.addresses)


@dataclass
class RunSpec:
    command: list[str]
    threads: int = DEFAULT_THREADS
    timeout: int = DEFAULT_TIMEOUT
    host_key_verify: bool = True
    extra_args: list[str] = field(default_factory=list)
    user: Optional[str] = None
    splay: bool = False
    output_dir: Path = Path("/tmp/")
