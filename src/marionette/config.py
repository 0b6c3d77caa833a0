from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]

from .executors import DEFAULT_PSSH_PATH
from .hostlist import DEFAULT_HOSTLIST
from .inventory import DEFAULT_HOST, DEFAULT_PORT
from .types import DEFAULT_THREADS

DEFAULT_CONFIG = Path("/etc/marionette/main.conf")
DEFAULT_OUTPUT_PATH = Path("/tmp/")


@dataclass
class MarionetteConfig:
    puppetmaster: str = DEFAULT_HOST
    puppetmaster_port: int = DEFAULT_PORT
    use_ssl: bool = False
    pssh_path: Path = DEFAULT_PSSH_PATH
    hostlist_path: Path = DEFAULT_HOSTLIST
    node_output_path: Path = DEFAULT_OUTPUT_PATH
    threads: int = DEFAULT_THREADS
    host_key_verify: bool = True
    user: Optional[str] = None
    nameserver: Optional[str] = None


def load_config(path: Path) -> MarionetteConfig:
    if not path.exists():
        return MarionetteConfig()
    try:
        data = tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"{path}: {exc}") from None
    defaults = data.get("defaults", {})
    user = defaults.get("user")
    nameserver = defaults.get("nameserver")
    return MarionetteConfig(
        puppetmaster=str(defaults.get("puppetmaster", DEFAULT_HOST)),
        puppetmaster_port=int(defaults.get("puppetmaster_port", DEFAULT_PORT)),
        use_ssl=bool(defaults.get("use_ssl", False)),
        pssh_path=Path(defaults.get("pssh_path", DEFAULT_PSSH_PATH)),
        hostlist_path=Path(defaults.get("hostlist_path", DEFAULT_HOSTLIST)),
        node_output_path=Path(defaults.get("node_output_path", DEFAULT_OUTPUT_PATH)),
        threads=int(defaults.get("threads", DEFAULT_THREADS)),
        host_key_verify=bool(defaults.get("host_key_verify", True)),
        user=str(user) if user else None,
        nameserver=str(nameserver) if nameserver else None,
    )
