from __future__ import annotations

import argparse
import logging
import os
import shlex
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from .config import DEFAULT_CONFIG, MarionetteConfig, load_config
from .executors import ExecutorNotFoundError, FanOutExecutor
from .hostlist import TargetListBuilder
from .inventory import MATCH_ALL, InventoryClient, InventoryError, filter_nodes
from .reporter import NodeReporter
from .resolver import build_resolver
from .types import DEFAULT_TIMEOUT, RunSpec

LOGGER_NAME = "marionette"


class Ansi:
    CYAN = "\033[96m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


def colorize(text: str, color: Optional[str]) -> str:
    if not color:
        return text
    if not sys.stdout.isatty() or os.environ.get("NO_COLOR"):
        return text
    return f"{color}{text}{Ansi.RESET}"


class ColorFormatter(logging.Formatter):
    """``* message`` for INFO, ``<epoch> LEVEL: message`` for everything else."""

    LEVEL_COLORS = {
        logging.WARNING: Ansi.YELLOW + Ansi.BOLD,
        logging.ERROR: Ansi.RED + Ansi.BOLD,
        logging.CRITICAL: Ansi.RED + Ansi.BOLD,
    }

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if record.levelno == logging.INFO:
            return f"{colorize('*', Ansi.CYAN + Ansi.BOLD)} {message}"
        level = colorize(record.levelname, self.LEVEL_COLORS.get(record.levelno))
        return f"{int(record.created)} {level}: {message}"


def env_debug_enabled() -> bool:
    return os.environ.get("DEBUG", "").lower() in {"yes", "true"}


def configure_logging(level: str) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers = [h for h in logger.handlers if not isinstance(h.formatter, ColorFormatter)]
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter())
    logger.addHandler(handler)
    logger.debug("Initializing logger")
    return logger


def _common_parser() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "-p",
        "--puppetmaster",
        help="Puppet master host (default: puppet)",
    )
    parent.add_argument(
        "--puppetmaster-port",
        type=int,
        help="Puppet master port (default: 8080)",
    )
    parent.add_argument(
        "--use-ssl",
        action="store_true",
        default=None,
        help="Use SSL (https) to communicate with the puppetmaster",
    )
    parent.add_argument("--debug", action="store_true", help="Print debugging output")
    parent.add_argument("--log-level", default=None, help="Python logging level (default: INFO)")
    return parent


def _discovery_parser() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("-m", "--match", default=MATCH_ALL, help="Only the nodes matching the regex")
    parent.add_argument(
        "--deactivated",
        action="store_true",
        help="Include deactivated nodes",
    )
    return parent


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="marionette",
        description="Run commands on the nodes registered in the puppet master",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Path to marionette config file (default: {DEFAULT_CONFIG})",
    )
    common = _common_parser()
    discovery = _discovery_parser()
    sub = parser.add_subparsers(dest="command_name", metavar="SUBCOMMAND")
    sub.required = True

    run = sub.add_parser(
        "run",
        parents=[common, discovery],
        help="Run an arbitrary command against the nodes",
    )
    run.add_argument("command", nargs="+", metavar="COMMAND", help="Command to run")
    run.add_argument("--nameserver", help="Resolve node name using the given nameserver")
    run.add_argument(
        "--use-ipaddress-fact",
        action="store_true",
        help="Use the node's ipaddress fact as the address to connect to",
    )
    run.add_argument("--pssh-path", type=Path, help="Parallel-ssh command path")
    run.add_argument("-H", "--hostlist-path", type=Path, help="Save host list to path")
    run.add_argument(
        "--cached-hostlist",
        action="store_true",
        help="Reuse the host list file when it already exists",
    )
    run.add_argument("-o", "--node-output-path", type=Path, help="Save node output to path")
    run.add_argument(
        "--host-key-verify",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Verify SSH host key (default: on)",
    )
    run.add_argument("-t", "--threads", type=int, help="Use up to N parallel connections (default: 40)")
    run.add_argument(
        "--splay",
        action="store_true",
        help="Wait a random number of seconds before running the command on each node",
    )
    run.add_argument(
        "-e",
        "--extra-args",
        default="",
        help="Extra arguments passed verbatim to parallel-ssh",
    )
    run.add_argument("-u", "--user", help="Remote user to connect as")
    run.set_defaults(handler=cmd_run)

    listing = sub.add_parser("list", parents=[common, discovery], help="List registered nodes")
    mode = listing.add_mutually_exclusive_group()
    mode.add_argument("--facts", action="store_true", help="Print every fact of each node")
    mode.add_argument("--fact", metavar="NAME", help="Print the given fact of each node")
    mode.add_argument(
        "--with-facts",
        metavar="FACTS",
        help="Only nodes having any of the comma separated facts",
    )
    mode.add_argument("--status", action="store_true", help="Print the node status")
    listing.set_defaults(handler=cmd_list)

    count = sub.add_parser("count-nodes", parents=[common], help="Count active and deactivated nodes")
    count.set_defaults(handler=cmd_count_nodes)

    return parser.parse_args(argv)


def apply_config(args: argparse.Namespace, cfg: MarionetteConfig) -> argparse.Namespace:
    """Fill options the user did not pass with values from the config file."""

    fallbacks = {
        "puppetmaster": cfg.puppetmaster,
        "puppetmaster_port": cfg.puppetmaster_port,
        "use_ssl": cfg.use_ssl,
        "pssh_path": cfg.pssh_path,
        "hostlist_path": cfg.hostlist_path,
        "node_output_path": cfg.node_output_path,
        "threads": cfg.threads,
        "host_key_verify": cfg.host_key_verify,
        "user": cfg.user,
        "nameserver": cfg.nameserver,
    }
    for key, value in fallbacks.items():
        if hasattr(args, key) and getattr(args, key) is None:
            setattr(args, key, value)
    return args


def make_client(args: argparse.Namespace, logger: logging.Logger) -> InventoryClient:
    logger.debug("Puppet master host: %s", args.puppetmaster)
    client = InventoryClient(args.puppetmaster, args.puppetmaster_port, args.use_ssl, logger=logger)
    logger.debug("Puppet master url: %s", client.base_url)
    return client


def discover(args: argparse.Namespace, client: InventoryClient) -> list[str]:
    nodes = client.get_nodes(include_deactivated=args.deactivated)
    return filter_nodes(nodes, args.match)


def cmd_list(args: argparse.Namespace, logger: logging.Logger) -> int:
    client = make_client(args, logger)
    nodes = discover(args, client)
    reporter = NodeReporter(client)
    if args.facts:
        reporter.all_facts(nodes)
    elif args.fact:
        reporter.single_fact(nodes, args.fact)
    elif args.with_facts:
        reporter.with_facts(nodes, args.with_facts)
    elif args.status:
        reporter.status(nodes)
    else:
        reporter.plain(nodes)
    return 0


def cmd_count_nodes(args: argparse.Namespace, logger: logging.Logger) -> int:
    client = make_client(args, logger)
    NodeReporter(client).count(client.count_nodes())
    return 0


def cmd_run(args: argparse.Namespace, logger: logging.Logger) -> int:
    executor = FanOutExecutor(args.pssh_path, logger=logger)
    try:
        executor.check_available()
    except ExecutorNotFoundError as exc:
        logger.error("%s", exc)
        logger.error("Install it or use --pssh-path argument.")
        return 1

    client = make_client(args, logger)
    nodes = discover(args, client)
    resolver = build_resolver(
        client,
        nameserver=args.nameserver,
        use_fact=args.use_ipaddress_fact,
        logger=logger,
    )
    targets = TargetListBuilder(resolver, logger=logger).build(
        nodes, args.hostlist_path, use_cache=args.cached_hostlist
    )
    spec = RunSpec(
        command=list(args.command),
        threads=args.threads,
        timeout=DEFAULT_TIMEOUT,
        host_key_verify=args.host_key_verify,
        extra_args=shlex.split(args.extra_args),
        user=args.user,
        splay=args.splay,
        output_dir=args.node_output_path,
    )
    return executor.run(spec, targets)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    if args.debug or env_debug_enabled():
        level = "DEBUG"
    else:
        level = args.log_level or "INFO"
    logger = configure_logging(level)

    try:
        cfg = load_config(args.config)
    except ValueError as exc:
        logger.error("Config load failed: %s", exc)
        return 1
    apply_config(args, cfg)

    started = time.monotonic()
    try:
        rc = args.handler(args, logger)
    except InventoryError as exc:
        logger.error("%s", exc)
        return 1
    except ValueError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    logger.debug("%s finished in %.1fs rc=%s", args.command_name, time.monotonic() - started, rc)
    return rc


if __name__ == "__main__":
    raise SystemExit(main())
