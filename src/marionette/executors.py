from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Sequence, Union
import logging
import subprocess
import sys

from .types import RunSpec, TargetList

DEFAULT_PSSH_PATH = Path("/usr/bin/parallel-ssh")
SPLAY_WINDOW = 30

INSECURE_SSH_OPTIONS = ("StrictHostKeyChecking=no", "UserKnownHostsFile=/dev/null")

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class ExecutorNotFoundError(RuntimeError):
    def __init__(self, path: Path):
        super().__init__(f"parallel-ssh command not found in {path}.")
        self.path = path


class FanOutExecutor:
    """Runs one command on every target through parallel-ssh.

    Per-host results land in the output directory; only the tool's own exit
    status comes back to the caller.
    """

    def __init__(
        self,
        pssh_path: Union[str, Path] = DEFAULT_PSSH_PATH,
        *,
        logger: Optional[logging.Logger] = None,
        runner: Runner = subprocess.run,
    ):
        self.pssh_path = Path(pssh_path)
        self.logger = logger or logging.getLogger(__name__)
        self.runner = runner

    def check_available(self) -> None:
        if not self.pssh_path.exists():
            raise ExecutorNotFoundError(self.pssh_path)

    def remote_command(self, spec: RunSpec) -> str:
        command = " ".join(spec.command)
        if spec.splay:
            command = f"sleep $(( RANDOM % {SPLAY_WINDOW} + 1 )); {command}"
        return f"{command} 2>&1"

    def build_command(self, spec: RunSpec, hostlist_path: Path) -> list[str]:
        cmd = [
            str(self.pssh_path),
            "-p",
            str(spec.threads),
            "-o",
            str(spec.output_dir),
            "-t",
            str(spec.timeout),
            "-h",
            str(hostlist_path),
        ]
        if not spec.host_key_verify:
            for option in INSECURE_SSH_OPTIONS:
                cmd.extend(["-O", option])
        if spec.user:
            cmd.extend(["-l", spec.user])
        cmd.extend(spec.extra_args)
        cmd.append(self.remote_command(spec))
        return cmd

    def run(self, spec: RunSpec, targets: TargetList) -> int:
        self.check_available()
        if not targets.addresses:
            self.logger.warning(
                "The host list in %s is empty, not running anything. "
                "The --match pattern may be too narrow.",
                targets.path,
            )
            return 0

        if not spec.host_key_verify:
            self.logger.warning("Disabled host key verification")
        cmd = self.build_command(spec, targets.path)
        self.logger.info("Node log output path: %s", spec.output_dir)
        self.logger.info(
            "Running command '%s' with parallel-ssh on %d hosts...",
            self.remote_command(spec),
            len(targets),
        )
        self.logger.debug("argv: %s", _format_command(cmd))

        # The child writes straight to our stdout; flush so ordering holds.
        sys.stdout.flush()
        proc = self.runner(cmd, check=False)
        self.logger.debug("parallel-ssh exited with rc=%s", proc.returncode)
        return proc.returncode


def _format_command(command: Sequence[str]) -> str:
    return " ".join(command)
