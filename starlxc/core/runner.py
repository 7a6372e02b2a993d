"""Host command execution.

Every platform call (pct, pvesm, pveam, pvesh, ip) goes through a
HostCommandRunner so the managers can be driven by a fake in tests.
"""
import shlex
import subprocess
from dataclasses import dataclass
from typing import Iterable, List, Optional

from starlxc.core.logger import get_logger

logger = get_logger(__name__)

REDACTED = "********"


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined stdout/stderr of one command."""

    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def tail(self, lines: int = 20) -> str:
        """Return the last lines of output for diagnostics."""
        return "\n".join(self.output.strip().splitlines()[-lines:])


def format_command(cmd: Iterable[str], secrets: Iterable[str] = ()) -> str:
    """Render a command for logging with secret values masked."""
    hidden = set(secrets)
    return shlex.join(REDACTED if part in hidden else part for part in cmd)


class HostCommandRunner:
    """Runs commands on the Proxmox host.

    In mock mode commands are logged and reported as successful with empty
    output, so read-only probes fall back to their defaults.
    """

    def __init__(self, mock: bool = False):
        self.mock = mock

    def run(
        self,
        cmd: List[str],
        stdin: Optional[str] = None,
        secrets: Iterable[str] = (),
    ) -> CommandResult:
        """Run a command and capture its exit code and combined output.

        Args:
            cmd: Command and arguments
            stdin: Text fed to the command's standard input
            secrets: Argument values that must never reach the logs

        Returns:
            CommandResult (a missing executable is reported as exit code 127)
        """
        command_str = format_command(cmd, secrets)

        if self.mock:
            logger.info(f"MOCK: Would run: {command_str}")
            return CommandResult(0, "")

        logger.debug(f"Running: {command_str}")
        try:
            proc = subprocess.run(
                cmd,
                input=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except FileNotFoundError:
            logger.debug(f"Command not found: {cmd[0]}")
            return CommandResult(127, f"{cmd[0]}: command not found")

        if proc.returncode != 0:
            logger.debug(f"Command exited with code {proc.returncode}: {command_str}")
        return CommandResult(proc.returncode, proc.stdout or "")
