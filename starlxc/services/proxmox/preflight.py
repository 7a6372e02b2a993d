"""Host precondition checks, run before anything is changed."""
import os
import shutil
from typing import Callable, Optional, Sequence

from starlxc.core.errors import PreconditionError
from starlxc.core.logger import get_logger
from starlxc.core.runner import HostCommandRunner

logger = get_logger(__name__)

REQUIRED_COMMANDS = ('pct', 'pvesm', 'pveam', 'pvesh', 'ip')


class HostPreflight:
    """Verifies the host can run a provisioning pass."""

    def __init__(
        self,
        runner: Optional[HostCommandRunner] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        geteuid: Callable[[], int] = os.geteuid,
    ):
        self.runner = runner or HostCommandRunner()
        self.which = which
        self.geteuid = geteuid

    def check(self, required: Sequence[str] = REQUIRED_COMMANDS) -> None:
        """Raise PreconditionError on the first failed check."""
        if self.runner.mock:
            logger.info("MOCK: Skipping host preflight checks")
            return

        if self.geteuid() != 0:
            raise PreconditionError("Run this command as root.")

        if not self.which('pveversion'):
            raise PreconditionError("Not a Proxmox VE host (pveversion not found).")
        result = self.runner.run(['pveversion'])
        if not result.ok or 'pve-manager' not in result.output:
            raise PreconditionError("Not a Proxmox VE host.")

        for command in required:
            if not self.which(command):
                raise PreconditionError(f"Missing required command: {command}")

        logger.debug("Host preflight checks passed")
