"""Container lifecycle management (create, validate, start, stop, exec)."""
import secrets
import shlex
import time
from typing import Callable, Optional

from starlxc.core.logger import get_logger
from starlxc.core.runner import CommandResult, HostCommandRunner
from starlxc.models.container import ContainerCreateSpec, ContainerHandle, ContainerState
from .discovery import ContainerDiscovery

logger = get_logger(__name__)

DEFAULT_SETTLE_DELAY = 3.0


def generate_root_password() -> str:
    """Random root password for a new container, never stored or reused."""
    return secrets.token_urlsafe(18)


class ContainerLifecycle:
    """Manages the server container's lifecycle and runs commands inside it."""

    def __init__(
        self,
        runner: Optional[HostCommandRunner] = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        password_factory: Callable[[], str] = generate_root_password,
    ):
        self.runner = runner or HostCommandRunner()
        self.discovery = ContainerDiscovery(self.runner)
        self.settle_delay = settle_delay
        self.sleep = sleep
        self.password_factory = password_factory

    def create(self, spec: ContainerCreateSpec) -> Optional[ContainerHandle]:
        """Create a new LXC container.

        No cleanup is attempted if the platform rejects the request; whatever
        `pct create` left behind stays as the platform reports it.

        Args:
            spec: Container creation spec

        Returns:
            Handle in STOPPED state, or None if the platform rejected the request
        """
        password = self.password_factory()
        cmd = spec.pct_args(password)

        logger.info(f"Creating container {spec.vmid} ({spec.hostname}) from {spec.ostemplate}")
        result = self.runner.run(cmd, secrets=[password])

        if not result.ok:
            logger.error(f"✗ Failed to create container {spec.vmid}")
            if result.output:
                logger.error(f"Error output: {result.tail()}")
            return None

        logger.info(f"✓ Container {spec.vmid} ({spec.hostname}) created")
        logger.info("A random root password was set. Use the console or set your own if needed.")
        return ContainerHandle(spec.vmid, ContainerState.STOPPED)

    def validate_existing(self, vmid: int) -> Optional[ContainerHandle]:
        """Bind to an existing container for repair mode.

        Returns:
            Handle with the observed state, or None if the ID is unknown
        """
        state = self.discovery.get_state(vmid)
        if state == ContainerState.NOT_CREATED:
            logger.error(f"Container {vmid} not found")
            return None

        logger.info(f"✓ Found container {vmid} ({state.value})")
        return ContainerHandle(vmid, state)

    def start(self, handle: ContainerHandle) -> bool:
        """Start a container and wait for it to settle.

        Starting a container that is already running is not an error.

        Returns:
            True if the container is running afterwards
        """
        if handle.is_running:
            logger.info(f"Container {handle.vmid} already running")
        else:
            logger.info(f"Starting container {handle.vmid}")
            result = self.runner.run(['pct', 'start', str(handle.vmid)])
            if not result.ok:
                # pct refuses to start a running container; check before failing
                if self.discovery.get_state(handle.vmid) != ContainerState.RUNNING:
                    logger.error(f"✗ Failed to start container {handle.vmid}: {result.tail()}")
                    return False
            handle.state = ContainerState.RUNNING

        if self.settle_delay > 0:
            logger.debug(f"Waiting {self.settle_delay:.0f}s for container {handle.vmid} to settle")
            self.sleep(self.settle_delay)

        logger.info(f"✓ Container {handle.vmid} is running")
        return True

    def stop(self, handle: ContainerHandle) -> bool:
        """Stop a container (best effort: an already stopped container is fine).

        Returns:
            True if the container is not running afterwards
        """
        result = self.runner.run(['pct', 'stop', str(handle.vmid)])
        if not result.ok and self.discovery.get_state(handle.vmid) == ContainerState.RUNNING:
            logger.warning(f"Container {handle.vmid} is still running: {result.tail()}")
            return False

        handle.state = ContainerState.STOPPED
        logger.info(f"✓ Container {handle.vmid} stopped")
        return True

    def exec_script(self, vmid: int, script: str, stdin: Optional[str] = None) -> CommandResult:
        """Run a shell script inside the container via `pct exec`.

        Args:
            vmid: Container ID
            script: Bash script text (run with `bash -lc`)
            stdin: Optional text fed to the script's standard input

        Returns:
            CommandResult with exit code and combined output
        """
        return self.runner.run(['pct', 'exec', str(vmid), '--', 'bash', '-lc', script], stdin=stdin)

    def write_file(self, vmid: int, path: str, content: str, mode: str = '0644') -> CommandResult:
        """Write a file inside the container, replacing any previous content."""
        quoted = shlex.quote(path)
        script = f"set -e\ncat > {quoted}\nchmod {mode} {quoted}"
        return self.exec_script(vmid, script, stdin=content)
