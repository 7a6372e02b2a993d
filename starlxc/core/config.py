"""starlxc runtime configuration and settings."""
import os
from dataclasses import dataclass
from pathlib import Path

from starlxc.core.errors import PreconditionError


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes")


def _env_seconds(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise PreconditionError(f"{name} must be a number of seconds. Got: {raw!r}")
    if value < 0:
        raise PreconditionError(f"{name} cannot be negative. Got: {raw!r}")
    return value


@dataclass(frozen=True)
class ProvisionSettings:
    """Runtime settings for provisioning runs.

    These are host-side knobs, not part of a ProvisionRequest: they describe
    where this tool keeps its own state rather than what the operator asked for.

    Attributes:
        settle_delay_seconds: Pause after starting a container before the first exec (default: 3)
        host_base: Host directory holding the persistent server and savegame trees
        lock_file: Lock file that serializes provisioning runs on this host
        log_file: Optional log file path (defaults to /var/log/starlxc/starlxc.log)
        mock: Log platform commands instead of running them
    """

    settle_delay_seconds: float = 3.0
    host_base: Path = Path("/srv/starrupture")
    lock_file: Path = Path("/var/run/starlxc/provision.lock")
    log_file: str = ""
    mock: bool = False

    @classmethod
    def from_env(cls) -> "ProvisionSettings":
        """Create settings from environment variables.

        Environment variables:
            STARLXC_SETTLE_DELAY: Settle delay after container start, in seconds
            STARLXC_HOST_BASE: Base directory for persistent host storage
            STARLXC_LOCK_FILE: Provisioning lock file
            STARLXC_LOG_FILE: Log file path
            STARLXC_MOCK: "1" to only log platform commands

        Returns:
            ProvisionSettings with values from environment or defaults

        Raises:
            PreconditionError: STARLXC_SETTLE_DELAY is not a non-negative number
        """
        return cls(
            settle_delay_seconds=_env_seconds("STARLXC_SETTLE_DELAY", cls.settle_delay_seconds),
            host_base=Path(os.getenv("STARLXC_HOST_BASE", str(cls.host_base))),
            lock_file=Path(os.getenv("STARLXC_LOCK_FILE", str(cls.lock_file))),
            log_file=os.getenv("STARLXC_LOG_FILE", cls.log_file),
            mock=_env_flag("STARLXC_MOCK"),
        )
