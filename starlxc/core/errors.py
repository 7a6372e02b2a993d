"""Error taxonomy for provisioning runs."""
from typing import Optional


class ProvisionError(Exception):
    """Base class for every fatal provisioning failure."""


class PreconditionError(ProvisionError):
    """Raised before any mutation when the host or request is unusable."""


class ProvisionStepError(ProvisionError):
    """Raised when a platform operation or in-container step fails.

    Attributes:
        step: Name of the state machine step that failed
        output: Tail of the command output, if any
    """

    def __init__(self, step: str, message: str, output: Optional[str] = None):
        self.step = step
        self.output = output
        super().__init__(f"{step}: {message}")


class LockError(ProvisionError):
    """Raised when another provisioning run holds the host lock."""
