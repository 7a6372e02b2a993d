"""Provisioning state machine.

    INIT -> MODE_SELECT
      create: ALLOCATE_CONTAINER -> MOUNT -> START
      repair: VALIDATE_CONTAINER -> ENSURE_HOST_DIRS -> START
    -> INSTALL_DEPENDENCIES -> INSTALL_UPDATE_CLIENT
    -> WRITE_STARTUP_SCRIPT -> REGISTER_SERVICE -> DONE

Steps run strictly in order and each must succeed before the next begins.
A failed step stops the run with ProvisionStepError; completed steps are not
rolled back, re-running the whole pass is the recovery path.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional

from starlxc.core.config import ProvisionSettings
from starlxc.core.errors import PreconditionError, ProvisionStepError
from starlxc.core.logger import get_logger
from starlxc.core.runner import HostCommandRunner
from starlxc.models.container import ContainerCreateSpec, ContainerHandle
from starlxc.models.profile import STARRUPTURE, ServerProfile
from starlxc.models.request import Mode, ProvisionRequest
from starlxc.services.proxmox.containers import ContainerLifecycle, MountManager
from starlxc.services.proxmox.preflight import HostPreflight
from starlxc.services.proxmox.templates import TemplateManager
from starlxc.services.provisioner import Provisioner

logger = get_logger(__name__)


class ProvisionState(str, Enum):
    INIT = "init"
    MODE_SELECT = "mode-select"
    ALLOCATE_CONTAINER = "allocate-container"
    MOUNT = "mount"
    VALIDATE_CONTAINER = "validate-container"
    ENSURE_HOST_DIRS = "ensure-host-dirs"
    START = "start"
    INSTALL_DEPENDENCIES = "install-dependencies"
    INSTALL_UPDATE_CLIENT = "install-update-client"
    WRITE_STARTUP_SCRIPT = "write-startup-script"
    REGISTER_SERVICE = "register-service"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ProvisionReport:
    """What a run did: the states it passed through and the container it used."""
    request: ProvisionRequest
    handle: Optional[ContainerHandle] = None
    states: List[ProvisionState] = field(default_factory=list)
    failed_step: Optional[ProvisionState] = None

    @property
    def succeeded(self) -> bool:
        return bool(self.states) and self.states[-1] == ProvisionState.DONE


class ProvisionDriver:
    """Takes one ProvisionRequest from nothing (or a broken install) to a running service."""

    def __init__(
        self,
        settings: Optional[ProvisionSettings] = None,
        runner: Optional[HostCommandRunner] = None,
        profile: ServerProfile = STARRUPTURE,
        preflight: Optional[HostPreflight] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or ProvisionSettings.from_env()
        self.runner = runner or HostCommandRunner(mock=self.settings.mock)
        self.profile = profile
        self.preflight = preflight or HostPreflight(self.runner)
        self.templates = TemplateManager(self.runner)
        self.lifecycle = ContainerLifecycle(
            self.runner,
            settle_delay=self.settings.settle_delay_seconds,
            sleep=sleep,
        )
        self.mounts = MountManager(self.runner)
        self.provisioner = Provisioner(self.lifecycle, profile)

    @property
    def mount_specs(self):
        return self.profile.mount_specs(self.settings.host_base)

    def run(self, request: ProvisionRequest) -> ProvisionReport:
        """Execute a full provisioning pass.

        Raises:
            PreconditionError: Host checks failed; nothing was changed
            ProvisionStepError: A step failed; earlier steps stay applied
        """
        report = ProvisionReport(request)
        self.provisioner.last_failure = None

        self._enter(report, ProvisionState.INIT)
        self.preflight.check()

        self._enter(report, ProvisionState.MODE_SELECT)
        if request.mode == Mode.CREATE:
            handle = self._create_container(report, request)
        elif request.mode == Mode.REPAIR:
            handle = self._repair_container(report, request)
        else:  # pragma: no cover - Mode is a closed enum
            raise PreconditionError(f"Invalid mode: {request.mode}")
        report.handle = handle

        self._step(report, ProvisionState.START,
                   lambda: self.lifecycle.start(handle),
                   f"container {handle.vmid} did not start")

        vmid = handle.vmid
        self._step(report, ProvisionState.INSTALL_DEPENDENCIES,
                   lambda: self.provisioner.install_dependencies(vmid),
                   "package installation failed")
        self._step(report, ProvisionState.INSTALL_UPDATE_CLIENT,
                   lambda: self.provisioner.install_update_client(vmid),
                   "SteamCMD installation failed")
        self._step(report, ProvisionState.WRITE_STARTUP_SCRIPT,
                   lambda: self.provisioner.write_startup_script(vmid, request),
                   f"could not write {self.profile.startup_script_path}")
        self._step(report, ProvisionState.REGISTER_SERVICE,
                   lambda: self.provisioner.register_service(vmid, request),
                   f"could not activate {self.profile.service_name}.service")

        self._enter(report, ProvisionState.DONE)
        logger.info(f"✓ Provisioning of container {vmid} complete")
        return report

    def _create_container(self, report: ProvisionReport, request: ProvisionRequest) -> ContainerHandle:
        def allocate() -> Optional[ContainerHandle]:
            volume = self.templates.ensure_template(self.profile.os_template)
            if not volume:
                return None
            return self.lifecycle.create(ContainerCreateSpec.from_request(request, volume))

        handle = self._step(report, ProvisionState.ALLOCATE_CONTAINER, allocate,
                            f"could not create container {request.container_id}")

        self._step(report, ProvisionState.MOUNT,
                   lambda: self.mounts.ensure_mounts(handle, self.mount_specs),
                   "could not configure storage mounts")
        return handle

    def _repair_container(self, report: ProvisionReport, request: ProvisionRequest) -> ContainerHandle:
        handle = self._step(report, ProvisionState.VALIDATE_CONTAINER,
                            lambda: self.lifecycle.validate_existing(request.container_id),
                            f"container {request.container_id} not found")

        self._enter(report, ProvisionState.ENSURE_HOST_DIRS)
        logger.warning("Repair mode: not modifying container network/rootfs or mount points")
        if not self.mounts.ensure_host_dirs(self.mount_specs):
            logger.warning("Some host directories could not be created; continuing")
        return handle

    def _enter(self, report: ProvisionReport, state: ProvisionState) -> None:
        report.states.append(state)
        logger.debug(f"State: {state.value}")

    def _step(self, report: ProvisionReport, state: ProvisionState,
              action: Callable[[], Any], failure: str) -> Any:
        """Enter `state`, run its action and stop the run on a falsy result."""
        self._enter(report, state)
        result = action()
        if result:
            return result

        report.failed_step = state
        report.states.append(ProvisionState.FAILED)
        output = None
        if self.provisioner.last_failure is not None:
            output = self.provisioner.last_failure.tail()
        raise ProvisionStepError(state.value, failure, output)
