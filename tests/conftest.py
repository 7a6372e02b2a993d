"""Shared test fixtures for starlxc tests."""
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

import pytest

from starlxc.core.config import ProvisionSettings
from starlxc.core.runner import CommandResult
from starlxc.models.request import Mode, OptionalPorts, ProvisionRequest
from starlxc.services.proxmox.preflight import HostPreflight

Matcher = Union[Tuple[str, ...], Callable[[List[str]], bool]]

TEMPLATE_FILE = "debian-12-standard_12.7-1_amd64.tar.zst"


@dataclass
class RecordedCall:
    cmd: List[str]
    stdin: Optional[str]
    secrets: Tuple[str, ...]

    @property
    def script(self) -> str:
        """Script text of a `pct exec ... bash -lc <script>` call."""
        return self.cmd[-1]


class FakeRunner:
    """Stands in for HostCommandRunner: records every command, runs none.

    Answers come from rules added with `respond()`. A rule matches on a
    command prefix or a predicate; the most recently added matching rule
    wins. Several results for one rule are handed out in order and the last
    one repeats. Unmatched commands succeed with empty output.
    """

    def __init__(self):
        self.mock = False
        self.calls: List[RecordedCall] = []
        self._rules: List[Tuple[Matcher, List[CommandResult]]] = []

    def respond(self, match: Matcher, *results: CommandResult) -> "FakeRunner":
        self._rules.append((match, list(results) or [CommandResult(0, "")]))
        return self

    def run(self, cmd, stdin=None, secrets=()):
        cmd = [str(part) for part in cmd]
        self.calls.append(RecordedCall(cmd, stdin, tuple(secrets)))
        for match, results in reversed(self._rules):
            if self._matches(match, cmd):
                return results.pop(0) if len(results) > 1 else results[0]
        return CommandResult(0, "")

    @staticmethod
    def _matches(match: Matcher, cmd: List[str]) -> bool:
        if callable(match):
            return match(cmd)
        return tuple(cmd[:len(match)]) == tuple(match)

    @property
    def commands(self) -> List[List[str]]:
        return [call.cmd for call in self.calls]

    def find(self, *prefix: str) -> List[RecordedCall]:
        return [call for call in self.calls if tuple(call.cmd[:len(prefix)]) == prefix]

    def exec_calls(self, vmid: int) -> List[RecordedCall]:
        return self.find('pct', 'exec', str(vmid))

    def file_writes(self, vmid: int, path: str) -> List[str]:
        """Contents written to `path` inside the container, oldest first."""
        return [
            call.stdin for call in self.exec_calls(vmid)
            if f"cat > {path}\n" in call.script
        ]


def script_contains(text: str) -> Callable[[List[str]], bool]:
    """Match a `pct exec` whose script contains `text`."""
    return lambda cmd: cmd[:2] == ['pct', 'exec'] and text in cmd[-1]


def healthy_host(runner: FakeRunner) -> FakeRunner:
    """Script the answers of a working Proxmox host."""
    runner.respond(('pveversion',), CommandResult(0, "pve-manager/8.2.4/faa83925c9641325 (running kernel: 6.8.8-2-pve)\n"))
    runner.respond(('pvesm', 'status', '-content', 'vztmpl'), CommandResult(
        0,
        "Name         Type     Status           Total            Used       Available        %\n"
        "local         dir     active        98497780        12841960        80606272   13.04%\n",
    ))
    runner.respond(('pveam', 'available'), CommandResult(
        0,
        "system          debian-11-standard_11.7-1_amd64.tar.zst\n"
        "system          debian-12-standard_12.2-1_amd64.tar.zst\n"
        f"system          {TEMPLATE_FILE}\n",
    ))
    runner.respond(('pveam', 'list'), CommandResult(
        0,
        "NAME                                                         SIZE\n"
        f"local:vztmpl/{TEMPLATE_FILE}                  120.29MB\n",
    ))
    return runner


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def host_runner():
    """FakeRunner answering like a healthy Proxmox host."""
    return healthy_host(FakeRunner())


@pytest.fixture
def root_preflight(host_runner):
    """Preflight that sees root and every required command."""
    return HostPreflight(host_runner, which=lambda name: f"/usr/bin/{name}", geteuid=lambda: 0)


@pytest.fixture
def settings(tmp_path):
    return ProvisionSettings(
        settle_delay_seconds=0,
        host_base=tmp_path / "srv" / "starrupture",
        lock_file=tmp_path / "provision.lock",
        log_file=str(tmp_path / "starlxc.log"),
    )


@pytest.fixture
def create_request():
    """The canonical create example: CT 105 at 10.0.0.5, game port 7777."""
    return ProvisionRequest(
        mode=Mode.CREATE,
        container_id=105,
        storage_pool="local-lvm",
        network_bridge="vmbr0",
        static_address_cidr="10.0.0.5/24",
        gateway="10.0.0.1",
        server_bind_address="10.0.0.5",
        server_port=7777,
    )


@pytest.fixture
def repair_request():
    return ProvisionRequest(
        mode=Mode.REPAIR,
        container_id=105,
        server_bind_address="10.0.0.5",
    )


@pytest.fixture
def extra_ports_request(create_request):
    return create_request.model_copy(update={'optional_ports': OptionalPorts(query_port=27016, beacon_port=7779)})
