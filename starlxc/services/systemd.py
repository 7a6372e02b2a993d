"""systemd unit generation for the server process."""
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from starlxc.models.profile import STARRUPTURE, ServerProfile
from starlxc.models.request import ProvisionRequest
from starlxc.services.script_builder import ScriptBuilder

UNIT_DIR = "/etc/systemd/system"


@dataclass(frozen=True)
class ServiceUnitSpec:
    """A long-running, always-restarted service.

    Once the unit is active, every exit of the server process (including an
    update that ran out of retries) is restarted after `restart_delay_seconds`,
    with no limit on the number of restarts.
    """
    name: str
    description: str
    executable_path: str
    environment: Dict[str, str] = field(default_factory=dict)
    restart_policy: str = "always"
    restart_delay_seconds: int = 10
    shutdown_signal: str = "SIGINT"
    shutdown_timeout_seconds: int = 60

    @classmethod
    def from_request(cls, request: ProvisionRequest,
                     profile: ServerProfile = STARRUPTURE) -> "ServiceUnitSpec":
        return cls(
            name=profile.service_name,
            description=f"{profile.display_name} (Wine + SteamCMD)",
            executable_path=profile.startup_script_path,
            environment={'UPDATE_ON_START': 'true' if request.update_on_start else 'false'},
            restart_delay_seconds=request.restart_interval_seconds,
        )

    @property
    def unit_name(self) -> str:
        return f"{self.name}.service"

    @property
    def path(self) -> str:
        return f"{UNIT_DIR}/{self.unit_name}"

    def sections(self) -> List[Tuple[str, List[Tuple[str, str]]]]:
        """Unit file content as ordered (section, [(key, value)]) pairs."""
        service = [('Type', 'simple')]
        service += [('Environment', f'{key}={value}') for key, value in sorted(self.environment.items())]
        service += [
            ('ExecStart', self.executable_path),
            ('Restart', self.restart_policy),
            ('RestartSec', str(self.restart_delay_seconds)),
            ('KillSignal', self.shutdown_signal),
            ('TimeoutStopSec', str(self.shutdown_timeout_seconds)),
        ]
        return [
            ('Unit', [
                ('Description', self.description),
                ('After', 'network-online.target'),
                ('Wants', 'network-online.target'),
            ]),
            ('Service', service),
            ('Install', [('WantedBy', 'multi-user.target')]),
        ]

    def render(self) -> str:
        b = ScriptBuilder()
        for name, entries in self.sections():
            b.blank()
            b.line(f'[{name}]')
            for key, value in entries:
                b.line(f'{key}={value}')
        return b.render()

    def activation_script(self) -> str:
        """Reload units and (re)start the service; safe to repeat."""
        return ScriptBuilder().lines(
            "set -e",
            "systemctl daemon-reload",
            f"systemctl enable {self.unit_name}",
            f"systemctl restart {self.unit_name}",
        ).render()
