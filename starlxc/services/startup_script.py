"""Startup script generation.

The script the systemd unit runs is a small linear pipeline:

1. update the server with SteamCMD, retrying with linear backoff,
2. point the save directory at the persistent save mount,
3. check the server executable exists,
4. exec the server under Wine inside a virtual display.

The script body is a pure function of the ProvisionRequest and the
ServerProfile, so re-running provisioning always produces the same file.
"""
import shlex
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from starlxc.models.profile import STARRUPTURE, ServerProfile
from starlxc.models.request import ProvisionRequest
from starlxc.services.script_builder import ScriptBuilder


@dataclass(frozen=True)
class UpdateRetryPolicy:
    """Bounded retry with linear backoff for the update step.

    With the defaults an always-failing update runs 6 times and waits
    5, 10, 15, 20 and 25 seconds between attempts; there is no wait after the
    last attempt.
    """
    attempts: int = 6
    backoff_step: int = 5

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.backoff_step < 0:
            raise ValueError("backoff_step cannot be negative")

    def delay_after(self, attempt: int) -> Optional[int]:
        """Seconds to wait after a failed attempt, or None when none are left."""
        if attempt >= self.attempts:
            return None
        return self.backoff_step * attempt

    def delays(self) -> List[int]:
        return [self.delay_after(n) for n in range(1, self.attempts)]


@dataclass(frozen=True)
class UpdateStep:
    steamcmd: str
    app_id: int
    policy: UpdateRetryPolicy = field(default_factory=UpdateRetryPolicy)
    # Leftovers of an interrupted download, relative to the server dir
    scratch_dirs: Tuple[str, ...] = ('steamapps/downloading', 'steamapps/temp')

    def command_args(self) -> List[str]:
        """SteamCMD arguments; $SERVER_DIR and $STEAMAPPID are expanded by the script."""
        return [
            '+@ShutdownOnFailedCommand', '1',
            '+@NoPromptForPassword', '1',
            '+@sSteamCmdForcePlatformType', 'windows',
            '+force_install_dir', '"$SERVER_DIR"',
            '+login', 'anonymous',
            '+app_update', '"$STEAMAPPID"', 'validate',
            '+quit',
        ]


@dataclass(frozen=True)
class SaveLinkStep:
    parent: str  # relative to the server dir
    link_name: str
    target: str

    @property
    def link_path(self) -> str:
        return f"{self.parent}/{self.link_name}"


@dataclass(frozen=True)
class LaunchStep:
    executable: str  # relative to the server dir
    search_pattern: str
    arguments: Tuple[str, ...]
    search_depth: int = 6
    listing_limit: int = 20


def launch_arguments(request: ProvisionRequest) -> List[str]:
    """Server command line: bind port and address, plus opted-in extra ports."""
    args = ['-Log', f'-port={request.server_port}', f'-multihome={request.server_bind_address}']
    if request.optional_ports is not None:
        args.append(f'-QueryPort={request.optional_ports.query_port}')
        args.append(f'-BeaconPort={request.optional_ports.beacon_port}')
    return args


@dataclass(frozen=True)
class StartupScript:
    profile: ServerProfile
    update_on_start: bool
    update: UpdateStep
    save_link: SaveLinkStep
    launch: LaunchStep

    @classmethod
    def from_request(cls, request: ProvisionRequest,
                     profile: ServerProfile = STARRUPTURE) -> "StartupScript":
        return cls(
            profile=profile,
            update_on_start=request.update_on_start,
            update=UpdateStep(steamcmd=profile.steamcmd, app_id=profile.steam_app_id),
            save_link=SaveLinkStep(
                parent=f"{profile.game_dir}/Saved",
                link_name="SaveGames",
                target=profile.container_save_dir,
            ),
            launch=LaunchStep(
                executable=profile.executable,
                search_pattern=profile.executable_pattern,
                arguments=tuple(launch_arguments(request)),
            ),
        )

    @property
    def path(self) -> str:
        return self.profile.startup_script_path

    def render(self) -> str:
        """Render the bash script.

        `main` only runs when the file is executed, so the helper functions
        can be sourced on their own.
        """
        b = ScriptBuilder()
        self._render_header(b)
        b.blank()
        self._render_update(b)
        b.blank()
        self._render_save_link(b)
        b.blank()
        self._render_exe_guard(b)
        b.blank()
        self._render_main(b)
        b.blank()
        with b.block('if [ "${BASH_SOURCE[0]}" = "$0" ]; then', 'fi'):
            b.line('main "$@"')
        return b.render()

    def _render_header(self, b: ScriptBuilder) -> None:
        profile = self.profile
        default = 'true' if self.update_on_start else 'false'
        b.lines(
            '#!/usr/bin/env bash',
            f'# {profile.display_name} startup script (generated by starlxc).',
            '# Re-run provisioning to change it; local edits are overwritten.',
            'set -euo pipefail',
        )
        b.blank()
        b.lines(
            f'STEAMAPPID={self.update.app_id}',
            # The unit's Environment= (or systemctl set-environment) wins over the default
            f'UPDATE_ON_START="${{UPDATE_ON_START:-{default}}}"',
            f'UPDATE_ATTEMPTS={self.update.policy.attempts}',
            f'UPDATE_BACKOFF_STEP={self.update.policy.backoff_step}',
        )
        b.blank()
        b.lines(
            f'STEAMCMD={shlex.quote(self.update.steamcmd)}',
            f'SERVER_DIR={shlex.quote(profile.container_server_dir)}',
            f'SAVE_DIR={shlex.quote(self.save_link.target)}',
            f'SAVE_PARENT="$SERVER_DIR/{self.save_link.parent}"',
            f'SAVE_LINK="$SERVER_DIR/{self.save_link.link_path}"',
            f'EXE="$SERVER_DIR/{self.launch.executable}"',
        )
        b.blank()
        b.line(f'export WINEPREFIX={shlex.quote(profile.wine_prefix)}')

    def _render_update(self, b: ScriptBuilder) -> None:
        scratch = ' '.join(f'"$SERVER_DIR/{d}"' for d in self.update.scratch_dirs)
        with b.block('steam_update_with_retry() {', '}'):
            b.lines('local n=1', 'local rc')
            with b.block('while [ "$n" -le "$UPDATE_ATTEMPTS" ]; do', 'done'):
                b.line('echo "[SteamCMD] Update attempt $n/$UPDATE_ATTEMPTS"')
                b.line(f'rm -rf {scratch} 2>/dev/null || true')
                b.blank()
                b.line('set +e')
                b.line(f'"$STEAMCMD" {" ".join(self.update.command_args())}')
                b.line('rc=$?')
                b.line('set -e')
                b.blank()
                with b.block('if [ "$rc" -eq 0 ]; then', 'fi'):
                    b.line('echo "[SteamCMD] Update OK"')
                    b.line('return 0')
                b.blank()
                with b.block('if [ "$n" -lt "$UPDATE_ATTEMPTS" ]; then', 'fi'):
                    b.line('echo "[SteamCMD] Failed (rc=$rc), retry in $((n * UPDATE_BACKOFF_STEP))s"')
                    b.line('sleep "$((n * UPDATE_BACKOFF_STEP))"')
                b.line('n=$((n + 1))')
            b.blank()
            b.line('echo "[SteamCMD] Update FAILED after $UPDATE_ATTEMPTS attempts" >&2')
            b.line('return 1')

    def _render_save_link(self, b: ScriptBuilder) -> None:
        with b.block('link_save_dir() {', '}'):
            b.line('mkdir -p "$SAVE_DIR" "$SAVE_PARENT"')
            b.line('rm -rf "$SAVE_LINK"')
            b.line('ln -s "$SAVE_DIR" "$SAVE_LINK"')

    def _render_exe_guard(self, b: ScriptBuilder) -> None:
        launch = self.launch
        with b.block('require_server_exe() {', '}'):
            with b.block('if [ ! -f "$EXE" ]; then', 'fi'):
                b.line('echo "[ERROR] EXE not found at $EXE" >&2')
                b.line('echo "[ERROR] Candidates under $SERVER_DIR:" >&2')
                b.line(
                    f'find "$SERVER_DIR" -maxdepth {launch.search_depth} -type f '
                    f'-iname {shlex.quote(launch.search_pattern)} 2>/dev/null '
                    f'| head -n {launch.listing_limit} >&2 || true'
                )
                b.line('return 1')

    def _render_main(self, b: ScriptBuilder) -> None:
        args = ' '.join(shlex.quote(arg) for arg in self.launch.arguments)
        with b.block('main() {', '}'):
            b.line('mkdir -p "$SERVER_DIR" "$SAVE_DIR" "$WINEPREFIX"')
            b.blank()
            b.lines(
                'if [ "$UPDATE_ON_START" = "true" ]; then',
                '  steam_update_with_retry || exit 1',
                'else',
                '  echo "[SteamCMD] Skipping update"',
                'fi',
            )
            b.blank()
            b.line('link_save_dir')
            b.line('require_server_exe || exit 1')
            b.blank()
            b.line(f'echo "[{self.profile.game_dir}] Starting server via Wine"')
            b.line(f'exec xvfb-run --auto-servernum wine "$EXE" {args}')
