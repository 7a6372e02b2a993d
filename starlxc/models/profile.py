"""Fixed layout of the StarRupture server inside and outside the container."""
from dataclasses import dataclass
from pathlib import Path
from typing import List

from starlxc.models.container import MountSpec


@dataclass(frozen=True)
class ServerProfile:
    """Game constants and fixed paths.

    Server binaries and save data live on host storage bound into the
    container, so reinstalling or rebuilding the container keeps both.
    """

    display_name: str = "StarRupture Dedicated Server"
    service_name: str = "starrupture"
    steam_app_id: int = 3809400

    # Container paths
    container_server_dir: str = "/share/starrupture/server"
    container_save_dir: str = "/share/starrupture/savegame"
    startup_script_path: str = "/start.sh"
    wine_prefix: str = "/opt/wineprefix"

    # Update client
    steamcmd_dir: str = "/opt/steamcmd"
    steamcmd_url: str = "https://steamcdn-a.akamaihd.net/client/installer/steamcmd_linux.tar.gz"

    # Layout of the installed server (relative to the server dir)
    game_dir: str = "StarRupture"
    executable: str = "StarRupture/Binaries/Win64/StarRuptureServerEOS-Win64-Shipping.exe"
    executable_pattern: str = "StarRuptureServerEOS*.exe"

    os_template: str = "debian-12-standard"

    @property
    def steamcmd(self) -> str:
        return f"{self.steamcmd_dir}/steamcmd.sh"

    def host_server_dir(self, host_base: Path) -> str:
        return str(Path(host_base) / "server")

    def host_save_dir(self, host_base: Path) -> str:
        return str(Path(host_base) / "savegame")

    def mount_specs(self, host_base: Path) -> List[MountSpec]:
        """Server tree first (mp0), savegame tree second (mp1)."""
        return [
            MountSpec(self.host_server_dir(host_base), self.container_server_dir),
            MountSpec(self.host_save_dir(host_base), self.container_save_dir),
        ]


STARRUPTURE = ServerProfile()
