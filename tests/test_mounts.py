"""Tests for persistent storage mounts."""
from starlxc.core.runner import CommandResult
from starlxc.models.container import ContainerHandle, ContainerState, MountSpec
from starlxc.models.profile import STARRUPTURE
from starlxc.services.proxmox.containers import MountManager


def test_profile_mount_layout(tmp_path):
    specs = STARRUPTURE.mount_specs(tmp_path)

    assert specs == [
        MountSpec(str(tmp_path / "server"), "/share/starrupture/server"),
        MountSpec(str(tmp_path / "savegame"), "/share/starrupture/savegame"),
    ]
    assert specs[0].pct_value() == f"{tmp_path / 'server'},mp=/share/starrupture/server"


def test_ensure_mounts_creates_dirs_and_binds(fake_runner, tmp_path):
    specs = STARRUPTURE.mount_specs(tmp_path / "srv")
    handle = ContainerHandle(105, ContainerState.STOPPED)

    assert MountManager(fake_runner).ensure_mounts(handle, specs) is True

    assert (tmp_path / "srv" / "server").is_dir()
    assert (tmp_path / "srv" / "savegame").is_dir()
    assert [c.cmd for c in fake_runner.find('pct', 'set')] == [
        ['pct', 'set', '105', '-mp0', specs[0].pct_value()],
        ['pct', 'set', '105', '-mp1', specs[1].pct_value()],
    ]


def test_existing_mounts_left_alone(fake_runner, tmp_path):
    specs = STARRUPTURE.mount_specs(tmp_path)
    fake_runner.respond(('pct', 'config'), CommandResult(0, (
        f"mp0: {specs[0].host_path},mp={specs[0].container_path}\n"
        f"mp1: {specs[1].host_path},mp={specs[1].container_path}\n"
    )))

    assert MountManager(fake_runner).ensure_mounts(ContainerHandle(105), specs) is True
    assert fake_runner.find('pct', 'set') == []


def test_ensure_host_dirs_is_repeatable(fake_runner, tmp_path):
    specs = STARRUPTURE.mount_specs(tmp_path)
    manager = MountManager(fake_runner)

    assert manager.ensure_host_dirs(specs) is True
    (tmp_path / "savegame" / "world.sav").write_text("data")
    assert manager.ensure_host_dirs(specs) is True

    assert (tmp_path / "savegame" / "world.sav").read_text() == "data"
    assert fake_runner.calls == []


def test_host_dir_failure_reported(fake_runner, tmp_path):
    blocker = tmp_path / "srv"
    blocker.write_text("not a directory")

    assert MountManager(fake_runner).ensure_host_dirs(STARRUPTURE.mount_specs(blocker)) is False


def test_bind_failure_stops(fake_runner, tmp_path):
    fake_runner.respond(('pct', 'set'), CommandResult(255, "unable to parse mount point"))
    specs = STARRUPTURE.mount_specs(tmp_path)

    assert MountManager(fake_runner).ensure_mounts(ContainerHandle(105), specs) is False
    assert len(fake_runner.find('pct', 'set')) == 1
