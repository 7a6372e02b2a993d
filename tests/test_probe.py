"""Tests for environment probing."""
from starlxc.core.runner import CommandResult, HostCommandRunner
from starlxc.services.proxmox.probe import EnvironmentProbe

PVESM_ROOTDIR = (
    "Name             Type     Status           Total            Used       Available        %\n"
    "local-zfs     zfspool     active       447127552        16285312       430842240    3.64%\n"
    "tank          zfspool     active      3770678272      1145798656      2624879616   30.39%\n"
)

IP_LINK = (
    "1: lo: <LOOPBACK,UP,LOWER_UP> mtu 65536 qdisc noqueue state UNKNOWN mode DEFAULT\n"
    "2: enp3s0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc pfifo_fast master vmbr0\n"
    "3: vmbr0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc noqueue state UP\n"
    "4: vmbr1: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc noqueue state UP\n"
    "5: vmbr0v20@enp3s0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc noqueue\n"
    "6: veth105i0@if2: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc noqueue master vmbr0\n"
)


class TestStoragePools:
    def test_lists_rootdir_pools_in_order(self, fake_runner):
        fake_runner.respond(('pvesm', 'status'), CommandResult(0, PVESM_ROOTDIR))
        probe = EnvironmentProbe(fake_runner)

        assert probe.list_storage_pools() == [
            {'name': 'local-zfs', 'type': 'zfspool'},
            {'name': 'tank', 'type': 'zfspool'},
        ]
        assert fake_runner.commands == [['pvesm', 'status', '-content', 'rootdir']]

    def test_detect_picks_first_pool(self, fake_runner):
        fake_runner.respond(('pvesm', 'status'), CommandResult(0, PVESM_ROOTDIR))
        assert EnvironmentProbe(fake_runner).detect_storage_pool() == "local-zfs"

    def test_detect_falls_back_to_local_lvm(self, fake_runner):
        fake_runner.respond(('pvesm', 'status'), CommandResult(1, "permission denied"))
        assert EnvironmentProbe(fake_runner).detect_storage_pool() == "local-lvm"


class TestBridges:
    def test_only_vmbr_bridges_listed(self, fake_runner):
        fake_runner.respond(('ip', '-o', 'link', 'show'), CommandResult(0, IP_LINK))

        assert EnvironmentProbe(fake_runner).list_network_bridges() == ['vmbr0', 'vmbr1']

    def test_detect_falls_back_to_vmbr0(self, fake_runner):
        fake_runner.respond(('ip',), CommandResult(0, "1: lo: <LOOPBACK,UP> mtu 65536\n"))
        assert EnvironmentProbe(fake_runner).detect_network_bridge() == "vmbr0"


class TestNextContainerId:
    def test_reads_cluster_nextid(self, fake_runner):
        fake_runner.respond(('pvesh', 'get', '/cluster/nextid'), CommandResult(0, '"107"\n'))
        assert EnvironmentProbe(fake_runner).next_container_id() == 107

    def test_falls_back_to_100(self, fake_runner):
        fake_runner.respond(('pvesh',), CommandResult(255, "ipcc_send_rec failed"))
        assert EnvironmentProbe(fake_runner).next_container_id() == 100

    def test_mock_runner_yields_defaults(self):
        probe = EnvironmentProbe(HostCommandRunner(mock=True))

        assert probe.detect_storage_pool() == "local-lvm"
        assert probe.detect_network_bridge() == "vmbr0"
        assert probe.next_container_id() == 100
