"""Tests for the ProvisionRequest model."""
import pytest
from pydantic import ValidationError

from starlxc.models.request import Mode, OptionalPorts, ProvisionRequest


def _create(**overrides):
    fields = {
        'container_id': 105,
        'storage_pool': 'local-lvm',
        'network_bridge': 'vmbr0',
        'static_address_cidr': '10.0.0.5/24',
        'gateway': '10.0.0.1',
    }
    fields.update(overrides)
    return ProvisionRequest(**fields)


class TestDefaults:
    def test_create_defaults(self):
        request = _create()

        assert request.mode == Mode.CREATE
        assert request.container_name == "starrupture"
        assert request.cores == 2
        assert request.memory_mb == 4096
        assert request.disk_gb == 16
        assert request.unprivileged is True
        assert request.server_bind_address == "192.168.1.208"
        assert request.server_port == 7777
        assert request.optional_ports is None
        assert request.update_on_start is True
        assert request.restart_interval_seconds == 10
        assert request.is_create

    def test_optional_port_defaults(self):
        ports = OptionalPorts()
        assert ports.query_port == 27015
        assert ports.beacon_port == 7778

    def test_request_is_immutable(self):
        request = _create()
        with pytest.raises(ValidationError):
            request.server_port = 7800


class TestModeRules:
    def test_create_requires_network_and_storage(self):
        with pytest.raises(ValidationError) as exc_info:
            ProvisionRequest(container_id=105)

        message = str(exc_info.value)
        assert "Create mode requires" in message
        assert "storage_pool" in message
        assert "gateway" in message

    def test_repair_needs_only_container_id(self):
        request = ProvisionRequest(mode="repair", container_id=105)

        assert request.mode == Mode.REPAIR
        assert not request.is_create
        assert request.storage_pool is None

    def test_container_id_must_be_positive(self):
        with pytest.raises(ValidationError):
            ProvisionRequest(mode="repair", container_id=0)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            ProvisionRequest(mode="repair", container_id=105, ram=4096)


class TestUnprivilegedFlag:
    @pytest.mark.parametrize("value,expected", [
        (1, True), ("1", True), (True, True),
        (0, False), ("0", False), (False, False),
    ])
    def test_accepted_encodings(self, value, expected):
        assert _create(unprivileged=value).unprivileged is expected

    @pytest.mark.parametrize("value", [2, "yes", "", -1])
    def test_other_values_rejected(self, value):
        with pytest.raises(ValidationError) as exc_info:
            _create(unprivileged=value)
        assert "unprivileged must be 0 or 1" in str(exc_info.value)


class TestAddresses:
    def test_cidr_requires_prefix(self):
        with pytest.raises(ValidationError) as exc_info:
            _create(static_address_cidr="10.0.0.5")
        assert "prefix length" in str(exc_info.value)

    def test_invalid_cidr_rejected(self):
        with pytest.raises(ValidationError):
            _create(static_address_cidr="10.0.0.300/24")

    def test_invalid_gateway_rejected(self):
        with pytest.raises(ValidationError):
            _create(gateway="gateway.lan")

    def test_invalid_bind_address_rejected(self):
        with pytest.raises(ValidationError):
            _create(server_bind_address="10.0.0")

    @pytest.mark.parametrize("cidr", ["10.0.0.5/255.255.255.0", "10.0.0.5/", "fd00::5/64"])
    def test_cidr_must_be_ipv4_with_prefix(self, cidr):
        with pytest.raises(ValidationError):
            _create(static_address_cidr=cidr)

    def test_ipv6_gateway_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _create(gateway="fd00::1")
        assert "Invalid IPv4 gateway" in str(exc_info.value)

    def test_gateway_outside_network_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _create(static_address_cidr="10.0.0.5/24", gateway="192.168.1.1")
        assert "outside 10.0.0.0/24" in str(exc_info.value)

    def test_gateway_cannot_be_own_address(self):
        with pytest.raises(ValidationError):
            _create(static_address_cidr="10.0.0.5/24", gateway="10.0.0.5")

    def test_gateway_in_wider_network(self):
        request = _create(static_address_cidr="10.0.5.5/16", gateway="10.0.0.1")
        assert request.gateway == "10.0.0.1"

    @pytest.mark.parametrize("port", [0, 65536])
    def test_port_range(self, port):
        with pytest.raises(ValidationError):
            _create(server_port=port)


class TestContainerName:
    def test_name_is_stripped(self):
        assert _create(container_name=" starrupture-2 ").container_name == "starrupture-2"

    @pytest.mark.parametrize("name", ["", "star_rupture", "-star", "star-", "a" * 64])
    def test_invalid_hostnames(self, name):
        with pytest.raises(ValidationError):
            _create(container_name=name)
