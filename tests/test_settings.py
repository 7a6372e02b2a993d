"""Tests for environment-driven runtime settings."""
from pathlib import Path

import pytest

from starlxc.core.config import ProvisionSettings
from starlxc.core.errors import PreconditionError


def test_defaults(monkeypatch):
    for name in ('STARLXC_SETTLE_DELAY', 'STARLXC_HOST_BASE', 'STARLXC_LOCK_FILE', 'STARLXC_LOG_FILE', 'STARLXC_MOCK'):
        monkeypatch.delenv(name, raising=False)

    settings = ProvisionSettings.from_env()

    assert settings.settle_delay_seconds == 3.0
    assert settings.host_base == Path("/srv/starrupture")
    assert settings.mock is False


def test_values_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv('STARLXC_SETTLE_DELAY', '0.5')
    monkeypatch.setenv('STARLXC_HOST_BASE', str(tmp_path))
    monkeypatch.setenv('STARLXC_MOCK', 'true')

    settings = ProvisionSettings.from_env()

    assert settings.settle_delay_seconds == 0.5
    assert settings.host_base == tmp_path
    assert settings.mock is True


@pytest.mark.parametrize("value", ["abc", "", "-1"])
def test_bad_settle_delay(monkeypatch, value):
    monkeypatch.setenv('STARLXC_SETTLE_DELAY', value)

    with pytest.raises(PreconditionError) as exc_info:
        ProvisionSettings.from_env()
    assert "STARLXC_SETTLE_DELAY" in str(exc_info.value)
