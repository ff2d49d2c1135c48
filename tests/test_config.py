from __future__ import annotations

import dataclasses

import pytest

from pyrtls.config import RtlsConfig
from pyrtls.exceptions import RtlsConfigError


def test_api_key_credential() -> None:
    config = RtlsConfig(namespace="ns", api_key="k")
    assert config.credential == ("apiKey", "k")
    assert config.reconnect_interval == 5.0
    assert config.max_reconnect_delay == 30.0


def test_token_credential() -> None:
    assert RtlsConfig(namespace="ns", token="jwt").credential == ("token", "jwt")


def test_credential_required() -> None:
    with pytest.raises(RtlsConfigError, match="api_key or token"):
        RtlsConfig(namespace="ns")


def test_credentials_mutually_exclusive() -> None:
    with pytest.raises(RtlsConfigError, match="not both"):
        RtlsConfig(namespace="ns", api_key="k", token="t")


@pytest.mark.parametrize("namespace", ["", "   "])
def test_namespace_required(namespace: str) -> None:
    with pytest.raises(RtlsConfigError, match="namespace"):
        RtlsConfig(namespace=namespace, api_key="k")


def test_invalid_timing_rejected() -> None:
    with pytest.raises(RtlsConfigError):
        RtlsConfig(namespace="ns", api_key="k", connection_timeout=0)
    with pytest.raises(RtlsConfigError):
        RtlsConfig(namespace="ns", api_key="k", reconnect_multiplier=0.5)


def test_reconnection_strategy_reflects_settings() -> None:
    config = RtlsConfig(namespace="ns", api_key="k", reconnect_interval=1.0, max_reconnect_attempts=3)
    strategy = config.reconnection_strategy
    assert strategy.base_interval == 1.0
    assert strategy.max_attempts == 3


def test_config_is_frozen() -> None:
    config = RtlsConfig(namespace="ns", api_key="k")
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.namespace = "other"  # type: ignore[misc]


def test_credential_without_any_key_raises() -> None:
    config = RtlsConfig(namespace="ns", api_key="k")
    object.__setattr__(config, "api_key", None)

    with pytest.raises(RtlsConfigError):
        config.credential  # noqa: B018
