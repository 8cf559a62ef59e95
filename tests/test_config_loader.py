from decimal import Decimal
from pathlib import Path

import pytest

from inscription_testbed import config as config_module
from inscription_testbed.config import ConfigurationError, WorkflowConfig, load_testbed_config


def test_load_config_prefers_environment_over_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        node:
          url: http://filehost:1111/proxy
          user: file_user
          password: file_pass
        signer:
          url: http://filesigner:2222
        testbed:
          funding_amount: 3
          fee_rate: 12
        """
    )

    env_map = {
        "TESTBED_NODE_USER": "env_user",
        "TESTBED_NODE_PASSWORD": "env_pass",
        "TESTBED_NODE_URL": "https://envhost:3333/proxy/",
        "TESTBED_FUNDING_AMOUNT": "0.5",
    }

    config = load_testbed_config(config_path=config_path, env=env_map)

    assert isinstance(config, WorkflowConfig)
    assert config.node.user == "env_user"
    assert config.node.password == "env_pass"
    assert config.node.url == "https://envhost:3333/proxy"
    assert config.signer.url == "http://filesigner:2222"
    assert config.signer.auth is None
    assert config.funding_amount == Decimal("0.5")
    assert config.fee_rate == 12


def test_load_config_reads_default_yaml_when_env_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / ".inscription-testbed.yaml"
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", config_path)
    config_path.write_text(
        """
        node:
          user: yaml_user
          password: yaml_pass
        signer:
          user: signer_user
          password: signer_pass
        """
    )

    config = load_testbed_config(env={})

    assert config.node.user == "yaml_user"
    assert config.node.url == "http://localhost:8000/proxy"
    assert config.signer.url == "http://localhost:4943/signer"
    assert config.signer.auth == ("signer_user", "signer_pass")
    assert config.funding_amount == Decimal("1")
    assert config.fee_rate is None
    assert config.request_timeout == 30.0


def test_overrides_win_over_environment(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("node: {user: u, password: p}\n")

    config = load_testbed_config(
        config_path=config_path,
        env={"TESTBED_FEE_RATE": "5", "TESTBED_SIGNER_URL": "http://envsigner:1"},
        overrides={"fee_rate": 40, "signer_url": "http://cli-signer:2", "request_timeout": "7.5"},
    )

    assert config.fee_rate == 40
    assert config.signer.url == "http://cli-signer:2"
    assert config.request_timeout == 7.5


def test_load_config_requires_credentials(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("node: {}\n")

    with pytest.raises(ConfigurationError):
        load_testbed_config(config_path=config_path, env={})


def test_explicit_config_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_testbed_config(config_path=tmp_path / "missing.yaml", env={})


@pytest.mark.parametrize(
    "env_key, value",
    [
        ("TESTBED_NODE_URL", "localhost:8000"),
        ("TESTBED_FUNDING_AMOUNT", "-1"),
        ("TESTBED_FUNDING_AMOUNT", "plenty"),
        ("TESTBED_FUNDING_AMOUNT", "NaN"),
        ("TESTBED_FUNDING_AMOUNT", "Infinity"),
        ("TESTBED_FEE_RATE", "0"),
        ("TESTBED_REQUEST_TIMEOUT", "never"),
    ],
)
def test_invalid_values_are_rejected(tmp_path: Path, env_key: str, value: str) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("node: {user: u, password: p}\n")

    with pytest.raises(ConfigurationError):
        load_testbed_config(config_path=config_path, env={env_key: value})


@pytest.mark.parametrize("fee_rate", ["10.7", "true"])
def test_fractional_fee_rate_in_yaml_is_rejected(tmp_path: Path, fee_rate: str) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(f"node: {{user: u, password: p}}\ntestbed: {{fee_rate: {fee_rate}}}\n")

    with pytest.raises(ConfigurationError):
        load_testbed_config(config_path=config_path, env={})


def test_integral_float_fee_rate_is_accepted(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("node: {user: u, password: p}\ntestbed: {fee_rate: 10.0}\n")

    assert load_testbed_config(config_path=config_path, env={}).fee_rate == 10


def test_missing_default_config_falls_back_to_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")

    config = load_testbed_config(env={"TESTBED_NODE_USER": "u", "TESTBED_NODE_PASSWORD": "p"})

    assert config.node.user == "u"
    assert not hasattr(config_module, "set_default_config_path")
