"""Shared configuration loader for the inscription testbed."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".inscription-testbed.yaml"

DEFAULT_NODE_URL = "http://localhost:8000/proxy"
DEFAULT_SIGNER_URL = "http://localhost:4943/signer"
DEFAULT_FUNDING_AMOUNT = Decimal("1")
DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass
class NodeConfig:
    """Connection details for the regtest node's JSON-RPC endpoint."""

    user: str
    password: str
    url: str = DEFAULT_NODE_URL


@dataclass
class SignerConfig:
    """Connection details for the custodial signer service."""

    url: str = DEFAULT_SIGNER_URL
    user: str | None = None
    password: str | None = None

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.user and self.password:
            return (self.user, self.password)
        return None


@dataclass
class WorkflowConfig:
    """Everything the workflow needs, resolved once at startup."""

    node: NodeConfig
    signer: SignerConfig = field(default_factory=SignerConfig)
    funding_amount: Decimal = DEFAULT_FUNDING_AMOUNT
    fee_rate: int | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object")
    return loaded


def _section(file_config: Mapping[str, Any], name: str, path: Path) -> dict[str, Any]:
    section = file_config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected '{name}' to be a mapping in {path}")
    return section


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _validate_url(raw: str, *, source: str) -> str:
    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ConfigurationError(f"Invalid {source} URL: {raw}")
    return raw.rstrip("/")


def _coerce_amount(raw: Any, *, source: str) -> Decimal | None:
    if raw is None:
        return None
    try:
        amount = Decimal(str(raw))
    except InvalidOperation as exc:
        raise ConfigurationError(f"Invalid funding amount in {source}: {raw}") from exc
    if not amount.is_finite() or amount <= 0:
        raise ConfigurationError(f"Funding amount in {source} must be positive: {raw}")
    return amount


def _coerce_fee_rate(raw: Any, *, source: str) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
            raise ValueError(raw)
        rate = int(raw)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ConfigurationError(f"Invalid fee rate in {source}: {raw}") from exc
    if rate <= 0:
        raise ConfigurationError(f"Fee rate in {source} must be positive: {raw}")
    return rate


def _coerce_timeout(raw: Any, *, source: str) -> float | None:
    if raw is None:
        return None
    try:
        timeout = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid request timeout in {source}: {raw}") from exc
    if timeout <= 0:
        raise ConfigurationError(f"Request timeout in {source} must be positive: {raw}")
    return timeout


def load_testbed_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> WorkflowConfig:
    """Load testbed configuration from environment variables and optional YAML.

    Precedence is ``overrides`` > environment > YAML file > defaults. The YAML
    file may carry ``node``, ``signer`` and ``testbed`` sections::

        node:
          url: http://localhost:8000/proxy
          user: icp
          password: test
        signer:
          url: http://localhost:4943/signer
        testbed:
          funding_amount: 1
          fee_rate: 10
    """

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None
    path = Path(config_path).expanduser() if explicit_path else DEFAULT_CONFIG_PATH

    file_config = _load_config_file(path, required=explicit_path)
    node_section = _section(file_config, "node", path)
    signer_section = _section(file_config, "signer", path)
    testbed_section = _section(file_config, "testbed", path)
    override_map = dict(overrides or {})

    node_user = _first_value(
        override_map.get("node_user"), env_map.get("TESTBED_NODE_USER"), node_section.get("user")
    )
    node_password = _first_value(
        override_map.get("node_password"),
        env_map.get("TESTBED_NODE_PASSWORD"),
        node_section.get("password"),
    )
    if not node_user or not node_password:
        raise ConfigurationError(
            "Node RPC credentials must be provided via TESTBED_NODE_* environment variables or a config file"
        )
    node_url = _validate_url(
        _first_value(
            override_map.get("node_url"),
            env_map.get("TESTBED_NODE_URL"),
            node_section.get("url"),
            DEFAULT_NODE_URL,
        ),
        source="node",
    )

    signer = SignerConfig(
        url=_validate_url(
            _first_value(
                override_map.get("signer_url"),
                env_map.get("TESTBED_SIGNER_URL"),
                signer_section.get("url"),
                DEFAULT_SIGNER_URL,
            ),
            source="signer",
        ),
        user=_first_value(
            override_map.get("signer_user"),
            env_map.get("TESTBED_SIGNER_USER"),
            signer_section.get("user"),
        ),
        password=_first_value(
            override_map.get("signer_password"),
            env_map.get("TESTBED_SIGNER_PASSWORD"),
            signer_section.get("password"),
        ),
    )

    funding_amount = _first_value(
        _coerce_amount(override_map.get("funding_amount"), source="overrides"),
        _coerce_amount(env_map.get("TESTBED_FUNDING_AMOUNT"), source="environment"),
        _coerce_amount(testbed_section.get("funding_amount"), source=f"{path} testbed.funding_amount"),
        DEFAULT_FUNDING_AMOUNT,
    )
    fee_rate = _first_value(
        _coerce_fee_rate(override_map.get("fee_rate"), source="overrides"),
        _coerce_fee_rate(env_map.get("TESTBED_FEE_RATE"), source="environment"),
        _coerce_fee_rate(testbed_section.get("fee_rate"), source=f"{path} testbed.fee_rate"),
    )
    request_timeout = _first_value(
        _coerce_timeout(override_map.get("request_timeout"), source="overrides"),
        _coerce_timeout(env_map.get("TESTBED_REQUEST_TIMEOUT"), source="environment"),
        _coerce_timeout(
            testbed_section.get("request_timeout"), source=f"{path} testbed.request_timeout"
        ),
        DEFAULT_REQUEST_TIMEOUT,
    )

    return WorkflowConfig(
        node=NodeConfig(user=node_user, password=node_password, url=node_url),
        signer=signer,
        funding_amount=funding_amount,
        fee_rate=fee_rate,
        request_timeout=request_timeout,
    )
