"""Client for the custodial signer that owns the deposit key.

The signer derives the P2PKH deposit address, reports its balance, and builds,
signs and broadcasts the commit/reveal pair for an inscription. The testbed
never sees the key; it only speaks JSON-RPC to the service.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from .config import SignerConfig, WorkflowConfig
from .rpc_client import JSONRPCClient, RPCError

logger = logging.getLogger(__name__)


class SignerError(RuntimeError):
    """Raised when the signer rejects a request or replies with nonsense."""


class SignerClient(JSONRPCClient):
    """Typed wrapper over the signer's address, balance and inscribe methods."""

    def __init__(self, config: SignerConfig, *, timeout: float = 30.0) -> None:
        super().__init__(config.url, config.auth, timeout=timeout)
        self.config = config

    @classmethod
    def from_config(cls, config: WorkflowConfig) -> "SignerClient":
        return cls(config.signer, timeout=config.request_timeout)

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        try:
            return super().call(method, params)
        except RPCError as exc:
            raise SignerError(f"Signer rejected {method}: {exc.message} (code {exc.code})") from exc

    def get_p2pkh_address(self) -> str:
        address = self.call("get_p2pkh_address")
        if not isinstance(address, str) or not address:
            raise SignerError(f"Signer returned an invalid address: {address!r}")
        return address

    def get_balance(self, address: str) -> int:
        """Return the balance of ``address`` in sats.

        Large unsigned values may arrive as decimal strings, so both JSON
        integers and digit strings are accepted.
        """

        raw = self.call("get_balance", [address])
        if isinstance(raw, bool):
            raise SignerError(f"Signer returned an invalid balance: {raw!r}")
        if isinstance(raw, int):
            return raw
        if isinstance(raw, str) and raw.strip().isdigit():
            return int(raw.strip())
        raise SignerError(f"Signer returned an invalid balance: {raw!r}")

    def inscribe(
        self,
        mime_type: str,
        content: str,
        recipient: Sequence[str] = (),
        fee_rate: Sequence[int] = (),
    ) -> Any:
        """Submit an inscription.

        ``recipient`` and ``fee_rate`` are optional slots encoded as zero- or
        one-element lists; empty lists let the signer apply its defaults (its
        own address and 10 sat/vB).
        """

        logger.debug(
            "Submitting %s inscription (%d chars) recipient=%s fee_rate=%s",
            mime_type,
            len(content),
            list(recipient),
            list(fee_rate),
        )
        return self.call("inscribe", [mime_type, content, list(recipient), list(fee_rate)])
