"""JSON-RPC client for the regtest node behind the testbed proxy.

The same transport is shared with :mod:`inscription_testbed.signer`, which
reaches the custodial signer over JSON-RPC as well. Nothing here knows about
the workflow; the helpers forward well-typed requests and surface errors
clearly so the orchestrator can decide what to log.
"""

from __future__ import annotations

import json
import logging
import uuid
from decimal import Decimal
from typing import Any, Optional

import requests
from requests import RequestException, Response

from .config import NodeConfig, WorkflowConfig

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "1.0"


class RPCError(RuntimeError):
    """Raised when the remote endpoint responds with a JSON-RPC error object."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def format_rpc_hint(error_obj: dict[str, Any] | RPCError | None) -> str | None:
    """Return a human-friendly hint for common regtest JSON-RPC errors."""

    if error_obj is None:
        return None

    code = None
    message = ""
    if isinstance(error_obj, RPCError):
        code = error_obj.code
        message = error_obj.message
    elif isinstance(error_obj, dict):
        code = error_obj.get("code")
        message = str(error_obj.get("message", ""))

    if code == -18 or "no wallet is loaded" in message.lower():
        return (
            "The node has no wallet loaded. Create or load one (createwallet/loadwallet) "
            "before requesting addresses or funding."
        )
    if code in {-4, -6} or "insufficient funds" in message.lower():
        return (
            "The node wallet cannot cover the transfer. Mine 101 blocks to the node's own "
            "address so the coinbase rewards mature, then retry."
        )
    if code == -13 or "wallet passphrase" in message.lower() or "wallet locked" in message.lower():
        return "The node wallet is locked. Unlock it with walletpassphrase, then retry."
    if code == -5 and "address" in message.lower():
        return (
            "The node rejected the address. Check that the signer and the node are both "
            "configured for the same network (regtest)."
        )
    return None


class JSONRPCClient:
    """Minimal JSON-RPC 1.0 client over HTTP with optional Basic authentication."""

    def __init__(
        self,
        url: str,
        auth: tuple[str, str] | None = None,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url
        self.auth = auth
        self.timeout = timeout
        self._session = session or requests.Session()

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Perform a JSON-RPC request and return its ``result`` member."""

        payload = {
            "jsonrpc": JSONRPC_VERSION,
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC call %s params=%s", method, params)
        try:
            response = self._session.post(
                self.url,
                data=json.dumps(payload, default=_json_default),
                headers={"content-type": "application/json"},
                auth=self.auth,
                timeout=self.timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection to %s failed: %s",
                self.url,
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                f"RPC connection to {self.url} failed. Ensure the endpoint is reachable and "
                "the TESTBED_* settings (or ~/.inscription-testbed.yaml) point to it."
            ) from exc

        error_body = self._check_status(response)
        try:
            result = response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc
        if not isinstance(result, dict):
            raise RPCTransportError("RPC server returned a non-object response")
        error = result.get("error") or error_body
        if error:
            if not isinstance(error, dict):
                raise RPCError(-1, str(error))
            raise RPCError(error.get("code", -1), error.get("message", "unknown"))
        logger.debug("RPC result %s -> %s", method, result.get("result"))
        return result.get("result")

    def _check_status(self, response: Response) -> dict[str, Any] | None:
        # Core-style nodes report JSON-RPC errors as HTTP 500 with a JSON
        # body; hand that body back so the caller raises RPCError instead.
        if response.ok:
            return None
        if response.status_code == 401:
            logger.error("RPC HTTP 401 from %s", response.url)
            raise RPCTransportError(
                "Unauthorized (401). Check the configured RPC user and password.",
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            logger.debug("RPC error body: %s", body)
            return body["error"]
        logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
        logger.error("RPC error body: %s", response.text)
        raise RPCTransportError(
            f"RPC server returned HTTP {response.status_code}; check the endpoint URL.",
            status_code=response.status_code,
        )


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class NodeRPCClient(JSONRPCClient):
    """Typed wrapper over the node methods the testbed workflow consumes."""

    def __init__(self, config: NodeConfig, *, timeout: float = 30.0) -> None:
        super().__init__(config.url, (config.user, config.password), timeout=timeout)
        self.config = config

    @classmethod
    def from_config(cls, config: WorkflowConfig) -> "NodeRPCClient":
        return cls(config.node, timeout=config.request_timeout)

    def getblockcount(self) -> int:
        return int(self.call("getblockcount"))

    def getnewaddress(self) -> str:
        return self.call("getnewaddress")

    def generatetoaddress(self, nblocks: int, address: str) -> list[str]:
        return list(self.call("generatetoaddress", [nblocks, address]) or [])

    def sendtoaddress(self, address: str, amount: Decimal | float) -> str:
        return self.call("sendtoaddress", [address, amount])
