"""Inscription workflow orchestrator.

The orchestrator sequences the testbed's dependent steps: derive the custodial
deposit address, fund it from the node wallet, confirm by mining, refresh the
balance, and submit inscriptions followed by a confirming block.

Every public operation is a coroutine that returns a :class:`StepResult`.
Collaborator failures are logged and reported in the result; they never
propagate to the caller. The node and signer adapters are blocking (they use
``requests``), so each call is handed to a worker thread with
:func:`asyncio.to_thread` and the event loop stays responsive.

Composite operations are fixed sequential chains without compensation:

* ``request_funding``: ``sendtoaddress`` -> ``mine_block`` -> ``fetch_balance``
* ``submit_inscription``: ``inscribe`` -> ``mine_block``

If a later link fails the earlier effect stays in place on the node and the
balance is left marked stale until the caller refreshes it manually.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Protocol, Sequence

from .config import WorkflowConfig
from .inscriptions import (
    InscriptionReceipt,
    InscriptionRequest,
    UnknownContentTypeError,
)
from .rpc_client import RPCError, RPCTransportError, format_rpc_hint
from .signer import SignerError
from .state import SessionPhase, SessionState

logger = logging.getLogger(__name__)

BLOCKS_PER_MINE = 1

BALANCE = "balance"
INSCRIBING = "inscribing"

STEP_ERRORS = (RPCError, RPCTransportError, SignerError, ValueError, TypeError)


class NodeRPC(Protocol):
    def getblockcount(self) -> int: ...

    def getnewaddress(self) -> str: ...

    def generatetoaddress(self, nblocks: int, address: str) -> Sequence[str]: ...

    def sendtoaddress(self, address: str, amount: Any) -> str: ...


class Signer(Protocol):
    def get_p2pkh_address(self) -> str: ...

    def get_balance(self, address: str) -> int: ...

    def inscribe(
        self, mime_type: str, content: str, recipient: Sequence[str], fee_rate: Sequence[int]
    ) -> Any: ...


@dataclass
class StepResult:
    """Outcome of one workflow step.

    ``skipped`` marks a precondition guard or a busy action; neither is an
    error. ``chain`` holds the results of follow-up steps a composite
    operation ran after its own work succeeded.
    """

    step: str
    ok: bool
    value: Any = None
    error: str | None = None
    skipped: bool = False
    chain: List["StepResult"] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.ok and all(link.completed for link in self.chain)

    @classmethod
    def success(cls, step: str, value: Any = None, chain: List["StepResult"] | None = None) -> "StepResult":
        return cls(step=step, ok=True, value=value, chain=list(chain or []))

    @classmethod
    def failure(cls, step: str, error: str) -> "StepResult":
        return cls(step=step, ok=False, error=error)

    @classmethod
    def skip(cls, step: str, reason: str) -> "StepResult":
        return cls(step=step, ok=False, error=reason, skipped=True)


def _describe(exc: BaseException) -> str:
    hint = format_rpc_hint(exc) if isinstance(exc, RPCError) else None
    return f"{exc} (hint: {hint})" if hint else str(exc)


class InscriptionWorkflow:
    """Run the testbed steps against a node and a custodial signer.

    ``balance`` and ``inscribing`` are exclusive actions: the in-flight token
    is checked and taken with no ``await`` in between, so on one event loop a
    second caller reliably sees the first one's token and is skipped without
    touching the signer. The matching loading flag in ``state`` mirrors the
    token for the presentation layer.
    """

    def __init__(
        self,
        node: NodeRPC,
        signer: Signer,
        config: WorkflowConfig,
        state: SessionState | None = None,
    ) -> None:
        self.node = node
        self.signer = signer
        self.config = config
        self.state = state or SessionState()
        self._in_flight: set[str] = set()

    # Guards ----------------------------------------------------------------

    def is_busy(self, action: str) -> bool:
        return action in self._in_flight

    def _acquire(self, action: str) -> bool:
        if action in self._in_flight:
            return False
        self._in_flight.add(action)
        self.state.set_loading(action, True)
        return True

    def _release(self, action: str) -> None:
        self._in_flight.discard(action)
        self.state.set_loading(action, False)

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(func, *args)

    def _failed(self, step: str, exc: BaseException) -> StepResult:
        message = _describe(exc)
        logger.error("%s failed: %s", step, message, exc_info=logger.isEnabledFor(logging.DEBUG))
        return StepResult.failure(step, message)

    # Operations ------------------------------------------------------------

    async def initialize(self) -> List[StepResult]:
        """Populate address, node address, height and balance, best effort.

        Each step runs even when an earlier one failed; a missing signer
        address simply turns the balance step into a skipped no-op.
        """

        self.state.set_phase(SessionPhase.INITIALIZING)
        results = [await self.load_address()]
        results.append(await self.load_wallet_address())
        results.append(await self.refresh_block_height())
        results.append(await self.fetch_balance(self.state.address))
        self.state.set_phase(SessionPhase.READY)
        failed = [result.step for result in results if not result.ok and not result.skipped]
        if failed:
            logger.warning("Initialization finished with failures in: %s", ", ".join(failed))
        else:
            logger.info("Initialization complete")
        return results

    async def load_address(self) -> StepResult:
        step = "load_address"
        try:
            address = await self._run(self.signer.get_p2pkh_address)
        except STEP_ERRORS as exc:
            return self._failed(step, exc)
        self.state.set_address(address)
        logger.info("Custodial deposit address: %s", self.state.address)
        return StepResult.success(step, self.state.address)

    async def load_wallet_address(self) -> StepResult:
        step = "load_wallet_address"
        try:
            address = await self._run(self.node.getnewaddress)
        except STEP_ERRORS as exc:
            return self._failed(step, exc)
        self.state.set_wallet_address(address)
        logger.info("Node wallet address: %s", address)
        return StepResult.success(step, address)

    async def refresh_block_height(self) -> StepResult:
        step = "refresh_block_height"
        try:
            height = int(await self._run(self.node.getblockcount))
        except STEP_ERRORS as exc:
            return self._failed(step, exc)
        self.state.set_block_height(height)
        logger.info("Block height: %d", self.state.block_height)
        return StepResult.success(step, self.state.block_height)

    async def fetch_balance(self, address: str | None) -> StepResult:
        step = "fetch_balance"
        if not address:
            logger.debug("No deposit address yet; skipping balance fetch")
            return StepResult.skip(step, "no address")
        if not self._acquire(BALANCE):
            logger.debug("Balance fetch already in progress; skipping")
            return StepResult.skip(step, "balance fetch already in progress")
        try:
            balance = await self._run(self.signer.get_balance, address)
            self.state.set_balance(balance)
        except STEP_ERRORS as exc:
            return self._failed(step, exc)
        finally:
            self._release(BALANCE)
        logger.info("Balance of %s: %d sats", address, balance)
        return StepResult.success(step, balance)

    async def mine_block(self) -> StepResult:
        """Mine one block to the node's own address, then refresh the height."""

        step = "mine_block"
        target = self.state.wallet_address
        if not target:
            logger.error("%s failed: node wallet address is not known", step)
            return StepResult.failure(step, "node wallet address is not known")
        try:
            block_hashes = await self._run(self.node.generatetoaddress, BLOCKS_PER_MINE, target)
        except STEP_ERRORS as exc:
            return self._failed(step, exc)
        logger.info("Mined block(s): %s", ", ".join(block_hashes) or "<none reported>")
        refreshed = await self.refresh_block_height()
        if not refreshed.ok:
            return StepResult.failure(step, f"block mined but height refresh failed: {refreshed.error}")
        return StepResult.success(step, self.state.block_height)

    async def request_funding(self, address: str | None) -> StepResult:
        """Send the configured amount from the node wallet to ``address``.

        A successful transfer is followed by one mined block and a balance
        refresh. When mining fails the balance is not refreshed; it stays
        marked stale and the node still holds the unconfirmed transfer.
        """

        step = "request_funding"
        if not address:
            logger.debug("No deposit address yet; skipping funding")
            return StepResult.skip(step, "no address")
        try:
            txid = await self._run(self.node.sendtoaddress, address, self.config.funding_amount)
        except STEP_ERRORS as exc:
            return self._failed(step, exc)
        logger.info("Funded %s with %s: %s", address, self.config.funding_amount, txid)
        self.state.mark_balance_stale()

        mined = await self.mine_block()
        if not mined.ok:
            logger.warning("Funding %s is unconfirmed; balance left stale", txid)
            return StepResult.success(step, txid, chain=[mined])
        balance = await self.fetch_balance(address)
        return StepResult.success(step, txid, chain=[mined, balance])

    async def submit_inscription(self, request: InscriptionRequest) -> StepResult:
        """Hand an inscription to the signer and confirm it with one block."""

        step = "submit_inscription"
        try:
            mime_type = request.mime_type
        except UnknownContentTypeError as exc:
            return self._failed(step, exc)
        if not self._acquire(INSCRIBING):
            logger.debug("Inscription already in progress; skipping")
            return StepResult.skip(step, "inscription already in progress")
        try:
            recipient = [request.recipient] if request.recipient else []
            fee_rate = [self.config.fee_rate] if self.config.fee_rate else []
            try:
                raw = await self._run(
                    self.signer.inscribe, mime_type, request.content, recipient, fee_rate
                )
                receipt = InscriptionReceipt.from_signer_result(
                    raw, mime_type=mime_type, content=request.content
                )
            except STEP_ERRORS as exc:
                return self._failed(step, exc)
            logger.info(
                "Inscription submitted: commit=%s reveal=%s", receipt.commit_txid, receipt.reveal_txid
            )
            self.state.append_transaction(receipt)
            self.state.mark_balance_stale()
            mined = await self.mine_block()
            if not mined.ok:
                logger.warning("Inscription %s is unconfirmed", receipt.reveal_txid)
            return StepResult.success(step, receipt, chain=[mined])
        finally:
            self._release(INSCRIBING)
