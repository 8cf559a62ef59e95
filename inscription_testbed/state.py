"""Observable session state shown by the presentation layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List

from .inscriptions import InscriptionReceipt

logger = logging.getLogger(__name__)


class SessionPhase(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


@dataclass
class LoadingFlags:
    balance: bool = False
    inscribing: bool = False


@dataclass
class SessionState:
    """Values gathered during one testbed session.

    ``balance`` keeps the exact integer reported by the signer;
    ``display_balance`` is the narrowed float meant for rendering only.
    Subscribers are called after every mutation.
    """

    phase: SessionPhase = SessionPhase.UNINITIALIZED
    address: str | None = None
    wallet_address: str | None = None
    balance: int | None = None
    balance_stale: bool = False
    block_height: int = 0
    transactions: List[InscriptionReceipt] = field(default_factory=list)
    loading: LoadingFlags = field(default_factory=LoadingFlags)
    _subscribers: List[Callable[["SessionState"], None]] = field(
        default_factory=list, init=False, repr=False, compare=False
    )

    def subscribe(self, callback: Callable[["SessionState"], None]) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it."""

        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception:  # pragma: no cover - a broken view must not stop the workflow
                logger.exception("State subscriber %r failed", callback)

    @property
    def display_balance(self) -> float | None:
        if self.balance is None:
            return None
        return float(self.balance)

    def set_phase(self, phase: SessionPhase) -> None:
        self.phase = phase
        self._notify()

    def set_address(self, address: str) -> None:
        if self.address is not None and self.address != address:
            logger.warning(
                "Ignoring new signer address %s; session already bound to %s", address, self.address
            )
            return
        self.address = address
        self._notify()

    def set_wallet_address(self, address: str) -> None:
        self.wallet_address = address
        self._notify()

    def set_balance(self, balance: int) -> None:
        if balance < 0:
            raise ValueError(f"Balance must be non-negative, got {balance}")
        self.balance = balance
        self.balance_stale = False
        self._notify()

    def mark_balance_stale(self) -> None:
        self.balance_stale = True
        self._notify()

    def set_block_height(self, height: int) -> None:
        if height < self.block_height:
            logger.warning(
                "Node reported height %d below current %d; keeping current", height, self.block_height
            )
            return
        self.block_height = height
        self._notify()

    def append_transaction(self, receipt: InscriptionReceipt) -> None:
        self.transactions.append(receipt)
        self._notify()

    def set_loading(self, key: str, value: bool) -> None:
        if not hasattr(self.loading, key):
            raise KeyError(f"Unknown loading flag: {key}")
        setattr(self.loading, key, value)
        self._notify()

    def snapshot(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "address": self.address,
            "wallet_address": self.wallet_address,
            "balance": self.balance,
            "balance_stale": self.balance_stale,
            "block_height": self.block_height,
            "transactions": [receipt.summary() for receipt in self.transactions],
            "loading": {"balance": self.loading.balance, "inscribing": self.loading.inscribing},
        }
