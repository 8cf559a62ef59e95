"""Interactive console for driving the inscription testbed by hand."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Callable

from .inscriptions import INSCRIPTION_TYPES, InscriptionForm, UnknownContentTypeError
from .state import SessionState
from .workflow import BALANCE, INSCRIBING, InscriptionWorkflow, StepResult

logger = logging.getLogger(__name__)

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]

MENU = """
=== Ordinal Inscription Testbed ===
  1) Check balance
  2) Top up deposit address
  3) Generate block
  4) Set recipient address
  5) Set content type
  6) Set inscription content
  7) Inscribe
  s) Show state
  q) Quit
"""


def render_state(state: SessionState, form: InscriptionForm) -> str:
    balance = "-" if state.display_balance is None else f"{state.display_balance:.0f}"
    if state.balance_stale:
        balance += " (stale)"
    lines = [
        f"Address:              {state.address or '-'}",
        f"Balance (sats):       {balance}{'  [loading]' if state.loading.balance else ''}",
        f"Current block height: {state.block_height}",
        f"Recipient address:    {form.recipient or '-'}",
        f"Content type:         {form.selected_type.label}",
        f"Inscription content:  {form.content}",
    ]
    if state.loading.inscribing:
        lines.append("Inscribing...")
    for index, receipt in enumerate(state.transactions, start=1):
        lines.append(f"  #{index} commit={receipt.commit_txid} reveal={receipt.reveal_txid}")
    return "\n".join(lines)


def format_result(result: StepResult) -> str:
    if result.skipped:
        return f"{result.step}: skipped ({result.error})"
    if not result.ok:
        return f"{result.step}: failed ({result.error})"
    value = result.value.summary() if hasattr(result.value, "summary") else result.value
    line = f"{result.step}: ok {json.dumps(value, default=str)}"
    for link in result.chain:
        line += f"\n  -> {format_result(link)}"
    return line


class InscriptionConsole:
    """Menu loop binding the form fields and actions to a workflow."""

    def __init__(
        self,
        workflow: InscriptionWorkflow,
        *,
        input_fn: InputFn = input,
        output_fn: OutputFn = print,
        form: InscriptionForm | None = None,
    ) -> None:
        self.workflow = workflow
        self.form = form or InscriptionForm()
        self._input = input_fn
        self._output = output_fn

    async def _prompt(self, prompt: str) -> str:
        return (await asyncio.to_thread(self._input, prompt)).strip()

    async def run(self) -> None:
        state = self.workflow.state
        unsubscribe = state.subscribe(lambda s: logger.debug("state changed: %s", s.snapshot()))
        try:
            for result in await self.workflow.initialize():
                self._output(format_result(result))
            while True:
                self._output(render_state(state, self.form))
                self._output(MENU)
                choice = (await self._prompt("Select an option: ")).lower()
                if choice in {"q", "quit", "exit"}:
                    return
                await self.handle(choice)
        finally:
            unsubscribe()

    async def handle(self, choice: str) -> None:
        state = self.workflow.state
        if choice == "1":
            if self.workflow.is_busy(BALANCE):
                self._output("Balance check already running.")
                return
            self._output(format_result(await self.workflow.fetch_balance(state.address)))
        elif choice == "2":
            self._output(format_result(await self.workflow.request_funding(state.address)))
        elif choice == "3":
            self._output(format_result(await self.workflow.mine_block()))
        elif choice == "4":
            self.form.set_recipient(await self._prompt("Recipient address: "))
        elif choice == "5":
            options = "/".join(entry.value for entry in INSCRIPTION_TYPES)
            value = await self._prompt(f"Content type [{options}]: ")
            try:
                self.form.set_content_type(value.lower())
            except UnknownContentTypeError as exc:
                self._output(str(exc))
        elif choice == "6":
            self.form.set_content(await self._prompt("Inscription content: "))
        elif choice == "7":
            if self.workflow.is_busy(INSCRIBING):
                self._output("Inscription already in progress.")
                return
            self._output(format_result(await self.workflow.submit_inscription(self.form.to_request())))
        elif choice == "s":
            self._output(json.dumps(state.snapshot(), indent=2))
        else:
            self._output("Invalid selection, please try again.")
