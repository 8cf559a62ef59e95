"""Command-line interface for the inscription testbed.

Each one-shot command initializes a fresh session (deposit address, node
address, height, balance), runs its action, and prints the results plus the
final state as JSON. ``console`` keeps one session open for manual testing.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Sequence

from .config import ConfigurationError, WorkflowConfig, load_testbed_config
from .console import InscriptionConsole
from .inscriptions import INSCRIPTION_TYPES, InscriptionRequest, lookup_inscription_type
from .rpc_client import NodeRPCClient
from .signer import SignerClient
from .workflow import InscriptionWorkflow, StepResult

logger = logging.getLogger(__name__)

COMPACT_JSON_SEPARATORS = (",", ":")


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ordinal inscription testbed")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--node-url", default=None, help="Node JSON-RPC URL (overrides config)")
    parser.add_argument("--signer-url", default=None, help="Signer JSON-RPC URL (overrides config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("console", help="Launch the interactive testbed console")
    subparsers.add_parser("status", help="Initialize a session and print its state")
    subparsers.add_parser("balance", help="Fetch the deposit address balance")
    subparsers.add_parser("mine", help="Mine one block to the node's own address")

    fund_parser = subparsers.add_parser("fund", help="Top up the deposit address from the node wallet")
    fund_parser.add_argument(
        "--amount",
        default=None,
        help="Amount in coins to send (default: testbed.funding_amount, 1)",
    )

    inscribe_parser = subparsers.add_parser("inscribe", help="Submit an inscription and mine a block")
    inscribe_parser.add_argument(
        "--content-type",
        choices=[entry.value for entry in INSCRIPTION_TYPES],
        default=INSCRIPTION_TYPES[0].value,
        help="Inscription content type",
    )
    content_group = inscribe_parser.add_mutually_exclusive_group(required=True)
    content_group.add_argument("--content", help="Inscription body")
    content_group.add_argument("--content-file", help="Read the inscription body from a file")
    inscribe_parser.add_argument("--recipient", default=None, help="Optional recipient address")
    inscribe_parser.add_argument(
        "--fee-rate", type=int, default=None, help="Fee rate in sat/vB forwarded to the signer"
    )
    return parser


def _config_from_args(args: argparse.Namespace) -> WorkflowConfig:
    overrides: dict[str, Any] = {}
    if args.node_url:
        overrides["node_url"] = args.node_url
    if args.signer_url:
        overrides["signer_url"] = args.signer_url
    if getattr(args, "amount", None) is not None:
        overrides["funding_amount"] = args.amount
    if getattr(args, "fee_rate", None) is not None:
        overrides["fee_rate"] = args.fee_rate
    return load_testbed_config(config_path=args.config, overrides=overrides)


def build_workflow(config: WorkflowConfig) -> InscriptionWorkflow:
    return InscriptionWorkflow(
        NodeRPCClient.from_config(config), SignerClient.from_config(config), config
    )


def _read_content(args: argparse.Namespace) -> str:
    if args.content is not None:
        return args.content
    try:
        with open(args.content_file, encoding="utf-8") as handle:
            return handle.read()
    except OSError as exc:
        raise CLIError(f"cannot read content file {args.content_file}: {exc}") from exc


def _result_payload(result: StepResult) -> dict[str, Any]:
    value = result.value.summary() if hasattr(result.value, "summary") else result.value
    payload: dict[str, Any] = {"step": result.step, "ok": result.ok, "value": value}
    if result.error:
        payload["error"] = result.error
    if result.skipped:
        payload["skipped"] = True
    if result.chain:
        payload["chain"] = [_result_payload(link) for link in result.chain]
    return payload


async def run_command(args: argparse.Namespace, workflow: InscriptionWorkflow) -> list[StepResult]:
    if args.command == "console":
        await InscriptionConsole(workflow).run()
        return []

    results = await workflow.initialize()
    address = workflow.state.address
    if args.command == "status":
        pass
    elif args.command == "balance":
        results.append(await workflow.fetch_balance(address))
    elif args.command == "mine":
        results.append(await workflow.mine_block())
    elif args.command == "fund":
        results.append(await workflow.request_funding(address))
    elif args.command == "inscribe":
        request = InscriptionRequest(
            content_type=lookup_inscription_type(args.content_type).content_type,
            content=_read_content(args),
            recipient=args.recipient,
        )
        results.append(await workflow.submit_inscription(request))
    else:  # pragma: no cover - argparse enforces choices
        raise CLIError(f"Unknown command: {args.command}")
    return results


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = _config_from_args(args)
        workflow = build_workflow(config)
        results = asyncio.run(run_command(args, workflow))
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
        return
    except (CLIError, ConfigurationError) as exc:
        parser.exit(1, f"error: {exc}\n")

    if args.command == "console":
        return
    output = {
        "results": [_result_payload(result) for result in results],
        "state": workflow.state.snapshot(),
    }
    print(json.dumps(output, separators=COMPACT_JSON_SEPARATORS, default=str))
    if not all(result.completed or result.skipped for result in results):
        sys.exit(2)


if __name__ == "__main__":
    main(sys.argv[1:])
