"""Command-line interface for probing Metashrew/Sandshrew trace endpoints.

Each subcommand is a thin wrapper over the library: it resolves a client from
``--endpoint``/``--config``/environment, performs one operation, and prints
either a short human summary or JSON (``--json``). ``--output`` additionally
writes the JSON to a file for later comparison between encodings or
endpoints.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Sequence

from .config import ENDPOINT_ALIASES, ConfigurationError, load_client_config
from .multicall import MulticallEntry
from .outpoint import ENCODERS, Outpoint, encode_height, encode_outpoint
from .probe import ProbeExhaustedError, ProbeOutcome, probe_trace, probe_traceblock
from .rpc_client import MetashrewRPCClient, RemoteError, TransportError, format_rpc_hint, is_empty_result
from .scan import first_traced_vout, scan_vouts, trace_outpoints
from .sync import get_sync_status

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 500


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def _add_output_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Print the full result as JSON",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Also write the JSON result to this file",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Metashrew/Sandshrew trace probe")
    parser.add_argument(
        "--config",
        default=None,
        help="YAML config file (default: ~/.metashrew.yaml)",
    )
    parser.add_argument(
        "--endpoint",
        default=None,
        help=f"Endpoint URL or alias ({', '.join(sorted(ENDPOINT_ALIASES))}); overrides METASHREW_API_URL",
    )
    parser.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    height_parser = subparsers.add_parser("height", help="print the indexer height")
    height_parser.add_argument(
        "--node",
        action="store_true",
        help="Also print the Bitcoin node height (btc_getblockcount)",
    )

    sync_parser = subparsers.add_parser("sync-status", help="compare indexer and node heights")
    _add_output_flags(sync_parser)

    encode_parser = subparsers.add_parser(
        "encode-outpoint", help="print the hex encodings of an outpoint"
    )
    encode_parser.add_argument("outpoint", help="Outpoint as TXID:VOUT")
    encode_parser.add_argument(
        "--encoding",
        choices=sorted(ENCODERS),
        default=None,
        help="Only print this encoding (default: all)",
    )

    trace_parser = subparsers.add_parser("trace", help="trace a single outpoint")
    trace_parser.add_argument("outpoint", help="Outpoint as TXID:VOUT")
    trace_parser.add_argument(
        "--encoding",
        choices=["direct", *sorted(ENCODERS)],
        default="direct",
        help="'direct' calls alkanes_trace; other values call metashrew_view with that outpoint encoding",
    )
    trace_parser.add_argument(
        "--reverse-txid",
        action="store_true",
        help="Send the byte-reversed txid with --encoding direct",
    )
    trace_parser.add_argument("--view", default="trace", help="View name for metashrew_view (default: trace)")
    _add_output_flags(trace_parser)

    trace_block_parser = subparsers.add_parser("trace-block", help="trace every transaction in a block")
    trace_block_parser.add_argument("height", type=int, help="Block height")
    trace_block_parser.add_argument(
        "--via-view",
        action="store_true",
        help="Use metashrew_view traceblock instead of alkanes_traceblock",
    )
    _add_output_flags(trace_block_parser)

    view_parser = subparsers.add_parser("view", help="call an arbitrary metashrew_view function")
    view_parser.add_argument("view", help="View function name")
    view_parser.add_argument("hex_input", help="Hex-encoded view input")
    view_parser.add_argument("--block-tag", default="latest", help="Block tag (default: latest)")
    _add_output_flags(view_parser)

    probe_parser = subparsers.add_parser(
        "probe", help="try every known trace request shape for an outpoint"
    )
    probe_parser.add_argument("outpoint", help="Outpoint as TXID:VOUT")
    _add_output_flags(probe_parser)

    probe_block_parser = subparsers.add_parser(
        "probe-block", help="try every known traceblock request shape for a height"
    )
    probe_block_parser.add_argument("height", type=int, help="Block height")
    _add_output_flags(probe_block_parser)

    scan_parser = subparsers.add_parser("scan-vouts", help="find which outputs of a transaction carry traces")
    scan_parser.add_argument("txid", help="Transaction id")
    scan_parser.add_argument(
        "--max-vout",
        type=int,
        default=5,
        help="Highest output index to check (default: %(default)s)",
    )
    scan_parser.add_argument(
        "--no-reverse",
        dest="reverse_txid",
        action="store_false",
        help="Send the txid in display order instead of byte-reversed",
    )
    _add_output_flags(scan_parser)

    multicall_parser = subparsers.add_parser(
        "multicall", help="send several calls in one sandshrew_multicall request"
    )
    source = multicall_parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--outpoints",
        help="Comma-separated TXID:VOUT list traced with alkanes_trace",
    )
    source.add_argument(
        "--calls-file",
        help="JSON file containing [[method, params], ...]",
    )
    multicall_parser.add_argument(
        "--no-reverse",
        dest="reverse_txid",
        action="store_false",
        help="With --outpoints, send txids in display order",
    )
    _add_output_flags(multicall_parser)

    return parser


def _client_from_args(args: argparse.Namespace) -> MetashrewRPCClient:
    overrides: dict[str, Any] = {}
    if args.endpoint:
        overrides["endpoint"] = args.endpoint
    if args.timeout is not None:
        overrides["timeout"] = args.timeout
    config = load_client_config(config_path=args.config, overrides=overrides)
    logger.debug("Using endpoint %s (%s)", config.url, config.endpoint_name or "custom")
    return MetashrewRPCClient(config)


def _parse_outpoints(raw: str) -> list[Outpoint]:
    outpoints = [Outpoint.parse(piece) for piece in raw.split(",") if piece.strip()]
    if not outpoints:
        raise CLIError("no outpoints provided")
    return outpoints


def _load_calls_file(path: str) -> list[tuple[str, list[Any]]]:
    try:
        payload = json.loads(Path(path).read_text())
    except OSError as exc:
        raise CLIError(f"cannot read calls file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CLIError(f"calls file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, list) or not payload:
        raise CLIError(f"calls file {path} must contain a non-empty JSON array")
    calls: list[tuple[str, list[Any]]] = []
    for index, entry in enumerate(payload):
        if not isinstance(entry, list) or len(entry) != 2 or not isinstance(entry[1], list):
            raise CLIError(f"calls file entry {index} must be [method, params]")
        calls.append((str(entry[0]), entry[1]))
    return calls


def _preview(value: Any, limit: int = PREVIEW_LIMIT) -> str:
    text = value if isinstance(value, str) else json.dumps(value)
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _emit(args: argparse.Namespace, payload: Any) -> None:
    """Write *payload* to ``--output`` if requested."""

    output = getattr(args, "output", None)
    if output:
        try:
            Path(output).write_text(json.dumps(payload, indent=2))
        except OSError as exc:
            raise CLIError(f"cannot write output file {output}: {exc}") from exc
        logger.info("Wrote result to %s", output)


def _print_result(args: argparse.Namespace, label: str, result: Any) -> None:
    _emit(args, result)
    if getattr(args, "as_json", False):
        print(json.dumps(result, indent=2))
        return
    if is_empty_result(result):
        print(f"{label}: no trace data available")
        return
    print(f"{label}: {_preview(result)}")


def _probe_payload(outcome: ProbeOutcome) -> dict[str, Any]:
    return {
        "strategy": outcome.strategy,
        "result": outcome.result,
        "attempts": [asdict(attempt) for attempt in outcome.attempts],
    }


def _print_probe(args: argparse.Namespace, target: str, outcome: ProbeOutcome) -> None:
    payload = _probe_payload(outcome)
    _emit(args, payload)
    if getattr(args, "as_json", False):
        print(json.dumps(payload, indent=2))
        return
    for attempt in outcome.attempts:
        if attempt.error is not None:
            status = f"error: {attempt.error}"
        elif attempt.succeeded:
            status = "data"
        else:
            status = "empty"
        print(f"  {attempt.strategy:<28} {attempt.method:<20} {status}")
    if outcome.found:
        print(f"{target}: strategy {outcome.strategy} returned {_preview(outcome.result)}")
    else:
        print(f"{target}: no strategy returned trace data")


def cmd_height(args: argparse.Namespace) -> None:
    client = _client_from_args(args)
    print(f"indexer height: {client.metashrew_height()}")
    if args.node:
        print(f"node height:    {client.btc_getblockcount()}")


def cmd_sync_status(args: argparse.Namespace) -> None:
    status = get_sync_status(_client_from_args(args))
    payload = asdict(status)
    _emit(args, payload)
    if args.as_json:
        print(json.dumps(payload, indent=2))
        return
    print(f"indexer height:   {status.indexer_height}")
    print(f"node height:      {status.bitcoin_height}")
    print(f"blocks remaining: {status.blocks_remaining}")
    print(f"synced:           {status.sync_percentage:.2f}%" + (" (up to date)" if status.is_synced else ""))
    if status.error:
        print(f"error:            {status.error}")


def cmd_encode_outpoint(args: argparse.Namespace) -> None:
    outpoint = Outpoint.parse(args.outpoint)
    names = [args.encoding] if args.encoding else sorted(ENCODERS)
    print(f"outpoint: {outpoint}")
    print(f"wire txid: {outpoint.wire_txid}")
    for name in names:
        print(f"{name:>8}: {encode_outpoint(outpoint, name)}")


def cmd_trace(args: argparse.Namespace) -> None:
    client = _client_from_args(args)
    outpoint = Outpoint.parse(args.outpoint)
    if args.encoding == "direct":
        result = client.alkanes_trace(outpoint, reverse_txid=args.reverse_txid)
    else:
        result = client.metashrew_view(args.view, encode_outpoint(outpoint, args.encoding))
    _print_result(args, str(outpoint), result)


def cmd_trace_block(args: argparse.Namespace) -> None:
    client = _client_from_args(args)
    if args.via_view:
        result = client.metashrew_view("traceblock", encode_height(args.height))
    else:
        result = client.alkanes_traceblock(args.height)
    _print_result(args, f"block {args.height}", result)


def cmd_view(args: argparse.Namespace) -> None:
    client = _client_from_args(args)
    result = client.metashrew_view(args.view, args.hex_input, args.block_tag)
    _print_result(args, args.view, result)


def cmd_probe(args: argparse.Namespace) -> None:
    outpoint = Outpoint.parse(args.outpoint)
    outcome = probe_trace(_client_from_args(args), outpoint)
    _print_probe(args, str(outpoint), outcome)


def cmd_probe_block(args: argparse.Namespace) -> None:
    outcome = probe_traceblock(_client_from_args(args), args.height)
    _print_probe(args, f"block {args.height}", outcome)


def cmd_scan_vouts(args: argparse.Namespace) -> None:
    client = _client_from_args(args)
    rows = scan_vouts(client, args.txid, args.max_vout, reverse_txid=args.reverse_txid)
    payload = [asdict(row) for row in rows]
    _emit(args, payload)
    if args.as_json:
        print(json.dumps(payload, indent=2))
        return
    print(" vout | data | detail")
    print("------+------+-" + "-" * 40)
    for row in rows:
        marker = "Y" if row.has_data else "N"
        detail = row.error or (_preview(row.result, 60) if row.has_data else "-")
        print(f" {row.vout:>4} | {marker:^4} | {detail}")
    hit = first_traced_vout(rows)
    if hit is None:
        print(f"No trace data found in vouts 0-{args.max_vout}")
    else:
        print(f"First vout with trace data: {hit.vout}")


def _entry_payload(entry: MulticallEntry) -> dict[str, Any]:
    return {"method": entry.method, "params": entry.params, "result": entry.result, "error": entry.error}


def cmd_multicall(args: argparse.Namespace) -> None:
    client = _client_from_args(args)
    if args.outpoints:
        entries = trace_outpoints(client, _parse_outpoints(args.outpoints), reverse_txid=args.reverse_txid)
    else:
        entries = client.multicall(_load_calls_file(args.calls_file))
    payload = [_entry_payload(entry) for entry in entries]
    _emit(args, payload)
    if args.as_json:
        print(json.dumps(payload, indent=2))
        return
    for index, entry in enumerate(entries):
        if not entry.ok:
            detail = f"error: {entry.error.get('message', entry.error)}"
        elif entry.empty:
            detail = "no trace data"
        else:
            detail = _preview(entry.result, 100)
        print(f"[{index}] {entry.method} {json.dumps(entry.params)} -> {detail}")


COMMANDS = {
    "height": cmd_height,
    "sync-status": cmd_sync_status,
    "encode-outpoint": cmd_encode_outpoint,
    "trace": cmd_trace,
    "trace-block": cmd_trace_block,
    "view": cmd_view,
    "probe": cmd_probe,
    "probe-block": cmd_probe_block,
    "scan-vouts": cmd_scan_vouts,
    "multicall": cmd_multicall,
}


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    handler = COMMANDS.get(args.command)
    try:
        if handler is None:  # pragma: no cover - argparse enforces choices
            raise CLIError(f"Unknown command: {args.command}")
        handler(args)
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
    except RemoteError as exc:
        hint = format_rpc_hint(exc)
        message = f"error: {exc}\n" + (f"Hint: {hint}\n" if hint else "")
        parser.exit(1, message)
    except (
        CLIError,
        ConfigurationError,
        ProbeExhaustedError,
        TransportError,
        ValueError,
    ) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
