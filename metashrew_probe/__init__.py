"""Metashrew/Sandshrew JSON-RPC client and Alkanes trace probing helpers."""

from .config import ClientConfig, ConfigurationError, ENDPOINT_ALIASES, load_client_config
from .multicall import MulticallEntry, MulticallError, build_multicall_params, split_multicall_response
from .outpoint import (
    ENCODERS,
    Outpoint,
    OutpointError,
    encode_binary_outpoint,
    encode_height,
    encode_json_outpoint,
    encode_outpoint,
    encode_protobuf_outpoint,
    encode_string_outpoint,
    reverse_bytes,
)
from .probe import (
    ProbeAttempt,
    ProbeExhaustedError,
    ProbeOutcome,
    ProbeStrategy,
    TraceProber,
    default_trace_strategies,
    default_traceblock_strategies,
    probe_trace,
    probe_traceblock,
)
from .rpc_client import MetashrewRPCClient, RemoteError, TransportError, format_rpc_hint, is_empty_result
from .scan import VoutTrace, first_traced_vout, scan_vouts, trace_outpoints
from .sync import SyncStatus, get_sync_status

__all__ = [
    "ClientConfig",
    "ConfigurationError",
    "ENDPOINT_ALIASES",
    "load_client_config",
    "MetashrewRPCClient",
    "RemoteError",
    "TransportError",
    "format_rpc_hint",
    "is_empty_result",
    "ENCODERS",
    "Outpoint",
    "OutpointError",
    "encode_binary_outpoint",
    "encode_height",
    "encode_json_outpoint",
    "encode_outpoint",
    "encode_protobuf_outpoint",
    "encode_string_outpoint",
    "reverse_bytes",
    "MulticallEntry",
    "MulticallError",
    "build_multicall_params",
    "split_multicall_response",
    "ProbeAttempt",
    "ProbeExhaustedError",
    "ProbeOutcome",
    "ProbeStrategy",
    "TraceProber",
    "default_trace_strategies",
    "default_traceblock_strategies",
    "probe_trace",
    "probe_traceblock",
    "VoutTrace",
    "first_traced_vout",
    "scan_vouts",
    "trace_outpoints",
    "SyncStatus",
    "get_sync_status",
]
