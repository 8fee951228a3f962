"""Helpers for locating trace data across outputs and transactions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

from .multicall import MulticallEntry
from .outpoint import Outpoint
from .rpc_client import MetashrewRPCClient, RemoteError, TransportError, is_empty_result

logger = logging.getLogger(__name__)


@dataclass
class VoutTrace:
    """Outcome of tracing a single output index."""

    vout: int
    has_data: bool
    result: Any = None
    error: Optional[str] = None


def scan_vouts(
    client: MetashrewRPCClient,
    txid: str,
    max_vout: int,
    *,
    reverse_txid: bool = True,
) -> List[VoutTrace]:
    """Call ``alkanes_trace`` for vouts ``0..max_vout`` and report which carry data.

    Errors on one vout are recorded on its row and the scan continues.
    """

    if max_vout < 0:
        raise ValueError(f"max_vout must be non-negative, got {max_vout}")

    rows: List[VoutTrace] = []
    for vout in range(max_vout + 1):
        outpoint = Outpoint(txid, vout)
        try:
            result = client.alkanes_trace(outpoint, reverse_txid=reverse_txid)
        except (RemoteError, TransportError) as exc:
            logger.warning("Trace of %s failed: %s", outpoint, exc)
            rows.append(VoutTrace(vout=vout, has_data=False, error=str(exc)))
            continue
        has_data = not is_empty_result(result)
        logger.debug("Trace of %s has_data=%s", outpoint, has_data)
        rows.append(VoutTrace(vout=vout, has_data=has_data, result=result if has_data else None))
    return rows


def first_traced_vout(rows: Iterable[VoutTrace]) -> Optional[VoutTrace]:
    for row in rows:
        if row.has_data:
            return row
    return None


def trace_outpoints(
    client: MetashrewRPCClient,
    outpoints: Sequence[Outpoint],
    *,
    reverse_txid: bool = True,
) -> list[MulticallEntry]:
    """Trace many outpoints in one ``sandshrew_multicall`` request.

    Entries are index-aligned with *outpoints*.
    """

    calls = [("alkanes_trace", [outpoint.to_params(reverse_txid=reverse_txid)]) for outpoint in outpoints]
    logger.info("Tracing %d outpoints via multicall", len(calls))
    return client.multicall(calls)
