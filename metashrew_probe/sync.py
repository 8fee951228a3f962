"""Indexer sync status relative to the Bitcoin node behind the endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .rpc_client import MetashrewRPCClient, RemoteError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class SyncStatus:
    indexer_height: int
    bitcoin_height: int
    blocks_remaining: int
    sync_percentage: float
    is_synced: bool
    error: Optional[str] = None


def compute_sync_status(indexer_height: int, bitcoin_height: int) -> SyncStatus:
    blocks_remaining = bitcoin_height - indexer_height
    percentage = (indexer_height / bitcoin_height) * 100 if bitcoin_height > 0 else 0.0
    return SyncStatus(
        indexer_height=indexer_height,
        bitcoin_height=bitcoin_height,
        blocks_remaining=blocks_remaining,
        sync_percentage=round(percentage, 2),
        is_synced=blocks_remaining <= 0,
    )


def get_sync_status(client: MetashrewRPCClient, bitcoin_height: int | None = None) -> SyncStatus:
    """Compare ``metashrew_height`` with the node height.

    An unreachable indexer yields a status carrying ``error`` instead of
    raising; a failure fetching the node height propagates.
    """

    if bitcoin_height is None:
        bitcoin_height = client.btc_getblockcount()

    try:
        indexer_height = client.metashrew_height()
    except (RemoteError, TransportError) as exc:
        logger.warning("Failed to get indexer height: %s", exc)
        return SyncStatus(
            indexer_height=0,
            bitcoin_height=bitcoin_height,
            blocks_remaining=bitcoin_height,
            sync_percentage=0.0,
            is_synced=False,
            error=f"Failed to get indexer height: {exc}",
        )
    return compute_sync_status(indexer_height, bitcoin_height)
