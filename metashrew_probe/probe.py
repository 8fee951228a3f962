"""Ordered fallback probing for trace queries.

The indexer has accepted different request shapes for the same trace query
over time. A probe walks a priority list of :class:`ProbeStrategy` entries,
each pairing an RPC method with a way of building its params, and stops at
the first strategy that returns non-empty data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

from .multicall import build_multicall_params, split_multicall_response
from .outpoint import (
    Outpoint,
    encode_binary_outpoint,
    encode_height,
    encode_json_outpoint,
    encode_protobuf_outpoint,
    encode_string_outpoint,
)
from .rpc_client import MetashrewRPCClient, RemoteError, TransportError, is_empty_result

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ProbeStrategy(Generic[T]):
    """A named ``(method, params builder)`` pair tried by :class:`TraceProber`."""

    name: str
    method: str
    build_params: Callable[[T], list[Any]]
    extract: Optional[Callable[[T, Any], Any]] = None


@dataclass
class ProbeAttempt:
    """Record of one strategy tried during a probe."""

    strategy: str
    method: str
    params: list[Any]
    result: Any = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and not is_empty_result(self.result)


@dataclass
class ProbeOutcome:
    """Result of a probe: the winning strategy and its data, or ``None`` for both."""

    strategy: Optional[str]
    result: Any
    attempts: List[ProbeAttempt] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.strategy is not None


class ProbeExhaustedError(RuntimeError):
    """Raised when every strategy in a probe failed with an error."""

    def __init__(self, attempts: Sequence[ProbeAttempt]) -> None:
        details = "; ".join(f"{attempt.strategy}: {attempt.error}" for attempt in attempts)
        super().__init__(f"All {len(attempts)} probe strategies failed ({details})")
        self.attempts = list(attempts)


class TraceProber(Generic[T]):
    """Try strategies in order, short-circuiting on the first non-empty result."""

    def __init__(self, client: MetashrewRPCClient, strategies: Sequence[ProbeStrategy[T]]) -> None:
        if not strategies:
            raise ValueError("TraceProber requires at least one strategy")
        self.client = client
        self.strategies = list(strategies)

    def probe(self, target: T) -> ProbeOutcome:
        attempts: List[ProbeAttempt] = []
        for strategy in self.strategies:
            params = strategy.build_params(target)
            attempt = ProbeAttempt(strategy=strategy.name, method=strategy.method, params=params)
            attempts.append(attempt)
            logger.info("Probing %s via %s", target, strategy.name)
            try:
                result = self.client.call(strategy.method, params)
                attempt.result = strategy.extract(target, result) if strategy.extract else result
            except (RemoteError, TransportError) as exc:
                attempt.error = str(exc)
                logger.info("Strategy %s failed: %s", strategy.name, exc)
                continue

            if attempt.succeeded:
                logger.info("Strategy %s returned data", strategy.name)
                return ProbeOutcome(strategy=strategy.name, result=attempt.result, attempts=attempts)
            logger.info("Strategy %s returned no data", strategy.name)

        if all(attempt.error is not None for attempt in attempts):
            raise ProbeExhaustedError(attempts)
        return ProbeOutcome(strategy=None, result=None, attempts=attempts)


def default_trace_strategies() -> list[ProbeStrategy[Outpoint]]:
    """Strategies for tracing one outpoint, most commonly accepted first."""

    return [
        ProbeStrategy("view-json", "metashrew_view", lambda o: ["trace", encode_json_outpoint(o), "latest"]),
        ProbeStrategy("view-string", "metashrew_view", lambda o: ["trace", encode_string_outpoint(o), "latest"]),
        ProbeStrategy(
            "view-protorunesbyoutpoint",
            "metashrew_view",
            lambda o: ["protorunesbyoutpoint", encode_json_outpoint(o), "latest"],
        ),
        ProbeStrategy("alkanes-trace", "alkanes_trace", lambda o: [o.to_params()]),
        ProbeStrategy("alkanes-trace-reversed", "alkanes_trace", lambda o: [o.to_params(reverse_txid=True)]),
        ProbeStrategy("view-binary", "metashrew_view", lambda o: ["trace", encode_binary_outpoint(o), "latest"]),
        ProbeStrategy("view-protobuf", "metashrew_view", lambda o: ["trace", encode_protobuf_outpoint(o), "latest"]),
    ]


def default_traceblock_strategies() -> list[ProbeStrategy[int]]:
    """Strategies for tracing every transaction in one block."""

    return [
        ProbeStrategy("traceblock-height", "alkanes_traceblock", lambda h: [h]),
        ProbeStrategy("traceblock-object", "alkanes_traceblock", lambda h: [{"block": h}]),
        ProbeStrategy("traceblock-hex", "alkanes_traceblock", lambda h: [encode_height(h)]),
        ProbeStrategy("view-traceblock", "metashrew_view", lambda h: ["traceblock", encode_height(h), "latest"]),
        ProbeStrategy(
            "multicall-traceblock",
            "sandshrew_multicall",
            lambda h: build_multicall_params(_traceblock_calls(h)),
            extract=_first_multicall_result,
        ),
    ]


def _traceblock_calls(height: int) -> list[tuple[str, list[Any]]]:
    return [("alkanes_traceblock", [encode_height(height)])]


def _first_multicall_result(height: int, response: Any) -> Any:
    # Only one call is batched, so the aligned slot is always index 0.
    return split_multicall_response(_traceblock_calls(height), response)[0].unwrap()


def probe_trace(client: MetashrewRPCClient, outpoint: Outpoint) -> ProbeOutcome:
    return TraceProber(client, default_trace_strategies()).probe(outpoint)


def probe_traceblock(client: MetashrewRPCClient, height: int) -> ProbeOutcome:
    return TraceProber(client, default_traceblock_strategies()).probe(height)
