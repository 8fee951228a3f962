from __future__ import annotations

import pytest

from metashrew_probe.outpoint import Outpoint, encode_json_outpoint
from metashrew_probe.probe import (
    ProbeExhaustedError,
    ProbeStrategy,
    TraceProber,
    default_trace_strategies,
    default_traceblock_strategies,
    probe_trace,
    probe_traceblock,
)
from metashrew_probe.rpc_client import RemoteError, TransportError

TXID = "9a222f0e9e176e5a70c95dbbe59afce6607bb5a50c7ef96ea91fa49f8f14525e"


class ScriptedClient:
    """Answers each call from a list of canned results or exceptions."""

    def __init__(self, *answers) -> None:
        self.answers = list(answers)
        self.calls: list[tuple[str, list]] = []

    def call(self, method, params=None):
        self.calls.append((method, params))
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


def test_probe_short_circuits_on_first_non_empty_result():
    client = ScriptedClient(RemoteError("bad input"), [], {"trace": 1}, "never used")
    outpoint = Outpoint(TXID, 1)

    outcome = probe_trace(client, outpoint)

    assert outcome.found
    assert outcome.strategy == "view-protorunesbyoutpoint"
    assert outcome.result == {"trace": 1}
    assert [attempt.strategy for attempt in outcome.attempts] == [
        "view-json",
        "view-string",
        "view-protorunesbyoutpoint",
    ]
    assert outcome.attempts[0].error == "RPC error: bad input"
    assert len(client.calls) == 3
    assert client.calls[0] == ("metashrew_view", ["trace", encode_json_outpoint(outpoint), "latest"])


def test_probe_returns_empty_outcome_when_nothing_has_data():
    strategies = default_trace_strategies()
    client = ScriptedClient(*([None] + [TransportError("timeout")] + [[]] * (len(strategies) - 2)))

    outcome = probe_trace(client, Outpoint(TXID, 0))

    assert not outcome.found
    assert outcome.result is None
    assert len(outcome.attempts) == len(strategies)


def test_probe_raises_when_every_strategy_errors():
    strategies = [
        ProbeStrategy("first", "alkanes_trace", lambda o: [o.to_params()]),
        ProbeStrategy("second", "alkanes_trace", lambda o: [o.to_params(reverse_txid=True)]),
    ]
    client = ScriptedClient(RemoteError("one", code=-32602), TransportError("two", status_code=503))

    with pytest.raises(ProbeExhaustedError) as excinfo:
        TraceProber(client, strategies).probe(Outpoint(TXID, 1))

    assert [attempt.strategy for attempt in excinfo.value.attempts] == ["first", "second"]
    assert "one" in str(excinfo.value) and "two" in str(excinfo.value)


def test_direct_trace_strategies_send_raw_then_reversed_txid():
    outpoint = Outpoint(TXID, 2)
    by_name = {strategy.name: strategy for strategy in default_trace_strategies()}

    assert by_name["alkanes-trace"].build_params(outpoint) == [{"txid": TXID, "vout": 2}]
    assert by_name["alkanes-trace-reversed"].build_params(outpoint) == [
        {"txid": outpoint.wire_txid, "vout": 2}
    ]


def test_traceblock_probe_order_and_multicall_unwrapping():
    client = ScriptedClient(
        RemoteError("Method not found", code=-32601),
        RemoteError("invalid type"),
        RemoteError("invalid type"),
        "0x",
        [{"result": "0xabcdef"}],
    )

    outcome = probe_traceblock(client, 887380)

    assert outcome.strategy == "multicall-traceblock"
    assert outcome.result == "0xabcdef"
    assert client.calls == [
        ("alkanes_traceblock", [887380]),
        ("alkanes_traceblock", [{"block": 887380}]),
        ("alkanes_traceblock", ["0x000d8a54"]),
        ("metashrew_view", ["traceblock", "0x000d8a54", "latest"]),
        ("sandshrew_multicall", [[["alkanes_traceblock", ["0x000d8a54"]]]]),
    ]


def test_traceblock_multicall_error_slot_counts_as_failure():
    strategy = default_traceblock_strategies()[-1]
    client = ScriptedClient([{"error": {"message": "not indexed"}}])

    with pytest.raises(ProbeExhaustedError) as excinfo:
        TraceProber(client, [strategy]).probe(1)

    assert "not indexed" in excinfo.value.attempts[0].error


def test_prober_requires_strategies():
    with pytest.raises(ValueError):
        TraceProber(ScriptedClient(), [])


def test_traceblock_multicall_entry_carries_real_call():
    strategy = default_traceblock_strategies()[-1]
    client = ScriptedClient([{"error": {"code": -32602, "message": "bad height"}}])

    with pytest.raises(ProbeExhaustedError) as excinfo:
        TraceProber(client, [strategy]).probe(887380)

    assert "bad height" in excinfo.value.attempts[0].error
    assert client.calls == [("sandshrew_multicall", [[["alkanes_traceblock", ["0x000d8a54"]]]])]


def test_traceblock_multicall_extract_takes_target_height():
    strategy = default_traceblock_strategies()[-1]

    assert strategy.extract(887380, [{"jsonrpc": "2.0", "id": 0, "result": "0xab"}]) == "0xab"
    with pytest.raises(TransportError):
        strategy.extract(887380, [])
