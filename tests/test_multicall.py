import pytest

from metashrew_probe.multicall import (
    MulticallEntry,
    MulticallError,
    build_multicall_params,
    split_multicall_response,
)
from metashrew_probe.rpc_client import RemoteError, TransportError

TXID = "9a222f0e9e176e5a70c95dbbe59afce6607bb5a50c7ef96ea91fa49f8f14525e"


def test_build_multicall_params_wraps_calls_twice():
    calls = [
        ("alkanes_trace", [{"txid": TXID, "vout": 0}]),
        ("metashrew_height", []),
    ]

    params = build_multicall_params(calls)

    assert params == [[["alkanes_trace", [{"txid": TXID, "vout": 0}]], ["metashrew_height", []]]]


def test_build_multicall_params_rejects_empty_and_malformed_calls():
    with pytest.raises(ValueError):
        build_multicall_params([])
    with pytest.raises(ValueError):
        build_multicall_params([("alkanes_trace",)])
    with pytest.raises(ValueError):
        build_multicall_params([("", [])])


@pytest.mark.parametrize("count", [1, 3, 8])
def test_split_returns_exactly_one_entry_per_call_in_order(count):
    calls = [("alkanes_trace", [{"txid": TXID, "vout": vout}]) for vout in range(count)]
    response = [{"result": [f"trace-{vout}"]} for vout in range(count)]

    entries = split_multicall_response(calls, response)

    assert len(entries) == count
    for vout, entry in enumerate(entries):
        assert entry.params == [{"txid": TXID, "vout": vout}]
        assert entry.result == [f"trace-{vout}"]


def test_split_unwraps_envelopes_and_keeps_bare_values():
    calls = [("a", []), ("b", []), ("c", []), ("d", []), ("e", [])]
    response = [
        {"jsonrpc": "2.0", "id": 0, "result": None},
        {"error": {"code": -1, "message": "nope"}},
        "0xdeadbeef",
        {"trace": "bare object"},
        {"jsonrpc": "2.0", "id": 4, "error": None},
    ]

    entries = split_multicall_response(calls, response)

    assert entries[0].ok and entries[0].empty
    assert not entries[1].ok
    assert entries[1].error == {"code": -1, "message": "nope"}
    assert entries[2].result == "0xdeadbeef"
    assert entries[3].result == {"trace": "bare object"}
    assert entries[4].ok and entries[4].result is None and entries[4].empty


def test_split_rejects_length_mismatch():
    with pytest.raises(MulticallError) as excinfo:
        split_multicall_response([("a", []), ("b", [])], [1])

    assert isinstance(excinfo.value, TransportError)
    assert excinfo.value.body == [1]


def test_split_rejects_non_list_response():
    with pytest.raises(MulticallError):
        split_multicall_response([("a", [])], {"result": 1})


def test_entry_unwrap():
    assert MulticallEntry("a", [], result=5).unwrap() == 5
    with pytest.raises(RemoteError, match="nope"):
        MulticallEntry("a", [], error={"message": "nope"}).unwrap()
