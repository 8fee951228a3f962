"""Outpoint value type and the hex encodings accepted by Metashrew views.

Which encoding the live indexer expects for ``trace`` style views has shifted
between deployments, so every known layout is kept here and selected by name
(see :data:`ENCODERS`). All encoders are write-only; the indexer never echoes
outpoints back in these forms.
"""

from __future__ import annotations

import json
import string
from dataclasses import dataclass
from typing import Callable, Dict

COMPACT_JSON_SEPARATORS = (",", ":")
TXID_BYTES = 32
MAX_VOUT = 0xFFFFFFFF


class OutpointError(ValueError):
    """Raised when an outpoint or hex string cannot be encoded."""


def strip_hex_prefix(value: str) -> str:
    return value[2:] if value[:2].lower() == "0x" else value


def _validate_hex(value: str) -> str:
    if any(char not in string.hexdigits for char in value):
        raise OutpointError(f"Not a hex string: {value!r}")
    return value


def reverse_bytes(hex_value: str) -> str:
    """Return *hex_value* with its byte order reversed.

    A ``0x`` prefix is dropped and an odd-length string is left-padded with a
    single ``0`` nibble before reversing.
    """

    normalized = _validate_hex(strip_hex_prefix(hex_value))
    if len(normalized) % 2:
        normalized = "0" + normalized
    return bytes.fromhex(normalized)[::-1].hex()


@dataclass(frozen=True)
class Outpoint:
    """Reference to output ``vout`` of transaction ``txid``.

    ``txid`` is kept in the big-endian display form used by explorers and
    ``getrawtransaction``; the encoders convert to wire order as needed.
    """

    txid: str
    vout: int

    def __post_init__(self) -> None:
        if not isinstance(self.txid, str):
            raise OutpointError(f"txid must be a hex string, got {type(self.txid).__name__}")
        normalized = strip_hex_prefix(self.txid.strip()).lower()
        _validate_hex(normalized)
        if len(normalized) != TXID_BYTES * 2:
            raise OutpointError(
                f"txid must be {TXID_BYTES} bytes ({TXID_BYTES * 2} hex chars), got {len(normalized)} chars"
            )
        if isinstance(self.vout, bool) or not isinstance(self.vout, int):
            raise OutpointError(f"vout must be an integer, got {self.vout!r}")
        if not 0 <= self.vout <= MAX_VOUT:
            raise OutpointError(f"vout out of uint32 range: {self.vout}")
        object.__setattr__(self, "txid", normalized)

    @classmethod
    def parse(cls, raw: str) -> "Outpoint":
        """Parse the ``txid:vout`` notation used by explorers and the CLI."""

        txid, sep, vout = raw.strip().rpartition(":")
        if not sep or not txid:
            raise OutpointError(f"Expected TXID:VOUT, got {raw!r}")
        try:
            index = int(vout)
        except ValueError as exc:
            raise OutpointError(f"Invalid vout in {raw!r}") from exc
        return cls(txid, index)

    @property
    def wire_txid(self) -> str:
        """Txid in little-endian wire order."""

        return reverse_bytes(self.txid)

    def to_params(self, *, reverse_txid: bool = False) -> dict[str, object]:
        """Return the ``{"txid", "vout"}`` object used by ``alkanes_trace``."""

        return {"txid": self.wire_txid if reverse_txid else self.txid, "vout": self.vout}

    def __str__(self) -> str:
        return f"{self.txid}:{self.vout}"


def encode_json_outpoint(outpoint: Outpoint) -> str:
    """Hex of the compact JSON text ``{"txid":...,"vout":...}``."""

    text = json.dumps(
        {"txid": outpoint.txid, "vout": outpoint.vout},
        separators=COMPACT_JSON_SEPARATORS,
    )
    return text.encode("utf-8").hex()


def encode_binary_outpoint(outpoint: Outpoint) -> str:
    """Hex of the 32-byte little-endian txid followed by the 4-byte little-endian vout."""

    return (bytes.fromhex(outpoint.txid)[::-1] + outpoint.vout.to_bytes(4, "little")).hex()


def encode_string_outpoint(outpoint: Outpoint) -> str:
    """Hex of the UTF-8 text ``txid:vout``."""

    return str(outpoint).encode("utf-8").hex()


def _varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def encode_protobuf_outpoint(outpoint: Outpoint) -> str:
    """``0x``-prefixed protobuf ``Outpoint { bytes txid = 1; uint32 vout = 2; }``.

    The txid field carries the byte-reversed txid. A zero vout is omitted, as
    proto3 serializers do for default scalar values.
    """

    txid = bytes.fromhex(outpoint.txid)[::-1]
    message = b"\x0a" + _varint(len(txid)) + txid
    if outpoint.vout:
        message += b"\x10" + _varint(outpoint.vout)
    return "0x" + message.hex()


def encode_height(height: int) -> str:
    """Encode a block height as used by ``traceblock`` and ``protorunesbyheight`` views."""

    if height < 0 or height > MAX_VOUT:
        raise OutpointError(f"Block height out of range: {height}")
    return f"0x{height:08x}"


ENCODERS: Dict[str, Callable[[Outpoint], str]] = {
    "json": encode_json_outpoint,
    "binary": encode_binary_outpoint,
    "string": encode_string_outpoint,
    "protobuf": encode_protobuf_outpoint,
}


def get_encoder(name: str) -> Callable[[Outpoint], str]:
    try:
        return ENCODERS[name]
    except KeyError as exc:
        known = ", ".join(sorted(ENCODERS))
        raise OutpointError(f"Unknown outpoint encoding {name!r}; choose one of: {known}") from exc


def encode_outpoint(outpoint: Outpoint, encoding: str = "json") -> str:
    return get_encoder(encoding)(outpoint)
