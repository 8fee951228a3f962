"""JSON-RPC client for Metashrew/Sandshrew indexer endpoints.

The client is the single place that talks HTTP. Scripts, the probe helpers and
the CLI all go through :meth:`MetashrewRPCClient.call`, so request shape,
logging and error translation stay consistent. Results are returned exactly as
the server sent them; an empty list or ``null`` is a valid answer meaning the
indexer has no data for the query.
"""

from __future__ import annotations

import itertools
import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

import requests
from requests import RequestException, Response

from .config import ClientConfig, ConfigurationError, load_client_config
from .outpoint import Outpoint, encode_height

if TYPE_CHECKING:
    from .multicall import MulticallEntry

logger = logging.getLogger(__name__)

__all__ = [
    "ConfigurationError",
    "MetashrewRPCClient",
    "RemoteError",
    "TransportError",
    "format_rpc_hint",
    "is_empty_result",
]


class RemoteError(RuntimeError):
    """Raised when the endpoint answers with a JSON-RPC ``error`` object."""

    def __init__(self, message: str, code: int | None = None, data: Any = None) -> None:
        prefix = f"RPC error {code}" if code is not None else "RPC error"
        super().__init__(f"{prefix}: {message}")
        self.code = code
        self.message = message
        self.data = data

    @classmethod
    def from_error_object(cls, error: Any) -> "RemoteError":
        if isinstance(error, dict):
            message = error.get("message")
            if message is None:
                message = json.dumps(error)
            return cls(str(message), code=error.get("code"), data=error.get("data"))
        return cls(str(error))


class TransportError(RuntimeError):
    """Raised when the endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def is_empty_result(result: Any) -> bool:
    """Return ``True`` for results meaning "no trace data available"."""

    if result is None:
        return True
    if isinstance(result, (list, dict)):
        return len(result) == 0
    if isinstance(result, str):
        return result == "" or result.lower() == "0x"
    return False


def format_rpc_hint(error: dict[str, Any] | RemoteError | None) -> str | None:
    """Return a short remediation hint for common JSON-RPC failures."""

    if error is None:
        return None

    code = None
    message = ""
    if isinstance(error, RemoteError):
        code = error.code
        message = error.message
    elif isinstance(error, dict):
        code = error.get("code")
        message = str(error.get("message", ""))

    lowered = message.lower()
    if code == -32601 or "method not found" in lowered:
        return (
            "The endpoint does not expose this method. Check --endpoint; local indexers often "
            "lack the sandshrew_* and btc_* proxies that the hosted service provides."
        )
    if code == -32602 or "invalid params" in lowered:
        return (
            "The endpoint rejected the parameters. Try another outpoint encoding "
            "(--encoding json|binary|string|protobuf) or run 'probe' to find one it accepts."
        )
    if code == -32700:
        return "The endpoint could not parse the request body as JSON."
    if "unexpected end of file" in lowered or "failed to fill whole buffer" in lowered:
        return "The view input was decoded as binary and was too short; try --encoding binary or protobuf."
    return None


class MetashrewRPCClient:
    """Thin JSON-RPC 2.0 client for a Metashrew/Sandshrew endpoint.

    Each wrapper maps directly to one RPC method and returns the parsed
    ``result``. The client never sends a Sandshrew project-id header, even
    when ``SANDSHREW_PROJECT_ID`` is present in the environment.
    """

    def __init__(self, config: ClientConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    @classmethod
    def from_env(cls) -> "MetashrewRPCClient":
        """Instantiate a client using environment variables or config file."""

        return cls(load_client_config())

    @property
    def url(self) -> str:
        return self.config.url

    def build_request(self, method: str, params: Optional[Sequence[Any]] = None) -> Dict[str, Any]:
        """Return the JSON-RPC envelope for *method* without sending it."""

        return {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params) if params is not None else [],
        }

    def call(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        """Perform a JSON-RPC request and return its ``result``."""

        payload = self.build_request(method, params)
        logger.debug("RPC call %s id=%s params=%s", method, payload["id"], payload["params"])
        try:
            response = self._session.post(
                self.url,
                data=json.dumps(payload),
                headers={"Content-Type": "application/json"},
                timeout=self.config.timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection to %s failed: %s",
                self.url,
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise TransportError(
                f"RPC connection to {self.url} failed: {exc}. Check METASHREW_API_URL or --endpoint."
            ) from exc

        body = self._decode_body(response)
        if not response.ok:
            logger.error("RPC HTTP error %s from %s", response.status_code, self.url)
            logger.error("RPC error body: %s", body)
            if isinstance(body, dict) and body.get("error"):
                raise RemoteError.from_error_object(body["error"])
            raise TransportError(
                f"RPC server returned HTTP {response.status_code} for {method}",
                status_code=response.status_code,
                body=body,
            )
        if not isinstance(body, dict):
            logger.debug("RPC non-object body for %s: %r", method, body)
            raise TransportError(
                f"RPC server returned malformed JSON-RPC response for {method}",
                status_code=response.status_code,
                body=body,
            )
        if body.get("error"):
            error = RemoteError.from_error_object(body["error"])
            logger.debug("RPC %s returned error: %s", method, error)
            raise error
        return body.get("result")

    @staticmethod
    def _decode_body(response: Response) -> Any:
        try:
            return response.json()
        except ValueError:
            if response.ok:
                logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
                raise TransportError(
                    "RPC server returned malformed JSON",
                    status_code=response.status_code,
                    body=response.text,
                ) from None
            return response.text

    # Convenience wrappers -------------------------------------------------

    def alkanes_trace(self, outpoint: Outpoint | Dict[str, Any], *, reverse_txid: bool = False) -> Any:
        params = outpoint.to_params(reverse_txid=reverse_txid) if isinstance(outpoint, Outpoint) else outpoint
        return self.call("alkanes_trace", [params])

    def alkanes_traceblock(self, height: int | str | Dict[str, Any]) -> Any:
        return self.call("alkanes_traceblock", [height])

    def metashrew_view(self, view: str, hex_input: str, block_tag: str = "latest") -> Any:
        return self.call("metashrew_view", [view, hex_input, block_tag])

    def metashrew_height(self) -> int:
        # The indexer reports its height as a decimal string.
        raw = self.call("metashrew_height")
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise TransportError(f"Unparseable metashrew_height result: {raw!r}", body=raw) from exc

    def btc_getblockcount(self) -> int:
        raw = self.call("btc_getblockcount")
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise TransportError(f"Unparseable btc_getblockcount result: {raw!r}", body=raw) from exc

    def protorunes_by_height(self, height: int, block_tag: str = "latest") -> Any:
        return self.metashrew_view("protorunesbyheight", encode_height(height), block_tag)

    def protorunes_by_address(self, address: str, block_tag: str = "latest") -> Any:
        """Query the ``protorunesbyaddress`` view with the hex of the UTF-8 address."""

        return self.metashrew_view("protorunesbyaddress", address.encode("utf-8").hex(), block_tag)

    def getblockhash(self, height: int) -> str:
        return self.call("getblockhash", [height])

    def getblock(self, block_hash: str, verbosity: int = 2) -> Dict[str, Any]:
        return self.call("getblock", [block_hash, verbosity])

    def getrawtransaction(self, txid: str, verbose: bool = False) -> Any:
        return self.call("getrawtransaction", [txid, verbose])

    def getblock_by_height(self, height: int) -> Dict[str, Any]:
        """Retrieve a block JSON payload by height using verbosity=2."""

        return self.getblock(self.getblockhash(height), verbosity=2)

    def multicall(self, calls: Sequence[tuple[str, Sequence[Any]]]) -> list["MulticallEntry"]:
        """Send *calls* as one ``sandshrew_multicall`` request.

        Returns one :class:`~metashrew_probe.multicall.MulticallEntry` per call,
        in input order.
        """

        from .multicall import build_multicall_params, split_multicall_response

        response = self.call("sandshrew_multicall", build_multicall_params(calls))
        return split_multicall_response(calls, response)
