"""Batching helpers for ``sandshrew_multicall``.

A multicall request carries ``[[method, params], ...]`` wrapped in one more
list as its ``params``. The response is an array with one slot per call in the
same order; slots may be bare values or ``{"result": ...}`` /
``{"error": ...}`` envelopes depending on the deployment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from .rpc_client import RemoteError, TransportError, is_empty_result

MULTICALL_METHOD = "sandshrew_multicall"


class MulticallError(TransportError):
    """Raised when a multicall response cannot be aligned with its calls."""


@dataclass(frozen=True)
class MulticallEntry:
    """One index-aligned slot of a multicall response."""

    method: str
    params: list[Any]
    result: Any = None
    error: Optional[dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def empty(self) -> bool:
        return self.ok and is_empty_result(self.result)

    def unwrap(self) -> Any:
        """Return the slot's result, raising :class:`RemoteError` for error slots."""

        if self.error is not None:
            raise RemoteError.from_error_object(self.error)
        return self.result


def _normalize_call(call: Sequence[Any]) -> tuple[str, list[Any]]:
    if len(call) != 2:
        raise ValueError(f"Multicall entries must be (method, params) pairs, got {call!r}")
    method, params = call
    if not isinstance(method, str) or not method:
        raise ValueError(f"Multicall method must be a non-empty string, got {method!r}")
    return method, list(params or [])


def build_multicall_params(calls: Sequence[Sequence[Any]]) -> List[Any]:
    """Return the ``params`` array for a ``sandshrew_multicall`` request."""

    if not calls:
        raise ValueError("Multicall requires at least one call")
    return [[list(_normalize_call(call)) for call in calls]]


def _unwrap_slot(slot: Any) -> tuple[Any, Optional[dict[str, Any]]]:
    if isinstance(slot, dict) and set(slot) <= {"result", "error", "id", "jsonrpc"}:
        error = slot.get("error")
        if error:
            return None, error if isinstance(error, dict) else {"message": str(error)}
        return slot.get("result"), None
    return slot, None


def split_multicall_response(
    calls: Sequence[Sequence[Any]], response: Any
) -> list[MulticallEntry]:
    """Split a multicall *response* into entries aligned with *calls*."""

    if not isinstance(response, list):
        raise MulticallError(
            f"{MULTICALL_METHOD} returned {type(response).__name__}, expected a list",
            body=response,
        )
    if len(response) != len(calls):
        raise MulticallError(
            f"{MULTICALL_METHOD} returned {len(response)} results for {len(calls)} calls",
            body=response,
        )

    entries: list[MulticallEntry] = []
    for call, slot in zip(calls, response):
        method, params = _normalize_call(call)
        result, error = _unwrap_slot(slot)
        entries.append(MulticallEntry(method=method, params=params, result=result, error=error))
    return entries
