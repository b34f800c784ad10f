"""JSON-RPC client for making sequencer specific calls to a CometBFT node."""

from __future__ import annotations

import base64
import binascii
import itertools
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx

from .address import ADDRESS_LEN, Address, BalanceResponse, NonceResponse
from .raw import DecodeError, RawBalanceResponse, RawNonceResponse
from .transaction import SignedTransaction

_BALANCE_PREFIX = b"accounts/balance/"
_NONCE_PREFIX = b"accounts/nonce/"


class SequencerClientError(Exception):
    """Base class of all errors raised by the sequencer client methods."""


class AbciQueryDeserializationError(SequencerClientError):
    """The bytes in an ABCI query response could not be decoded."""

    def __init__(self, target: str, response: dict[str, Any], inner: Exception) -> None:
        super().__init__("failed deserializing bytes in ABCI query response")
        self.target = target
        self.response = response
        self.inner = inner
        self.__cause__ = inner


class TendermintRpcError(SequencerClientError):
    """The underlying CometBFT JSON-RPC call failed."""

    def __init__(self, rpc: str, inner: Exception) -> None:
        super().__init__("executing tendermint RPC failed")
        self.rpc = rpc
        self.inner = inner
        self.__cause__ = inner

    def is_transport(self) -> bool:
        """Whether the call failed because the connection itself failed."""
        return isinstance(self.inner, httpx.TransportError)


class DeserializationError(SequencerClientError):
    """A CometBFT response could not be converted to the expected type."""

    def __init__(self, target: str, inner: Exception) -> None:
        super().__init__(f"failed deserializing cometbft response to {target}")
        self.target = target
        self.inner = inner
        self.__cause__ = inner


class _JsonRpcError(Exception):
    """An error object returned in a JSON-RPC response."""

    def __init__(self, error: Any) -> None:
        if isinstance(error, dict):
            message = error.get("message", "")
            data = error.get("data")
            text = f"{message}: {data}" if data else str(message)
            self.code = error.get("code")
        else:
            text = str(error)
            self.code = None
        super().__init__(f"JSON-RPC error: {text}")
        self.error = error


@dataclass(frozen=True)
class TxSyncResponse:
    """The result of ``CheckTx`` returned by ``broadcast_tx_sync``."""

    code: int
    data: bytes
    log: str
    hash: bytes
    codespace: str = ""


@dataclass(frozen=True)
class TxCommitResponse:
    """The results of ``CheckTx`` and of executing the transaction."""

    check_tx: dict[str, Any] = field(default_factory=dict)
    tx_result: dict[str, Any] = field(default_factory=dict)
    hash: bytes = b""
    height: int = 0


def make_path_from_prefix_and_address(prefix: Union[bytes, str], address: Any) -> str:
    """Build an ABCI query path from a prefix and a hex encoded 20 byte address."""
    prefix_text = prefix.decode("ascii") if isinstance(prefix, (bytes, bytearray)) else prefix
    return prefix_text + _to_address(address).to_bytes().hex()


def _to_address(address: Any) -> Address:
    if isinstance(address, Address):
        return address
    data = bytes(address)
    if len(data) != ADDRESS_LEN:
        return Address.from_slice(data)
    return Address(data)


def _result_code(section: dict[str, Any]) -> int:
    return int(section.get("code", 0) or 0)


class SequencerClient:
    """Makes astria sequencer specific JSON-RPC calls to a CometBFT node over HTTP."""

    def __init__(
        self,
        url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self._url = url
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> SequencerClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this object created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: dict[str, Any], rpc: str) -> dict[str, Any]:
        request = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._client.post(self._url, json=request)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as err:
            raise TendermintRpcError(rpc, err) from err
        if not isinstance(body, dict):
            raise TendermintRpcError(rpc, ValueError("JSON-RPC response is not an object"))
        if body.get("error") is not None:
            inner = _JsonRpcError(body["error"])
            raise TendermintRpcError(rpc, inner) from inner
        result = body.get("result")
        if not isinstance(result, dict):
            raise TendermintRpcError(rpc, ValueError("JSON-RPC response has no result"))
        return result

    async def _abci_query(self, path: str, height: int) -> tuple[dict[str, Any], bytes]:
        params = {"path": path, "data": "", "height": str(height), "prove": False}
        result = await self._call("abci_query", params, "abci_query")
        query = result.get("response")
        if not isinstance(query, dict):
            raise TendermintRpcError(
                "abci_query", ValueError("abci_query result has no `response` object")
            )
        try:
            value = base64.b64decode(query.get("value") or "", validate=True)
        except (binascii.Error, TypeError, ValueError) as err:
            raise TendermintRpcError("abci_query", err) from err
        return query, value

    async def get_balance(self, address: Any, height: int) -> BalanceResponse:
        """Return the balance of ``address`` at ``height``."""
        path = make_path_from_prefix_and_address(_BALANCE_PREFIX, address)
        query, value = await self._abci_query(path, height)
        try:
            raw = RawBalanceResponse.decode(value)
        except DecodeError as err:
            raise AbciQueryDeserializationError(
                "astria.sequencer.v1alpha1.BalanceResponse", query, err
            ) from err
        return BalanceResponse.from_raw(raw)

    async def get_latest_balance(self, address: Any) -> BalanceResponse:
        """Return the balance of ``address`` at the latest height."""
        # A height of 0 is treated by the node as the latest height.
        return await self.get_balance(address, 0)

    async def get_nonce(self, address: Any, height: int) -> NonceResponse:
        """Return the nonce of ``address`` at ``height``."""
        path = make_path_from_prefix_and_address(_NONCE_PREFIX, address)
        query, value = await self._abci_query(path, height)
        try:
            raw = RawNonceResponse.decode(value)
        except DecodeError as err:
            raise AbciQueryDeserializationError(
                "astria.sequencer.v1alpha1.NonceResponse", query, err
            ) from err
        return NonceResponse.from_raw(raw)

    async def get_latest_nonce(self, address: Any) -> NonceResponse:
        """Return the nonce of ``address`` at the latest height."""
        return await self.get_nonce(address, 0)

    async def submit_transaction_sync(self, tx: SignedTransaction) -> TxSyncResponse:
        """Submit ``tx`` and wait until it has been checked, not committed."""
        encoded = base64.b64encode(tx.to_raw().encode()).decode("ascii")
        result = await self._call("broadcast_tx_sync", {"tx": encoded}, "broadcast_tx_sync")
        try:
            return TxSyncResponse(
                code=_result_code(result),
                data=base64.b64decode(result.get("data") or "", validate=True),
                log=str(result.get("log") or ""),
                hash=bytes.fromhex(result["hash"]),
                codespace=str(result.get("codespace") or ""),
            )
        except (KeyError, TypeError, ValueError, binascii.Error) as err:
            raise DeserializationError("TxSyncResponse", err) from err

    async def submit_transaction_commit(self, tx: SignedTransaction) -> TxCommitResponse:
        """Submit ``tx`` and wait until it has been committed."""
        encoded = base64.b64encode(tx.to_raw().encode()).decode("ascii")
        result = await self._call(
            "broadcast_tx_commit", {"tx": encoded}, "broadcast_tx_commit"
        )
        try:
            check_tx = dict(result.get("check_tx") or {})
            tx_result = dict(result.get("tx_result") or result.get("deliver_tx") or {})
            check_tx["code"] = _result_code(check_tx)
            tx_result["code"] = _result_code(tx_result)
            return TxCommitResponse(
                check_tx=check_tx,
                tx_result=tx_result,
                hash=bytes.fromhex(result["hash"]),
                height=int(result.get("height", 0)),
            )
        except (KeyError, TypeError, ValueError) as err:
            raise DeserializationError("TxCommitResponse", err) from err