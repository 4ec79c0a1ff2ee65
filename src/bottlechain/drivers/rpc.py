"""Async JSON-RPC 2.0 client shared by the EVM and Solana drivers."""

import itertools
import logging
from typing import Any, Optional

import httpx

from bottlechain.errors import JsonRpcError, RpcError

logger = logging.getLogger(__name__)


class JsonRpcClient:
    """Minimal JSON-RPC client over a lazily created httpx.AsyncClient.

    Transport failures become RpcError; JSON-RPC error objects become
    JsonRpcError so drivers can tell rejections from outages.
    """

    def __init__(
        self,
        url: str,
        chain_id: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.chain_id = chain_id
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._ids = itertools.count(1)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def call(self, method: str, params: Optional[list] = None) -> Any:
        """Call a JSON-RPC method and return its `result`."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params if params is not None else [],
        }
        client = await self._get_client()

        try:
            response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"{self.chain_id} RPC {method} transport error: {e}")
            raise RpcError(f"{method} transport error: {e}", self.chain_id, method) from e

        if response.status_code != 200:
            raise RpcError(
                f"{method} HTTP {response.status_code}: {response.text[:200]}",
                self.chain_id,
                method,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RpcError(f"{method} returned invalid JSON", self.chain_id, method) from e

        error = data.get("error")
        if error:
            raise JsonRpcError(
                code=error.get("code", 0),
                message=error.get("message", "unknown error"),
                chain_id=self.chain_id,
                method=method,
                data=error.get("data"),
            )

        return data.get("result")

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
