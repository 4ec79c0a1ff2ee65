"""EVM driver for Ethereum, BNB Chain and EVM-compatible custom chains.

Balances and token metadata come from JSON-RPC (`eth_getBalance`,
`eth_call`), history from the chain's Etherscan-compatible explorer API.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

import httpx

from bottlechain.chains import ChainDescriptor, TokenDescriptor
from bottlechain.drivers import abi
from bottlechain.drivers.base import ChainDriver, Confirmation, TokenInfo, TransactionRecord, TxStatus
from bottlechain.drivers.rpc import JsonRpcClient
from bottlechain.errors import (
    InvalidAddressError,
    JsonRpcError,
    NoProviderError,
    RpcError,
    TokenNotFoundError,
    TransactionRejectedError,
)
from bottlechain.units import format_units

logger = logging.getLogger(__name__)

HISTORY_PAGE_SIZE = 100

# Node-side validation failures: nonce, funds, intrinsic gas, revert in simulation.
# Other codes (rate limits, internal errors) stay RpcErrors.
REJECTION_CODES = {-32000, -32003, -32010, 3}


class EvmDriver(ChainDriver):
    """Driver for account-model EVM chains."""

    def __init__(
        self,
        chain: ChainDescriptor,
        rpc: JsonRpcClient,
        explorer_api_key: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
        **kwargs,
    ):
        super().__init__(chain, rpc, **kwargs)
        self.explorer_api_key = explorer_api_key
        self._http_client = http_client
        self._owns_http_client = http_client is None

    def validate_address(self, address: str) -> str:
        if not abi.is_hex_address(address):
            raise InvalidAddressError(address, self.chain_id)
        return address

    async def eth_call(self, to: str, data: str) -> str:
        """Read-only contract call against the latest block."""
        return await self.rpc.call("eth_call", [{"to": to, "data": data}, "latest"])

    async def get_raw_balance(self, address: str, token: Optional[TokenDescriptor] = None) -> int:
        self.validate_address(address)

        if token is None or token.is_native:
            result = await self.rpc.call("eth_getBalance", [address, "latest"])
            return int(result, 16)

        self.validate_address(token.address)
        try:
            result = await self.eth_call(
                token.address, abi.encode_call(abi.BALANCE_OF, abi.encode_address(address))
            )
        except JsonRpcError as e:
            raise TokenNotFoundError(
                f"balanceOf reverted for {token.symbol} ({token.address}): {e}", self.chain_id
            ) from e
        if not result or result == "0x":
            raise TokenNotFoundError(f"No token contract at {token.address}", self.chain_id)
        return abi.decode_uint(result)

    async def get_allowance(self, token_address: str, owner: str, spender: str) -> int:
        result = await self.eth_call(
            token_address,
            abi.encode_call(abi.ALLOWANCE, abi.encode_address(owner), abi.encode_address(spender)),
        )
        return abi.decode_uint(result) if result and result != "0x" else 0

    async def get_token_info(self, token_address: str) -> TokenInfo:
        self.validate_address(token_address)

        code = await self.rpc.call("eth_getCode", [token_address, "latest"])
        if not code or code in ("0x", "0x0"):
            raise TokenNotFoundError(f"No contract at {token_address}", self.chain_id)

        try:
            name, symbol, decimals, total_supply = await asyncio.gather(
                self.eth_call(token_address, abi.NAME),
                self.eth_call(token_address, abi.SYMBOL),
                self.eth_call(token_address, abi.DECIMALS),
                self.eth_call(token_address, abi.TOTAL_SUPPLY),
            )
        except JsonRpcError as e:
            raise TokenNotFoundError(
                f"{token_address} is not an ERC-20 token: {e}", self.chain_id
            ) from e

        if decimals in (None, "0x") or total_supply in (None, "0x"):
            raise TokenNotFoundError(f"{token_address} is not an ERC-20 token", self.chain_id)

        return TokenInfo(
            address=token_address,
            name=abi.decode_string(name) if name else None,
            symbol=abi.decode_string(symbol) if symbol else None,
            decimals=abi.decode_uint(decimals),
            total_supply=abi.decode_uint(total_supply),
        )

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.rpc.timeout)
        return self._http_client

    async def _fetch_history_page(self, address: str, page: int) -> list[dict]:
        params = {
            "module": "account",
            "action": "txlist",
            "address": address,
            "startblock": 0,
            "endblock": 99999999,
            "page": page,
            "offset": HISTORY_PAGE_SIZE,
            "sort": "desc",
        }
        if self.explorer_api_key:
            params["apikey"] = self.explorer_api_key

        client = await self._get_http_client()
        try:
            response = await client.get(self.chain.explorer_api_url, params=params)
        except httpx.HTTPError as e:
            raise RpcError(f"Explorer request failed: {e}", self.chain_id, "txlist") from e

        if response.status_code != 200:
            raise RpcError(f"Explorer API error: {response.status_code}", self.chain_id, "txlist")

        try:
            data = response.json()
        except ValueError as e:
            raise RpcError("Explorer API returned invalid JSON", self.chain_id, "txlist") from e

        if data.get("status") != "1":
            # Etherscan reports an empty history as status 0
            if "no transactions" in str(data.get("message", "")).lower():
                return []
            raise RpcError(f"Explorer API error: {data.get('result')}", self.chain_id, "txlist")
        return data.get("result", [])

    def _parse_history_entry(self, tx: dict) -> TransactionRecord:
        if tx.get("isError") == "1" or tx.get("txreceipt_status") == "0":
            status = TxStatus.FAILED
        elif int(tx.get("confirmations", "0") or 0) > 0:
            status = TxStatus.CONFIRMED
        else:
            status = TxStatus.PENDING

        return TransactionRecord(
            hash=tx.get("hash", ""),
            from_address=tx.get("from") or None,
            to_address=tx.get("to") or None,
            amount=format_units(int(tx.get("value", "0") or 0), self.chain.native_decimals),
            timestamp=int(tx["timeStamp"]) if tx.get("timeStamp") else None,
            status=status,
        )

    async def get_transaction_history(self, address: str) -> AsyncIterator[TransactionRecord]:
        self.validate_address(address)
        if not self.chain.explorer_api_url:
            raise NoProviderError(f"No history source configured for {self.chain_id}", self.chain_id)

        page = 1
        while True:
            entries = await self._fetch_history_page(address, page)
            for tx in entries:
                yield self._parse_history_entry(tx)
            if len(entries) < HISTORY_PAGE_SIZE:
                return
            page += 1

    async def broadcast(self, signed_payload: str) -> str:
        try:
            return await self.rpc.call("eth_sendRawTransaction", [signed_payload])
        except JsonRpcError as e:
            if e.code in REJECTION_CODES:
                raise TransactionRejectedError(str(e), chain_id=self.chain_id) from e
            raise

    async def get_confirmation(self, tx_hash: str) -> Optional[Confirmation]:
        receipt = await self.rpc.call("eth_getTransactionReceipt", [tx_hash])
        if not receipt or receipt.get("blockNumber") is None:
            return None

        if receipt.get("status") == "0x0":
            raise TransactionRejectedError(
                f"Transaction {tx_hash} reverted", chain_id=self.chain_id, tx_hash=tx_hash
            )

        gas_used = int(receipt.get("gasUsed", "0x0"), 16)
        gas_price = int(receipt.get("effectiveGasPrice", "0x0"), 16)
        return Confirmation(
            chain_id=self.chain_id,
            tx_hash=tx_hash,
            status=TxStatus.CONFIRMED,
            block=int(receipt["blockNumber"], 16),
            fee=gas_used * gas_price,
        )

    async def ping(self) -> bool:
        await self.rpc.call("net_version")
        return True

    async def close(self) -> None:
        await super().close()
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
        self._http_client = None
