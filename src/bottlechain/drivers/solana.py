"""Solana driver.

Uses the public Solana JSON-RPC API:
- getBalance / getTokenAccountsByOwner for balances
- getAccountInfo (jsonParsed) for SPL mint metadata
- getSignaturesForAddress + getTransaction for history
- sendTransaction + getSignatureStatuses for submission
"""

import base64
import logging
from typing import AsyncIterator, Optional

import base58

from bottlechain.chains import ChainDescriptor, TokenDescriptor
from bottlechain.drivers.base import ChainDriver, Confirmation, TokenInfo, TransactionRecord, TxStatus
from bottlechain.drivers.rpc import JsonRpcClient
from bottlechain.errors import InvalidAddressError, JsonRpcError, TokenNotFoundError, TransactionRejectedError
from bottlechain.units import format_units

logger = logging.getLogger(__name__)

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"

SIGNATURE_PAGE_SIZE = 100

# JSON-RPC error codes that mean the node refused the transaction
# (-32002 preflight simulation failed, -32003 signature verification failed)
REJECTION_CODES = {-32002, -32003}


class SolanaDriver(ChainDriver):
    """Driver for Solana's program/account model."""

    def __init__(self, chain: ChainDescriptor, rpc: JsonRpcClient, commitment: str = "confirmed", **kwargs):
        super().__init__(chain, rpc, **kwargs)
        self.commitment = commitment

    def validate_address(self, address: str) -> str:
        try:
            decoded = base58.b58decode(address)
        except ValueError:
            raise InvalidAddressError(address, self.chain_id) from None
        if len(decoded) != 32:
            raise InvalidAddressError(address, self.chain_id)
        return address

    async def get_raw_balance(self, address: str, token: Optional[TokenDescriptor] = None) -> int:
        self.validate_address(address)

        if token is None or token.is_native:
            result = await self.rpc.call("getBalance", [address, {"commitment": self.commitment}])
            return int(result["value"])

        self.validate_address(token.address)
        result = await self.rpc.call(
            "getTokenAccountsByOwner",
            [
                address,
                {"mint": token.address},
                {"encoding": "jsonParsed", "commitment": self.commitment},
            ],
        )
        # An owner can hold the mint in its associated account and in others
        total = 0
        for account in result.get("value", []):
            info = account["account"]["data"]["parsed"]["info"]
            total += int(info["tokenAmount"]["amount"])
        return total

    async def find_token_account(self, owner: str, mint: str) -> Optional[str]:
        """Address of the owner's largest token account for a mint, if any."""
        result = await self.rpc.call(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        accounts = result.get("value", [])
        if not accounts:
            return None
        best = max(
            accounts,
            key=lambda a: int(a["account"]["data"]["parsed"]["info"]["tokenAmount"]["amount"]),
        )
        return best["pubkey"]

    async def get_account_data(self, address: str) -> Optional[bytes]:
        """Raw account data, or None if the account does not exist."""
        result = await self.rpc.call(
            "getAccountInfo", [address, {"encoding": "base64", "commitment": self.commitment}]
        )
        value = result.get("value") if result else None
        if not value:
            return None
        data, _encoding = value["data"]
        return base64.b64decode(data)

    async def get_token_info(self, token_address: str) -> TokenInfo:
        self.validate_address(token_address)

        result = await self.rpc.call(
            "getAccountInfo", [token_address, {"encoding": "jsonParsed", "commitment": self.commitment}]
        )
        value = result.get("value") if result else None
        if not value:
            raise TokenNotFoundError(f"No account at {token_address}", self.chain_id)

        data = value.get("data")
        if (
            value.get("owner") not in (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID)
            or not isinstance(data, dict)
            or data.get("parsed", {}).get("type") != "mint"
        ):
            raise TokenNotFoundError(f"{token_address} is not an SPL token mint", self.chain_id)

        info = data["parsed"]["info"]
        # Mint accounts carry no name/symbol; use the registry entry if listed
        return TokenInfo(
            address=token_address,
            name=None,
            symbol=None,
            decimals=int(info["decimals"]),
            total_supply=int(info["supply"]),
        )

    def _parse_transaction(self, address: str, signature: dict, tx: Optional[dict]) -> TransactionRecord:
        status = TxStatus.FAILED if signature.get("err") else TxStatus.CONFIRMED
        if signature.get("confirmationStatus") == "processed":
            status = TxStatus.PENDING

        from_address = None
        to_address = None
        amount = 0
        if tx:
            message = tx["transaction"]["message"]
            keys = [k["pubkey"] if isinstance(k, dict) else k for k in message.get("accountKeys", [])]
            meta = tx.get("meta") or {}
            if keys:
                from_address = keys[0]
            if len(keys) > 1:
                to_address = keys[1]
            if address in keys:
                idx = keys.index(address)
                pre = meta.get("preBalances", [])
                post = meta.get("postBalances", [])
                if idx < len(pre) and idx < len(post):
                    amount = abs(post[idx] - pre[idx])

        return TransactionRecord(
            hash=signature["signature"],
            from_address=from_address,
            to_address=to_address,
            amount=format_units(amount, self.chain.native_decimals),
            timestamp=signature.get("blockTime"),
            status=status,
        )

    async def get_transaction_history(self, address: str) -> AsyncIterator[TransactionRecord]:
        self.validate_address(address)

        before = None
        while True:
            options = {"limit": SIGNATURE_PAGE_SIZE, "commitment": self.commitment}
            if before:
                options["before"] = before
            signatures = await self.rpc.call("getSignaturesForAddress", [address, options])
            for signature in signatures or []:
                tx = await self.rpc.call(
                    "getTransaction",
                    [
                        signature["signature"],
                        {
                            "encoding": "jsonParsed",
                            "commitment": self.commitment,
                            "maxSupportedTransactionVersion": 0,
                        },
                    ],
                )
                yield self._parse_transaction(address, signature, tx)
            if not signatures or len(signatures) < SIGNATURE_PAGE_SIZE:
                return
            before = signatures[-1]["signature"]

    async def broadcast(self, signed_payload: str) -> str:
        try:
            return await self.rpc.call(
                "sendTransaction",
                [signed_payload, {"encoding": "base64", "preflightCommitment": self.commitment}],
            )
        except JsonRpcError as e:
            if e.code in REJECTION_CODES:
                raise TransactionRejectedError(str(e), chain_id=self.chain_id) from e
            raise

    async def get_confirmation(self, tx_hash: str) -> Optional[Confirmation]:
        result = await self.rpc.call(
            "getSignatureStatuses", [[tx_hash], {"searchTransactionHistory": True}]
        )
        status = (result.get("value") or [None])[0]
        if not status:
            return None

        if status.get("err"):
            raise TransactionRejectedError(
                f"Transaction {tx_hash} failed: {status['err']}",
                chain_id=self.chain_id,
                tx_hash=tx_hash,
            )

        if status.get("confirmationStatus") not in ("confirmed", "finalized"):
            return None

        return Confirmation(
            chain_id=self.chain_id,
            tx_hash=tx_hash,
            status=TxStatus.CONFIRMED,
            block=status.get("slot"),
        )

    async def ping(self) -> bool:
        return await self.rpc.call("getHealth") == "ok"
