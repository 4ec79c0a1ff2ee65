"""Minimal Solidity ABI encoding for the handful of calls the core makes."""

import re
from typing import Optional

# ERC-20
BALANCE_OF = "0x70a08231"
NAME = "0x06fdde03"
SYMBOL = "0x95d89b41"
DECIMALS = "0x313ce567"
TOTAL_SUPPLY = "0x18160ddd"
ALLOWANCE = "0xdd62ed3e"
APPROVE = "0x095ea7b3"

# Uniswap V2 router / factory / pair
GET_AMOUNTS_OUT = "0xd06ca61f"
SWAP_EXACT_TOKENS_FOR_TOKENS = "0x38ed1739"
SWAP_EXACT_ETH_FOR_TOKENS = "0x7ff36ab5"
SWAP_EXACT_TOKENS_FOR_ETH = "0x18cbafe5"
FACTORY = "0xc45a0155"
GET_PAIR = "0xe6a43905"
GET_RESERVES = "0x0902f1ac"
TOKEN0 = "0x0dfe1681"

# Chainlink aggregator
LATEST_ROUND_DATA = "0xfeaf968c"

MAX_UINT256 = 2**256 - 1

_HEX_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_hex_address(value: str) -> bool:
    return bool(_HEX_ADDRESS.match(value or ""))


def encode_uint(value: int) -> str:
    """Encode a uint256 as a 32-byte hex word."""
    if value < 0:
        raise ValueError("uint cannot be negative")
    return hex(value)[2:].zfill(64)


def encode_address(address: str) -> str:
    """Encode an address as a left-padded 32-byte hex word."""
    return address.lower().replace("0x", "").zfill(64)


def encode_call(selector: str, *words: str) -> str:
    return selector + "".join(words)


def encode_address_array(addresses: list[str]) -> str:
    """Encode the tail of a dynamic address[] (length + items)."""
    result = encode_uint(len(addresses))
    for addr in addresses:
        result += encode_address(addr)
    return result


def encode_get_amounts_out(amount_in: int, path: list[str]) -> str:
    """getAmountsOut(uint amountIn, address[] path)."""
    # Offset to path array (2 * 32 = 64 bytes)
    return encode_call(
        GET_AMOUNTS_OUT,
        encode_uint(amount_in),
        encode_uint(64),
        encode_address_array(path),
    )


def encode_swap_exact_tokens(
    selector: str,
    amount_in: int,
    amount_out_min: int,
    path: list[str],
    to_address: str,
    deadline: int,
) -> str:
    """swapExactTokensForTokens / swapExactTokensForETH."""
    # Offset to path array (5 * 32 = 160 bytes)
    return encode_call(
        selector,
        encode_uint(amount_in),
        encode_uint(amount_out_min),
        encode_uint(160),
        encode_address(to_address),
        encode_uint(deadline),
        encode_address_array(path),
    )


def encode_swap_exact_eth(amount_out_min: int, path: list[str], to_address: str, deadline: int) -> str:
    """swapExactETHForTokens (amount travels as tx value)."""
    # Offset to path array (4 * 32 = 128 bytes)
    return encode_call(
        SWAP_EXACT_ETH_FOR_TOKENS,
        encode_uint(amount_out_min),
        encode_uint(128),
        encode_address(to_address),
        encode_uint(deadline),
        encode_address_array(path),
    )


def _words(data: str) -> list[str]:
    body = data[2:] if data.startswith("0x") else data
    return [body[i:i + 64] for i in range(0, len(body), 64)]


def decode_uint(data: str, index: int = 0) -> int:
    """Decode the index-th 32-byte word as uint256."""
    words = _words(data)
    if index >= len(words):
        raise ValueError(f"ABI data too short for word {index}")
    return int(words[index], 16)


def decode_int(data: str, index: int = 0) -> int:
    """Decode the index-th 32-byte word as two's complement int256."""
    value = decode_uint(data, index)
    return value - 2**256 if value >= 2**255 else value


def decode_address(data: str, index: int = 0) -> str:
    return "0x" + _words(data)[index][-40:]


def decode_uint_array(data: str) -> list[int]:
    """Decode a single returned uint256[]."""
    offset_words = decode_uint(data, 0) // 32
    length = decode_uint(data, offset_words)
    return [decode_uint(data, offset_words + 1 + i) for i in range(length)]


def decode_string(data: str) -> Optional[str]:
    """Decode a returned string, falling back to bytes32 (e.g. MKR-style tokens)."""
    body = data[2:] if data.startswith("0x") else data
    if not body:
        return None
    if len(body) == 64:
        raw = bytes.fromhex(body).rstrip(b"\x00")
        return raw.decode("utf-8", errors="replace")
    offset = decode_uint(data, 0) * 2
    length = int(body[offset:offset + 64], 16)
    start = offset + 64
    raw = bytes.fromhex(body[start:start + length * 2])
    return raw.decode("utf-8", errors="replace")
