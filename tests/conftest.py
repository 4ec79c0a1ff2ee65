"""Pytest configuration and fixtures."""

import json
import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"

from bottlechain.chain_service import ChainService
from bottlechain.chains import ChainRegistry, default_registry
from bottlechain.config import Settings
from bottlechain.drivers.factory import create_driver
from bottlechain.signing import TransactionSigner, UnsignedTransaction

EVM_ADDRESS = "0x" + "ab" * 20
SOLANA_ADDRESS = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values = {
        "confirmation_timeout": 1.0,
        "confirmation_poll_interval": 0.0,
        "network_check_timeout": 0.5,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@dataclass
class RpcFailure:
    """Scripted JSON-RPC error object."""

    code: int
    message: str


class RpcStub:
    """Scripted JSON-RPC endpoint for httpx.MockTransport.

    Handlers map a method name to a result, or to a callable taking the
    params list and returning one. Unknown methods answer -32601.
    """

    def __init__(self, handlers: Optional[dict[str, Any]] = None, http_get: Optional[Callable] = None):
        self.handlers = handlers or {}
        self.http_get = http_get
        self.calls: list[tuple[str, list]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and self.http_get is not None:
            return self.http_get(request)

        payload = json.loads(request.content)
        method = payload["method"]
        params = payload["params"]
        self.calls.append((method, params))

        if method not in self.handlers:
            error = {"code": -32601, "message": f"Method {method} not found"}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": error})

        handler = self.handlers[method]
        result = handler(params) if callable(handler) else handler
        if isinstance(result, RpcFailure):
            error = {"code": result.code, "message": result.message}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": error})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def stub_chain_service(
    stubs: dict[str, RpcStub], settings: Settings, registry: Optional[ChainRegistry] = None
) -> ChainService:
    """ChainService whose drivers talk to the given per-chain stubs."""
    registry = registry or default_registry()
    clients = {chain_id: stub.client() for chain_id, stub in stubs.items()}
    return ChainService(
        registry,
        settings,
        driver_factory=lambda chain: create_driver(chain, settings, http_client=clients[chain.id]),
    )


class RecordingSigner(TransactionSigner):
    """Signer double that records what it was asked to sign."""

    def __init__(self, addresses: Optional[dict[str, str]] = None):
        self.addresses = addresses or {}
        self.signed: list[UnsignedTransaction] = []

    async def get_address(self, chain) -> str:
        if chain.id in self.addresses:
            return self.addresses[chain.id]
        return SOLANA_ADDRESS if chain.family.value == "solana" else EVM_ADDRESS

    async def sign(self, chain, tx: UnsignedTransaction) -> str:
        self.signed.append(tx)
        return f"0xsigned{len(self.signed)}"


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def dry_run_settings() -> Settings:
    return make_settings(dry_run=True)


@pytest.fixture
def registry() -> ChainRegistry:
    return default_registry()


@pytest.fixture
def signer() -> RecordingSigner:
    return RecordingSigner()
