"""Application configuration using pydantic-settings.

Every value can be overridden from the environment or a `.env` file.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Safety Guards
    # ======================
    dry_run: bool = Field(
        default=False,
        description="Quote and execute against simulated venues and bridge only",
    )

    # ======================
    # Chain RPC Endpoints
    # ======================
    eth_rpc_url: Optional[str] = Field(default=None, description="Ethereum RPC URL override")
    bsc_rpc_url: Optional[str] = Field(default=None, description="BNB Chain RPC URL override")
    sol_rpc_url: Optional[str] = Field(default=None, description="Solana RPC URL override")
    btl_rpc_url: Optional[str] = Field(default=None, description="Bottle Chain RPC URL override")

    rpc_timeout: float = Field(default=30.0, description="Per-request RPC timeout (seconds)")
    confirmation_timeout: float = Field(
        default=180.0, description="Maximum wait for a transaction confirmation (seconds)"
    )
    confirmation_poll_interval: float = Field(
        default=2.0, description="Delay between confirmation polls (seconds)"
    )

    # ======================
    # Block Explorer API Keys
    # ======================
    etherscan_api_key: str = Field(default="", description="Etherscan API key")
    bscscan_api_key: str = Field(default="", description="BscScan API key")

    # ======================
    # Price Feeds
    # ======================
    coingecko_api_url: str = Field(
        default="https://api.coingecko.com/api/v3", description="CoinGecko API base URL"
    )
    coingecko_api_key: str = Field(default="", description="CoinGecko demo/pro API key")
    price_poll_interval: float = Field(default=10.0, description="Price refresh period (seconds)")

    # ======================
    # Network Monitor
    # ======================
    network_check_interval: float = Field(
        default=30.0, description="Chain reachability check period (seconds)"
    )
    network_check_timeout: float = Field(
        default=5.0, description="Per-chain reachability check timeout (seconds)"
    )

    # ======================
    # DEX / Bridge Configuration
    # ======================
    raydium_api_url: str = Field(
        default="https://transaction-v1.raydium.io", description="Raydium trade API URL"
    )
    bridge_token: str = Field(default="USDC", description="Intermediary asset for cross-chain swaps")
    bridge_fee_percent: Decimal = Field(
        default=Decimal("0.1"), description="Bridge fee in percent of the bridged amount"
    )
    cross_chain_time_seconds: int = Field(
        default=15 * 60, description="Quoted settlement time for bridged swaps"
    )
    evm_swap_deadline_seconds: int = Field(
        default=20 * 60, description="Deadline passed to EVM router swaps"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def bridge_fee_description(self) -> str:
        """Bridge fee as shown in composed quotes (e.g. '0.1%')."""
        return f"{self.bridge_fee_percent.normalize():f}%"

    def get_rpc_override(self, chain_id: str) -> Optional[str]:
        """Get RPC URL override for a chain id, if configured."""
        rpc_map = {
            "ethereum": self.eth_rpc_url,
            "binance": self.bsc_rpc_url,
            "solana": self.sol_rpc_url,
            "bottle-chain": self.btl_rpc_url,
        }
        return rpc_map.get(chain_id)

    def get_explorer_api_key(self, chain_id: str) -> str:
        """Get block explorer API key for a chain id."""
        key_map = {
            "ethereum": self.etherscan_api_key,
            "binance": self.bscscan_api_key,
        }
        return key_map.get(chain_id, "")

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "explorers": {
                "ethereum": "***" if self.etherscan_api_key else "(not set)",
                "binance": "***" if self.bscscan_api_key else "(not set)",
            },
            "prices": {
                "coingecko": self.coingecko_api_url,
                "coingecko_api_key": "***" if self.coingecko_api_key else "(not set)",
                "poll_interval": self.price_poll_interval,
            },
            "bridge": {
                "token": self.bridge_token,
                "fee": self.bridge_fee_description,
                "estimated_time_seconds": self.cross_chain_time_seconds,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
