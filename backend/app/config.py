"""Configuration management for the application."""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_title: str = "Solana Transaction Tracker API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # CORS Configuration
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Solana Configuration
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    helius_api_key: Optional[str] = None  # Takes precedence over solana_rpc_url
    helius_rpc_url: str = "https://mainnet.helius-rpc.com"
    rpc_timeout_seconds: float = 30.0

    # Sync Configuration
    page_limit: int = 100  # getSignaturesForAddress page size
    default_max_pages: int = 5
    max_pages_limit: int = 100
    max_wallets: int = 10  # per batch sync request

    # Storage Configuration
    storage_backend: str = "file"  # "file" or "memory"
    data_dir: str = "./data/transactions"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def rpc_url(self) -> str:
        """RPC endpoint used for signature fetching."""
        if self.helius_api_key:
            return f"{self.helius_rpc_url}/?api-key={self.helius_api_key}"
        return self.solana_rpc_url


settings = Settings()
