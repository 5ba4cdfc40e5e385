# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for database, IPFS, KV export and runs
# CREATED: 18 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides defaults for both cron pipelines.
Every value can be overridden via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
import sys
from dataclasses import dataclass, field
from typing import Optional


# Hard ceiling of the KV bulk endpoint
KV_BULK_MAX_ENTRIES = 10000


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DatabaseConfig:
    """PostgreSQL connection settings."""
    connection_string: str = "postgresql:///postgres?user=cargo&host=/var/run/postgresql"
    min_pool_size: int = 2
    max_pool_size: int = 16
    # seconds a caller waits for a free pooled connection
    acquire_timeout: float = 3600.0

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Create from environment variables."""
        return cls(
            connection_string=(
                os.getenv("DATABASE_URL")
                or os.getenv("CARGO_PG_CONNSTRING")
                or cls.connection_string
            ),
            min_pool_size=int(os.getenv("DB_POOL_MIN_SIZE", 2)),
            max_pool_size=int(os.getenv("DB_POOL_MAX_SIZE", 16)),
            acquire_timeout=float(os.getenv("DB_POOL_ACQUIRE_TIMEOUT", 3600)),
        )


@dataclass(frozen=True)
class IpfsConfig:
    """
    Defaults for the IPFS HTTP API.

    stat/refs calls get `extended_timeout_multiplier` times the base
    timeout since very large DAGs take a long time to walk.
    """
    api_url: str = "http://localhost:5001"
    timeout_seconds: int = 240
    max_workers: int = 128
    extended_timeout_multiplier: int = 15

    @property
    def extended_timeout_seconds(self) -> int:
        return self.timeout_seconds * self.extended_timeout_multiplier

    @classmethod
    def from_env(cls) -> "IpfsConfig":
        """Create from environment variables."""
        return cls(
            api_url=os.getenv("IPFS_API", "http://localhost:5001"),
            timeout_seconds=int(os.getenv("IPFS_API_TIMEOUT", 240)),
            max_workers=int(os.getenv("IPFS_API_MAX_WORKERS", 128)),
        )


@dataclass(frozen=True)
class KVConfig:
    """Cloudflare Workers KV credentials."""
    api_url: str = "https://api.cloudflare.com/client/v4"
    account_id: str = ""
    api_token: str = ""
    deals_namespace_id: str = ""
    timeout_seconds: float = 300.0

    @classmethod
    def from_env(cls) -> "KVConfig":
        """Create from environment variables."""
        return cls(
            api_url=os.getenv("CF_API_URL", "https://api.cloudflare.com/client/v4"),
            account_id=os.getenv("CF_ACCOUNT_ID", ""),
            api_token=os.getenv("CF_API_TOKEN", ""),
            deals_namespace_id=os.getenv("CF_KVNAMESPACE_DEALS", ""),
            timeout_seconds=float(os.getenv("CF_API_TIMEOUT", 300)),
        )


@dataclass(frozen=True)
class ExportConfig:
    """
    Defaults for the status export.

    The batch limits sit deliberately below the bulk endpoint's
    10k entries / 100MiB request ceiling.
    """
    max_batch_keys: int = KV_BULK_MAX_ENTRIES
    max_batch_bytes: int = 85 << 20
    statement_timeout_hours: float = 3.0
    project_id: int = 2
    deal_network: str = "mainnet"

    def __post_init__(self):
        if not 0 < self.max_batch_keys <= KV_BULK_MAX_ENTRIES:
            raise ValueError(
                f"max_batch_keys must be within 1..{KV_BULK_MAX_ENTRIES}, got {self.max_batch_keys}"
            )
        if self.max_batch_bytes <= 0:
            raise ValueError(f"max_batch_bytes must be positive, got {self.max_batch_bytes}")

    @property
    def statement_timeout_ms(self) -> int:
        return int(self.statement_timeout_hours * 3600 * 1000)

    @classmethod
    def from_env(cls) -> "ExportConfig":
        """Create from environment variables."""
        return cls(
            max_batch_keys=int(os.getenv("EXPORT_MAX_BATCH_KEYS", KV_BULK_MAX_ENTRIES)),
            max_batch_bytes=int(os.getenv("EXPORT_MAX_BATCH_BYTES", 85 << 20)),
            statement_timeout_hours=float(os.getenv("EXPORT_STATEMENT_TIMEOUT_HOURS", 3)),
            project_id=int(os.getenv("EXPORT_PROJECT_ID", 2)),
            deal_network=os.getenv("DEAL_NETWORK", "mainnet"),
        )


# ============================================================================
# GLOBAL CONFIG INSTANCE
# ============================================================================

@dataclass
class CargoConfig:
    """Container for all configuration sections."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    ipfs: IpfsConfig = field(default_factory=IpfsConfig)
    kv: KVConfig = field(default_factory=KVConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    show_progress: bool = False

    @classmethod
    def from_env(cls) -> "CargoConfig":
        """Create all sections from environment variables."""
        return cls(
            database=DatabaseConfig.from_env(),
            ipfs=IpfsConfig.from_env(),
            kv=KVConfig.from_env(),
            export=ExportConfig.from_env(),
            show_progress=_env_bool("SHOW_PROGRESS", sys.stderr.isatty()),
        )


_config: Optional[CargoConfig] = None


def get_config() -> CargoConfig:
    """Get global config instance."""
    global _config
    if _config is None:
        _config = CargoConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (for testing)."""
    global _config
    _config = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "KV_BULK_MAX_ENTRIES",
    "DatabaseConfig",
    "IpfsConfig",
    "KVConfig",
    "ExportConfig",
    "CargoConfig",
    "get_config",
    "reset_config",
]
