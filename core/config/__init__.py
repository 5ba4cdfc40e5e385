# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 18 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the cron pipelines.
"""

from core.config.defaults import (
    KV_BULK_MAX_ENTRIES,
    DatabaseConfig,
    IpfsConfig,
    KVConfig,
    ExportConfig,
    CargoConfig,
    get_config,
    reset_config,
)

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
