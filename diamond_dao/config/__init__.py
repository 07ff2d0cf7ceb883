"""
Diamond DAO Unified Configuration

Loads all sections of diamond_dao.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    DAOSectionConfig,
    GovernanceConfig,
    LoggingSectionConfig,
    StorageSectionConfig,
    load_config,
)

__all__ = [
    "DAOSectionConfig",
    "GovernanceConfig",
    "LoggingSectionConfig",
    "StorageSectionConfig",
    "load_config",
]
