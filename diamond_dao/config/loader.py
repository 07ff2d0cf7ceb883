"""
Diamond DAO TOML Configuration Loader

Loads every section of diamond_dao.toml with environment variable overrides.
Each section is a dataclass with from_dict / apply_env.

Environment variable mapping:
    [dao] signers                      → DIAMOND_DAO_SIGNERS (comma separated)
    [dao] vote_threshold               → DIAMOND_DAO_VOTE_THRESHOLD
    [dao] admin                        → DIAMOND_DAO_ADMIN
    [dao] proposal_expiration_seconds  → DIAMOND_DAO_PROPOSAL_EXPIRATION
    [logging] level                    → DIAMOND_DAO_LOG_LEVEL
    [logging] file_output              → DIAMOND_DAO_LOG_FILE_OUTPUT
    [storage] state_file               → DIAMOND_DAO_STATE_FILE
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    DEFAULT_PROPOSAL_EXPIRATION_SECONDS,
    DIAMOND_DAO_CONFIG_FILE,
    DIAMOND_DAO_STATE_FILE,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------


@dataclass
class DAOSectionConfig:
    """[dao] section."""
    signers: List[str] = field(default_factory=list)
    vote_threshold: int = 1
    admin: str = ""
    proposal_expiration_seconds: float = DEFAULT_PROPOSAL_EXPIRATION_SECONDS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DAOSectionConfig":
        return cls(
            signers=list(data.get("signers", [])),
            vote_threshold=data.get("vote_threshold", 1),
            admin=data.get("admin", ""),
            proposal_expiration_seconds=data.get(
                "proposal_expiration_seconds", DEFAULT_PROPOSAL_EXPIRATION_SECONDS
            ),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("DIAMOND_DAO_SIGNERS"):
            self.signers = [s.strip() for s in v.split(",") if s.strip()]
        if v := os.environ.get("DIAMOND_DAO_VOTE_THRESHOLD"):
            self.vote_threshold = _parse_int("DIAMOND_DAO_VOTE_THRESHOLD", v)
        if v := os.environ.get("DIAMOND_DAO_ADMIN"):
            self.admin = v.strip()
        if v := os.environ.get("DIAMOND_DAO_PROPOSAL_EXPIRATION"):
            self.proposal_expiration_seconds = _parse_float("DIAMOND_DAO_PROPOSAL_EXPIRATION", v)

    @property
    def effective_admin(self) -> str:
        """Admin defaults to the first signer when not configured."""
        if self.admin:
            return self.admin
        return self.signers[0] if self.signers else ""


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = "INFO"
    file_output: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file_output=bool(data.get("file_output", False)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("DIAMOND_DAO_LOG_LEVEL"):
            self.level = v.strip().upper()
        if v := os.environ.get("DIAMOND_DAO_LOG_FILE_OUTPUT"):
            self.file_output = v.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class StorageSectionConfig:
    """[storage] section."""
    state_file: str = str(DIAMOND_DAO_STATE_FILE)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageSectionConfig":
        return cls(state_file=data.get("state_file", str(DIAMOND_DAO_STATE_FILE)))

    def apply_env(self) -> None:
        if v := os.environ.get("DIAMOND_DAO_STATE_FILE"):
            self.state_file = v


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


# -----------------------------------------------------------------------

@dataclass
class GovernanceConfig:
    """
    Unified configuration.

    Loads every section of diamond_dao.toml and applies environment
    variable overrides. This is the single source of truth at runtime.
    """
    dao: DAOSectionConfig = field(default_factory=DAOSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)
    storage: StorageSectionConfig = field(default_factory=StorageSectionConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceConfig":
        """Create GovernanceConfig from a parsed TOML dict."""
        return cls(
            dao=DAOSectionConfig.from_dict(data.get("dao", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
            storage=StorageSectionConfig.from_dict(data.get("storage", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "GovernanceConfig":
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to diamond_dao.toml

        Returns:
            GovernanceConfig instance
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.dao.apply_env()
        self.logging.apply_env()
        self.storage.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Signer identities themselves are validated when the DAO is built.

        Returns:
            True if all valid

        Raises:
            ConfigurationError: on invalid config
        """
        if not self.dao.signers:
            raise ConfigurationError("[dao] signers must not be empty")
        if not isinstance(self.dao.vote_threshold, int) or self.dao.vote_threshold < 1:
            raise ConfigurationError(
                f"[dao] vote_threshold must be a positive integer, got {self.dao.vote_threshold!r}"
            )
        if self.dao.vote_threshold > len(self.dao.signers):
            raise ConfigurationError(
                f"[dao] vote_threshold {self.dao.vote_threshold} exceeds "
                f"{len(self.dao.signers)} signers"
            )
        if self.dao.proposal_expiration_seconds <= 0:
            raise ConfigurationError("[dao] proposal_expiration_seconds must be > 0")
        if self.logging.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")
        return True

    # --- construction -----------------------------------------------------

    def create_dao(self, **kwargs):
        """Deploy a DiamondDAO from the [dao] section."""
        from ..governance.dao import DiamondDAO

        self.validate()
        return DiamondDAO(
            self.dao.signers,
            self.dao.vote_threshold,
            self.dao.effective_admin,
            proposal_expiration=self.dao.proposal_expiration_seconds,
            **kwargs,
        )

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "dao": {
                "signers": list(self.dao.signers),
                "vote_threshold": self.dao.vote_threshold,
                "admin": self.dao.effective_admin,
                "proposal_expiration_seconds": self.dao.proposal_expiration_seconds,
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
            },
            "storage": {
                "state_file": self.storage.state_file,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> GovernanceConfig:
    """
    Load governance configuration.

    Resolution order:
        1. Explicit *path* argument
        2. DIAMOND_DAO_CONFIG env var
        3. ./diamond_dao.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("DIAMOND_DAO_CONFIG", str(DIAMOND_DAO_CONFIG_FILE))

    return GovernanceConfig.from_file(path)
