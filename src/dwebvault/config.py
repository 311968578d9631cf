"""
Vault configuration -- defaults for deadlines, replication and names.

Read from <home>/config.yaml. A missing or broken file means defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from . import VAULT_HOME
from .timer import DEFAULT_TIMEOUT_MS

logger = logging.getLogger("dwebvault.config")

CONFIG_FILENAME = "config.yaml"


class VaultConfig(BaseModel):
    """Tunable defaults for vault access."""

    model_config = ConfigDict(extra="ignore")

    timeout_ms: float = Field(default=DEFAULT_TIMEOUT_MS, gt=0, description="Default operation deadline")
    sparse: bool = Field(default=True, description="Replicas fetch content on demand")
    dns_timeout_seconds: float = 5.0
    dns_cache_ttl_seconds: int = 3600


def _home(home: Optional[Path]) -> Path:
    return (home or Path(VAULT_HOME)).expanduser()


def load_config(home: Optional[Path] = None) -> VaultConfig:
    """Load configuration from disk.

    Args:
        home: Config directory. Defaults to $DWEBVAULT_HOME or ~/.dwebvault.

    Returns:
        VaultConfig: Parsed config, or defaults if unavailable.
    """
    config_file = _home(home) / CONFIG_FILENAME
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return VaultConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config %s: %s", config_file, exc)
    return VaultConfig()


def save_config(config: VaultConfig, home: Optional[Path] = None) -> Path:
    """Persist configuration to disk and return the file path."""
    config_dir = _home(home)
    config_dir.mkdir(parents=True, exist_ok=True)
    config_file = config_dir / CONFIG_FILENAME
    config_file.write_text(
        yaml.dump(config.model_dump(mode="json"), default_flow_style=False),
        encoding="utf-8",
    )
    return config_file
