"""
Vault Configuration — validated settings for one credvault session.

Values come from environment variables and may be overridden by CLI flags:
    CREDVAULT_PATH         = <path to the vault file>
    CREDVAULT_T_COST       = <Argon2 iterations, new vaults only>
    CREDVAULT_M_COST       = <Argon2 memory in KiB, new vaults only>
    CREDVAULT_PARALLELISM  = <Argon2 lanes, new vaults only>
    CREDVAULT_PASSPHRASE   = <passphrase; prompted for when unset>

Security Note:
    The passphrase is never stored on the config object and never logged.
"""
import logging
import os

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from credvault.utils.dataModels import (
    DEFAULT_M_COST_KiB,
    DEFAULT_PARALLELISM,
    DEFAULT_T_COST,
    KdfParams,
    MAX_M_COST_KiB,
    MAX_PARALLELISM,
    MAX_T_COST,
    MIN_M_COST_KiB,
    MIN_PARALLELISM,
    MIN_T_COST,
)
from credvault.utils.helper import default_vault_path

logger = logging.getLogger("credvault")

PASSPHRASE_ENV = "CREDVAULT_PASSPHRASE"


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    vault_path: Path = Field(default_factory=default_vault_path)
    t_cost: int = Field(default=DEFAULT_T_COST, ge=MIN_T_COST, le=MAX_T_COST)
    m_cost: int = Field(default=DEFAULT_M_COST_KiB, ge=MIN_M_COST_KiB, le=MAX_M_COST_KiB)
    parallelism: int = Field(default=DEFAULT_PARALLELISM, ge=MIN_PARALLELISM, le=MAX_PARALLELISM)
    allow_empty: bool = True

    @field_validator("vault_path")
    @classmethod
    def expand_path(cls, v: Path) -> Path:
        """Expand ``~`` so paths from the environment behave like shell paths."""
        return v.expanduser()

    @model_validator(mode="after")
    def validate_memory_cost(self) -> "VaultConfig":
        """Argon2 needs at least 8 KiB of memory per lane."""
        if self.m_cost < 8 * self.parallelism:
            raise ValueError(
                f"m_cost {self.m_cost} KiB is below 8 * parallelism ({8 * self.parallelism})"
            )
        return self

    @property
    def kdf(self) -> KdfParams:
        return KdfParams(t_cost=self.t_cost, m_cost=self.m_cost, parallelism=self.parallelism)

    @classmethod
    def from_env(cls, **overrides) -> "VaultConfig":
        """Create VaultConfig from environment, with non-None ``overrides`` winning.

        Returns:
            Populated VaultConfig instance.
        """
        values = {}
        env_map = {
            "vault_path": "CREDVAULT_PATH",
            "t_cost": "CREDVAULT_T_COST",
            "m_cost": "CREDVAULT_M_COST",
            "parallelism": "CREDVAULT_PARALLELISM",
        }
        for field_name, env_name in env_map.items():
            raw = os.environ.get(env_name)
            if raw:
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        config = cls(**values)
        logger.debug(
            "Vault config: path=%s t=%d m=%d p=%d",
            config.vault_path, config.t_cost, config.m_cost, config.parallelism,
        )
        return config
