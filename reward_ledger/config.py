from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Reward ledger settings, read from REWARD_LEDGER_* environment variables."""

    APP_NAME: str = "Reward Distribution Ledger"
    LOG_LEVEL: str = "INFO"

    # Ledger identity
    OWNER_ADDRESS: str = "owner"
    LEDGER_ADDRESS: str = "reward-ledger"
    REWARD_ASSET: str = "REWARD"

    # Claim window; opens CLAIM_OPENS_IN seconds after startup unless pinned
    CLAIM_OPENS_AT: Optional[int] = None
    CLAIM_OPENS_IN: int = 86400

    # Minted to the owner in the in-memory custodian at startup
    SEED_OWNER_BALANCE: int = 0

    model_config = SettingsConfigDict(env_prefix="REWARD_LEDGER_", env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
