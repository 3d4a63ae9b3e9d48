from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./ledger.db"
    sql_echo: bool = False
    # 0 disables the deadline on the locked phase of a transfer
    transfer_timeout_seconds: float = 5.0
    log_level: str = "INFO"
    service_name: str = "internal-transfer-system"
    host: str = "0.0.0.0"
    port: int = 8080


@lru_cache
def get_settings() -> Settings:
    return Settings()
