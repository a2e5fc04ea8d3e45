from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Catalog Access Filter"
    app_env: str = "local"
    app_debug: bool = True
    database_url: str = "sqlite+pysqlite:///./catalog.db"
    nested_folders_enabled: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()
