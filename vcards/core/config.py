from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    app_name: str = Field(alias="APP_NAME", default="Virtual Cards")
    app_version: str = Field(alias="APP_VERSION", default="0.1.0")
    service_name: str = Field(alias="SERVICE_NAME", default="vcards-api")
    environment: str = Field(alias="ENVIRONMENT", default="development")
    database_use: Literal["dev", "prod"] = Field(alias="DATABASE_USE", default="dev")
    database_url_dev: str = Field(alias="DATABASE_URL_DEV")
    database_url_prod: str = Field(alias="DATABASE_URL_PROD", default="")
    database_echo: bool = Field(alias="DATABASE_ECHO", default=False)
    migrate_on_start: bool = Field(alias="MIGRATE_ON_START", default=True)
    reset_db_on_start: bool = Field(alias="RESET_DB_ON_START", default=False)
    secret_key: str = Field(alias="SECRET_KEY")
    access_token_expire_minutes: int = Field(alias="ACCESS_TOKEN_EXPIRE_MINUTES", default=30)
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    # Card issuance and purchase policy
    card_number_prefix: str = Field(alias="CARD_NUMBER_PREFIX", default="4111", pattern=r"^\d{4}$")
    conceal_foreign_cards: bool = Field(alias="CONCEAL_FOREIGN_CARDS", default=False)
    record_all_attempts: bool = Field(alias="RECORD_ALL_ATTEMPTS", default=False)
    require_auth_for_purchases: bool = Field(alias="REQUIRE_AUTH_FOR_PURCHASES", default=False)

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    @property
    def database_url(self) -> str:
        return self.database_url_prod if self.database_use == "prod" else self.database_url_dev


@lru_cache
def get_settings() -> Settings:
    return Settings()
