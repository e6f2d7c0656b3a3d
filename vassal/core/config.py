from enum import StrEnum
from typing import Final

from pydantic import PositiveFloat, field_validator
from pydantic_settings import BaseSettings

DEFAULT_METRIC_KEY_PREFIX: Final[str] = "uWSGI"


class Environment(StrEnum):
    development = "development"
    production = "production"


class Settings(BaseSettings):
    ENV: Environment = Environment.development
    LOG_LEVEL: str = "INFO"

    UWSGI_SOCKET: str = ""
    METRIC_KEY_PREFIX: str = DEFAULT_METRIC_KEY_PREFIX
    PASS_TIMEOUT: PositiveFloat | None = None
    EMIT_GRAPHS: bool = False

    @field_validator("METRIC_KEY_PREFIX")
    @classmethod
    def default_blank_prefix(cls, value: str) -> str:
        return value.strip() or DEFAULT_METRIC_KEY_PREFIX

    @property
    def is_production(self) -> bool:
        return self.ENV == Environment.production


settings = Settings()
