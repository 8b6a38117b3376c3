"""Library Configuration: environment-driven defaults via pydantic-settings.

Invariants:
    - Every setting has a working default: recordbind runs with no environment at all
    - get_settings() is cached (lru_cache): single instance per process
    - A MappingRegistry may be handed its own Settings; the cached one is only the fallback

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - RECORDBIND_ prefix: the library shares the process environment with its host application
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from recordbind.core.domain_types import EnumStrategy

_STRATEGY_ALIASES = {
    "name": EnumStrategy.BY_NAME.value,
    "ordinal": EnumStrategy.BY_ORDINAL.value,
}


class Settings(BaseSettings):
    """recordbind settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RECORDBIND_", env_file=".env", case_sensitive=False, extra="ignore",
    )

    # Codecs
    enum_strategy: EnumStrategy = EnumStrategy.BY_NAME

    @field_validator("enum_strategy", mode="before")
    @classmethod
    def normalize_enum_strategy(cls, v: object) -> object:
        """Accept BY-NAME, by_name, Name, ordinal... as spellings of the two strategies."""
        if isinstance(v, str):
            text = v.strip().lower().replace("-", "_")
            return _STRATEGY_ALIASES.get(text, text)
        return v

    # Variant selection: unregistered types map as direct-mutation records
    bean_fallback: bool = True

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
