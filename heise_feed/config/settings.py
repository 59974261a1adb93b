"""Application settings with environment variable support."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="HF_",  # HF_GRAPHQL_URL, HF_FEED_URL, etc.
    )

    # Remote store
    graphql_url: str = "ws://localhost:3421/graphql"
    reconnect: bool = True
    reconnect_max_delay_seconds: float = 30.0

    # Feed
    feed_url: str = "https://www.heise.de/rss/heise.rdf"
    fetch_timeout_seconds: int = 30
    fetch_max_retries: int = 3
    user_agent: str = "HeiseFeedBot/1.0"

    # Sync
    namespace: str = "heise-feed"
    link_tag: str = "Heise"
    default_watermark: str = "2000-01-01T00:00:00.000Z"
    filter_by_watermark: bool = False  # every fetched entry is stored when off

    # Logging
    log_level: str = "info"
    log_json: bool = False

    @field_validator("namespace")
    @classmethod
    def _strip_namespace_separator(cls, value: str) -> str:
        return value.rstrip(":")

    @property
    def event_prefix(self) -> str:
        """Prefix of every control event name, e.g. ``heise-feed:``."""
        return f"{self.namespace}:"


settings = Settings()
