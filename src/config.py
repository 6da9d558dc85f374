"""Service configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "extra": "ignore"}

    redis_url: str = "redis://localhost:6379"

    # Site-tree cache: a stored tree is reused only inside the freshness window,
    # while the store keeps it around for the (longer) TTL.
    links_cache_enabled: bool = True
    links_cache_freshness_seconds: int = 86400
    links_cache_ttl_seconds: int = 86400 * 4
    cache_put_max_attempts: int = 5
    cache_put_initial_delay: float = 1.0

    max_kin_limit: int = 30
    max_visited_urls_limit: int = 1000

    fetch_timeout_seconds: float = 15.0
    user_agent: str = "Sitetree-Bot/1.0 (+https://github.com/sitetree/sitetree-service)"

    firecrawl_api_key: str = ""
    firecrawl_api_url: str = ""
    firecrawl_host_patterns: str = ""

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
