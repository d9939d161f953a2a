import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from aggregator.services.client import ServiceEndpoint

load_dotenv()


class Settings(BaseModel):
    # Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Downstream Services
    content_api_url: str = Field(
        default="http://content-api:80", alias="CONTENT_API_URL"
    )
    fitness_api_url: str = Field(
        default="http://fitness-api:80", alias="FITNESS_API_URL"
    )
    social_graph_api_url: str = Field(
        default="http://socialgraph-api:80", alias="SOCIAL_GRAPH_API_URL"
    )
    posts_api_url: str = Field(default="http://posts-api:80", alias="POSTS_API_URL")
    downstream_timeout: float = Field(default=30.0, alias="DOWNSTREAM_TIMEOUT")

    # Retry Configuration
    retry_max_retries: int = Field(default=3, ge=0, alias="RETRY_MAX_RETRIES")
    retry_backoff_base: float = Field(default=2.0, gt=0, alias="RETRY_BACKOFF_BASE")

    # Cache TTLs (seconds)
    subject_cache_ttl: int = Field(default=300, gt=0, alias="SUBJECT_CACHE_TTL")
    global_cache_ttl: int = Field(default=600, gt=0, alias="GLOBAL_CACHE_TTL")
    feed_cache_ttl: int = Field(default=300, gt=0, alias="FEED_CACHE_TTL")
    cache_max_size: int = Field(default=1000, gt=0, alias="CACHE_MAX_SIZE")

    # Fetch limits
    global_fetch_limit: int = Field(default=10000, gt=0, alias="GLOBAL_FETCH_LIMIT")
    feed_posts_per_user: int = Field(default=10, gt=0, alias="FEED_POSTS_PER_USER")
    feed_max_concurrency: int = Field(default=10, gt=0, alias="FEED_MAX_CONCURRENCY")

    model_config = {"populate_by_name": True}

    def endpoints(self) -> dict[str, ServiceEndpoint]:
        """Build the fixed set of downstream endpoints, keyed by name."""
        urls = {
            "content": self.content_api_url,
            "fitness": self.fitness_api_url,
            "social-graph": self.social_graph_api_url,
            "posts": self.posts_api_url,
        }
        return {
            name: ServiceEndpoint(
                name=name, base_url=url, timeout=self.downstream_timeout
            )
            for name, url in urls.items()
        }


def load_settings() -> Settings:
    """Read settings from the process environment (after .env is loaded)."""
    return Settings.model_validate(dict(os.environ))


global_settings = load_settings()
