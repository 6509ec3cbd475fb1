from pydantic import AnyUrl
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    ENV: str = "dev"
    SERVICE_PORT: int = 8080
    MAX_EVENT_SIZE: int = 65536
    LOG_JSON: bool = True
    # Pub/sub sidecar reachable over local HTTP
    SIDECAR_HOST: str = "localhost"
    SIDECAR_HTTP_PORT: int = 3500
    SIDECAR_TIMEOUT_SECONDS: float = 5.0
    PUBSUB_NAME: str = "pubsub"
    # Queue name doubles as the publish topic
    QUEUE_NAME: str = "telemetry"
    # Readiness gate
    READINESS_TIMEOUT_SECONDS: float = 30.0
    READINESS_POLL_INTERVAL_SECONDS: float = 0.5
    # Publish retry
    PUBLISH_MAX_ATTEMPTS: int = 3
    PUBLISH_INITIAL_BACKOFF_MS: int = 100
    # Artificial delay before /simulate processes an event
    SIMULATE_DELAY_MS: int = 500
    # Queue listener (off unless explicitly enabled)
    REDIS_URL: AnyUrl | None = None
    QUEUE_LISTENER_ENABLED: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def sidecar_base_url(self) -> str:
        return f"http://{self.SIDECAR_HOST}:{self.SIDECAR_HTTP_PORT}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
