from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    OPENAI_API_KEY: str = "sk-xxxx-your-key-here"
    OPENAI_MODEL: str = "gpt-4.1"
    OPENAI_TEMPERATURE: float = 0.2
    OPENAI_WEB_SEARCH: bool = True
    MODEL_TIMEOUT_SECONDS: float = 60.0

    # Tavily API, only used when the model returns no citations (https://tavily.com)
    TAVILY_API_KEY: str = "your-tavily-api-key-here"

    # Upstream tweet sources
    SYNDICATION_URL: str = "https://cdn.syndication.twimg.com/tweet-result"
    FXTWITTER_URL: str = "https://api.fxtwitter.com/status"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    FETCH_RETRIES: int = 1
    MAX_IMAGES: int = 4

    # Per-client sliding window
    RATE_LIMIT_MAX_REQUESTS: int = 10
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0
    RATE_LIMIT_SWEEP_INTERVAL_SECONDS: float = 300.0
    RATE_LIMIT_MAX_CLIENTS: int = 10000
    RATE_LIMIT_FAIL_OPEN: bool = True

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    class Config:
        env_file = ".env"


settings = Settings()
