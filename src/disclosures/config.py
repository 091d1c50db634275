from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///disclosures.db"  # postgresql://... in production
    BLOB_ROOT: str = "./blobs"
    DISCLOSURE_BASE_URL: str = "https://disclosures-clerk.house.gov/public_disc"
    USER_AGENT: str = "TradingAnalyzer/1.0"
    HTTP_TIMEOUT: float = 30.0  # seconds
    OLLAMA_MODEL: str = "llama3.1:8b"
    LOG_LEVEL: str = "INFO"

    # Parser windows, tuned against the 2024-2025 PTR layout
    HEADER_WINDOW_LINES: int = 6
    ASSET_NAME_LOOKBACK_LINES: int = 10
    OWNER_LOOKBACK_CHARS: int = 100
    CONTEXT_BEFORE_CHARS: int = 200
    CONTEXT_AFTER_CHARS: int = 1000

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
