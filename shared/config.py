from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Qubic RPC
    QUBIC_RPC_URL: str = "https://rpc.qubic.org/"
    QUBIC_EVENTS_URL: str = "https://api.qubic.org/"

    # Request pacing (seconds)
    RPC_MIN_INTERVAL: float = 0.5          # Cloudflare returns 429 below this spacing
    RPC_CACHE_TTL: float = 15.0
    RPC_RATE_LIMIT_COOLDOWN: float = 5.0
    RPC_TIMEOUT: float = 10.0

    # Tick polling
    TICK_REFRESH_INTERVAL: int = 60

    # Application
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
