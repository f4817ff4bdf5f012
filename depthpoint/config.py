"""Server configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DEFAULT_DEPTH_SCALE: float = 60.0
    DEFAULT_POINT_SIZE: float = 0.08
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024
    PORT: int = 8000
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ]
    # RunPod streaming chunk size (base64 characters)
    CHUNK_SIZE: int = 10 * 1024 * 1024

    model_config = {"env_prefix": "DP_", "env_file": ".env"}


settings = Settings()
