import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Settings(BaseSettings):
    # API Settings
    API_VERSION: str = os.getenv("API_VERSION", "v1")
    API_PREFIX: str = os.getenv("API_PREFIX", f"/api/{API_VERSION}")
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Server Settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "9090"))

    # CORS
    # Comma separated list of origins
    CORS_ALLOW_ORIGINS: str = os.getenv("CORS_ALLOW_ORIGINS", "*")

    # Codex storage service
    CODEX_URL: str = os.getenv("PODEX_CODEX_URL", "http://localhost:8080")
    CODEX_UPLOAD_PATH: str = os.getenv("CODEX_UPLOAD_PATH", "/api/codex/v1/data")
    CODEX_CONNECT_TIMEOUT_SECONDS: float = float(os.getenv("CODEX_CONNECT_TIMEOUT_SECONDS", "30"))

    # yt-dlp
    YTDLP_BINARY: str = os.getenv("YTDLP_BINARY", "./bin/yt-dlp_linux")
    REMUX_FORMAT: str = os.getenv("REMUX_FORMAT", "webm")
    # Longest stderr line accepted before the relay gives up on the stream
    STDERR_LINE_LIMIT: int = int(os.getenv("STDERR_LINE_LIMIT", str(64 * 1024)))
    MEDIA_CHUNK_SIZE: int = int(os.getenv("MEDIA_CHUNK_SIZE", str(64 * 1024)))
    # 0 disables the timeout
    MANIFEST_TIMEOUT_SECONDS: float = float(os.getenv("MANIFEST_TIMEOUT_SECONDS", "0"))

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

# Create settings instance
settings = Settings()
