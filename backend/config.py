"""Application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Field Log Pro"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent
    DATA_DIR: Path = BASE_DIR / "data"
    DB_PATH: Path = DATA_DIR / "fieldlog.db"

    # Database
    DATABASE_URL: str = ""

    # Auth
    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"

    # Web clients allowed to call the API
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # Reports
    REPORT_STREAM_CHUNK_SIZE: int = 64 * 1024

    def model_post_init(self, __context):
        """Ensure directories exist and set computed fields."""
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)

        if not self.DATABASE_URL:
            self.DATABASE_URL = f"sqlite+aiosqlite:///{self.DB_PATH}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
