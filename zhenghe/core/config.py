# zhenghe/core/config.py

from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import SecretStr, Field

class Settings(BaseSettings):
    DEEPSEEK_API_KEY: SecretStr = SecretStr("")
    DEEPSEEK_BASE_URL: str = "https://api.deepseek.com"
    DEEPSEEK_MODEL: str = Field(default="deepseek-chat")
    DEFAULT_MAX_TOKENS: int = Field(default=50, gt=0)

    LOG_DEBUG: bool = False
    LOG_DIR: Optional[str] = None  # console only if not set

    class Config:
        env_file = ".env"   # loads values from .env file if present
        env_file_encoding = "utf-8"
        extra = "ignore"

settings = Settings()
