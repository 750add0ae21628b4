"""
Конфигурация приложения на pydantic-settings.
Значения читаются из переменных окружения и файла .env.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Приложение
    APP_NAME: str = "tablebook"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Хранение данных
    DATA_FILE: str = "data/tablebook.json"
    AUTOSAVE: bool = True

    model_config = {
        "env_prefix": "TABLEBOOK_",
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    return Settings()
