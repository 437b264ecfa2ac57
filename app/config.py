from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="TernReader Web Tools", alias="APP_NAME")
    service_version: str = Field(default="0.1.0", alias="SERVICE_VERSION")
    device_name: str = Field(default="Xteink X4 (ESP32-C3)", alias="DEVICE_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    cache_dir: str = Field(default="cache", alias="CACHE_DIR")
    static_dir: str = Field(default="static", alias="STATIC_DIR")
    fonts_dir: str = Field(default="fonts", alias="FONTS_DIR")
    models_dir: str = Field(default="models", alias="MODELS_DIR")

    release_api_url: str = Field(
        default="https://api.github.com/repos/azw413/TernReader/releases/latest",
        alias="RELEASE_API_URL",
    )
    github_token: str | None = Field(default=None, alias="GITHUB_TOKEN")
    user_agent: str = Field(default="tern-site", alias="USER_AGENT")
    release_cache_ttl_seconds: int = Field(default=600, alias="RELEASE_CACHE_TTL_SECONDS")
    upstream_timeout_seconds: float = Field(default=30.0, alias="UPSTREAM_TIMEOUT_SECONDS")

    firmware_prefix: str = Field(default="tern-fw-", alias="FIRMWARE_PREFIX")
    firmware_suffix: str = Field(default=".bin", alias="FIRMWARE_SUFFIX")
    firmware_download_path: str = Field(default="/api/firmware/app", alias="FIRMWARE_DOWNLOAD_PATH")

    image_converter_command: str = Field(default="tern-image", alias="IMAGE_CONVERTER_COMMAND")
    book_converter_command: str = Field(default="tern-book", alias="BOOK_CONVERTER_COMMAND")
    converter_timeout_seconds: int = Field(default=120, alias="CONVERTER_TIMEOUT_SECONDS")


@lru_cache
def get_settings() -> Settings:
    return Settings()
