from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from apn_client.config.paths import env_file_path

_UNSET = object()

BrowserEngine = Literal["chromium", "firefox", "webkit"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(env_file_path()),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = "INFO"

    apn_base_url: str = Field(
        default="https://partnercentral.awspartner.com", alias="APN_BASE_URL"
    )
    apn_username: str | None = Field(default=None, alias="APN_USERNAME")
    apn_password: str | None = Field(default=None, alias="APN_PASSWORD")

    browser_engine: BrowserEngine = Field(default="chromium", alias="APN_BROWSER")
    headless: bool = Field(default=True, alias="APN_HEADLESS")
    # export date columns follow the browser locale
    locale: str = Field(default="en-US", alias="APN_LOCALE")
    default_timeout_ms: int | None = Field(default=None, alias="APN_DEFAULT_TIMEOUT_MS")
    max_download_bytes: int = Field(default=50 * 1024 * 1024, alias="APN_MAX_DOWNLOAD_BYTES")
    artifacts_dir: str = Field(default="artifacts", alias="APN_ARTIFACTS_DIR")


def require_portal_credentials(
    username: object = _UNSET,
    password: object = _UNSET,
) -> tuple[str, str]:
    """
    If a value is provided (even None), use it. Otherwise fall back to settings.
    Keeps the check unit-testable without a local .env file.
    """
    user = settings.apn_username if username is _UNSET else username
    pwd = settings.apn_password if password is _UNSET else password

    missing = []
    if not isinstance(user, str) or not user.strip():
        missing.append("APN_USERNAME")
    if not isinstance(pwd, str) or not pwd:
        missing.append("APN_PASSWORD")
    if missing:
        raise RuntimeError(
            f"Missing required portal settings: {', '.join(missing)}. "
            "Add them to .env (recommended) or set them as environment variables."
        )

    return user, pwd


settings = Settings()
