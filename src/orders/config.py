"""Runtime settings for the Orders domain, read from the environment."""

from datetime import timedelta, timezone
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.business_hours import BusinessHours


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    shopify_webhook_secret: str = ""
    admin_uids: str = ""  # comma separated allow-list
    identity_adapter: str = "static"
    default_currency: str = "INR"

    business_open_hour: int = Field(default=10, ge=0, le=23)
    business_close_hour: int = Field(default=17, ge=1, le=24)
    business_utc_offset_minutes: int | None = None  # None = host clock

    vendor_accept_window_minutes: int = Field(default=180, gt=0)
    admin_plan_window_minutes: int = Field(default=30, gt=0)
    catalog_query_chunk_size: int = Field(default=10, gt=0)

    @field_validator("default_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def admin_uid_set(self) -> frozenset[str]:
        return frozenset(uid.strip() for uid in self.admin_uids.split(",") if uid.strip())

    @property
    def vendor_accept_window(self) -> timedelta:
        return timedelta(minutes=self.vendor_accept_window_minutes)

    @property
    def admin_plan_window(self) -> timedelta:
        return timedelta(minutes=self.admin_plan_window_minutes)

    def business_hours(self) -> BusinessHours:
        tz = None
        if self.business_utc_offset_minutes is not None:
            tz = timezone(timedelta(minutes=self.business_utc_offset_minutes))
        return BusinessHours(
            open_hour=self.business_open_hour,
            close_hour=self.business_close_hour,
            tz=tz,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
