"""Application configuration utilities."""

from __future__ import annotations

import os
from functools import lru_cache

import pytz
from pydantic import BaseModel, field_validator, model_validator


class Settings(BaseModel):
    MONTHLY_KUDOS_LIMIT: int = 3
    SENDER_REWARD: int = 1
    RECEIVER_REWARD: int = 5
    QUOTA_TZ: str = "UTC"
    TXN_MAX_ATTEMPTS: int = 5
    TXN_BACKOFF_SECONDS: float = 0.01
    SETTLEMENT_ATTEMPTS: int = 3
    TEAMS_WEBHOOK_URL: str | None = None
    LOG_LEVEL: str = "INFO"

    @field_validator("MONTHLY_KUDOS_LIMIT", "TXN_MAX_ATTEMPTS", "SETTLEMENT_ATTEMPTS")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("SENDER_REWARD")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("TXN_BACKOFF_SECONDS")
    @classmethod
    def _non_negative_backoff(cls, value: float) -> float:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("QUOTA_TZ")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"unknown time zone {value!r}") from exc
        return value

    @model_validator(mode="after")
    def _receiver_reward_dominates(self) -> "Settings":
        if self.RECEIVER_REWARD <= self.SENDER_REWARD:
            raise ValueError("RECEIVER_REWARD must exceed SENDER_REWARD")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings(
        MONTHLY_KUDOS_LIMIT=int(os.getenv("MONTHLY_KUDOS_LIMIT", "3")),
        SENDER_REWARD=int(os.getenv("SENDER_REWARD", "1")),
        RECEIVER_REWARD=int(os.getenv("RECEIVER_REWARD", "5")),
        QUOTA_TZ=os.getenv("QUOTA_TZ", "UTC"),
        TXN_MAX_ATTEMPTS=int(os.getenv("TXN_MAX_ATTEMPTS", "5")),
        TXN_BACKOFF_SECONDS=float(os.getenv("TXN_BACKOFF_SECONDS", "0.01")),
        SETTLEMENT_ATTEMPTS=int(os.getenv("SETTLEMENT_ATTEMPTS", "3")),
        TEAMS_WEBHOOK_URL=os.getenv("TEAMS_WEBHOOK_URL") or None,
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


settings = get_settings()
