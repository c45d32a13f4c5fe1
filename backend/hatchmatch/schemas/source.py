"""Pydantic schemas for the fly-shop source registry."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FlyShopSourceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    website: str
    reports_url: str
    waters_covered: list[str] = []
    state: str | None = None
    is_active: bool
    consecutive_failures: int
    last_successful_scrape: datetime | None = None


class FlyShopSourceCreate(BaseModel):
    name: str = Field(min_length=1)
    website: str = Field(min_length=1)
    reports_url: str = Field(min_length=1)
    waters_covered: list[str] = Field(min_length=1)
    state: str | None = None
