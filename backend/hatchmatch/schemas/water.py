"""Pydantic schemas for water-body endpoints."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class WaterBodyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: str
    state: str
    city: str | None = None
    latitude: float
    longitude: float
    species: list[str] = []
    description: str | None = None


class WaterBodyCreate(BaseModel):
    name: str = Field(min_length=1)
    type: Literal["river", "lake", "stream", "creek", "pond"]
    state: str = Field(min_length=1)
    city: str | None = None
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    species: list[str] = []
    description: str | None = None
