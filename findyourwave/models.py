"""
Pydantic models for rows of the hosted forecast tables.

Rows are produced by an external ingestion job and are read-only here.  The
``date`` column is a ``YYYYMMDDHH`` timestamp key that the store returns either
as an integer or a string, so it is normalized to a string on load.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


def timestamp_key(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


class Beach(BaseModel):
    """One named beach from the ``beaches`` table."""

    beach_name: str
    lat: float
    lon: float
    region: Optional[str] = None


class WaveRecord(BaseModel):
    """One forecast sample for a zone from the ``waves`` table."""

    model_config = ConfigDict(allow_inf_nan=False)

    date: str
    lzone: int
    beach_name: str = ""
    wave: float
    period: float
    wave_direction: float
    wind: float
    wind_direction: float

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value) -> str:
        return timestamp_key(value)


class BestSpot(BaseModel):
    """A scored spot/time pair from the ``best_spot`` table."""

    model_config = ConfigDict(allow_inf_nan=False)

    region: str
    beach_name: str
    date: str
    surf_score: float
    wave: float
    period: float
    wind: float
    wave_direction: Optional[float] = None
    wind_direction: Optional[float] = None

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value) -> str:
        return timestamp_key(value)
