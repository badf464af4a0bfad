import json
from typing import Any, List, Optional

import pytest
import requests

from findyourwave.models import BestSpot, WaveRecord
from findyourwave.store import StoreError


def make_response(payload: Any = None, status: int = 200, raw: Optional[bytes] = None) -> requests.Response:
    """Build a real ``requests.Response`` without touching the network."""
    resp = requests.Response()
    resp.status_code = status
    resp._content = raw if raw is not None else json.dumps(payload).encode()
    resp.url = "https://example.test/"
    resp.headers["Content-Type"] = "application/json"
    return resp


def wave(date_key, wave_m=1.2, lzone=3, beach_name="Songjeong, Haeundae", wave_direction=100.0, wind_direction=10.0):
    return WaveRecord(
        date=date_key,
        lzone=lzone,
        beach_name=beach_name,
        wave=wave_m,
        period=7.6,
        wave_direction=wave_direction,
        wind=4.2,
        wind_direction=wind_direction,
    )


def spot(region, beach, score, date_key="2025040206"):
    return BestSpot(
        region=region,
        beach_name=beach,
        date=date_key,
        surf_score=score,
        wave=1.4,
        period=8.0,
        wind=3.1,
        wave_direction=90.0,
        wind_direction=270.0,
    )


class FakeStore:
    """In-memory stand-in for ``RowStore`` with the same read methods."""

    def __init__(self, records: Optional[List[WaveRecord]] = None, spots: Optional[List[BestSpot]] = None):
        self.records = records or []
        self.spots = spots or []
        self.listing_dates: List[str] = []

    def list_beaches(self):
        from findyourwave.models import Beach

        return [Beach(beach_name="Songjeong", lat=35.18, lon=129.2, region="Busan")]

    def find_zone(self, beach):
        for r in self.records:
            if beach in r.beach_name:
                return r.lzone
        return None

    def zone_forecast(self, lzone):
        return [r for r in self.records if r.lzone == lzone]

    def latest_timestamp(self):
        return max((r.date for r in self.records), default=None)

    def zone_listing(self, date_key):
        self.listing_dates.append(date_key)
        return [{"lzone": r.lzone, "beach_name": r.beach_name} for r in self.records if r.date == date_key]

    def best_spots(self, date_keys):
        return list(self.spots)


class FailingStore:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise StoreError("row store down")

        return fail


@pytest.fixture
def records():
    return [
        wave("2025040206", 0.4),
        wave("2025040200", 1.2),
        wave("2025040312", 2.3),
        wave("2025040209", 1.7, lzone=7, beach_name="Jukdo, Ingu"),
    ]
