"""
Forecast shaping for the Find Your Wave pages.

Rows fetched from the hosted store are raw hourly samples for a forecast zone.
This module turns them into what the pages display: a qualitative rating from
the wave height, compass labels and arrow rotations from bearings, days of
eight 3-hour slots (with "no data" placeholders for the gaps), zone groupings
for the beach listing and the best spot per region for the landing page.
Nothing here performs I/O.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .models import BestSpot, WaveRecord

logger = logging.getLogger(__name__)

# Upper bounds (exclusive) of each rating band, in meters of significant height.
RATING_BANDS: List[Tuple[float, str, str]] = [
    (0.5, "POOR", "orange"),
    (1.0, "POOR TO FAIR", "yellow"),
    (1.5, "FAIR", "green"),
    (2.0, "FAIR TO GOOD", "emerald"),
]
TOP_RATING = ("GOOD", "blue")
NO_DATA = "NO DATA"

COMPASS_16 = ["N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
              "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW"]
COMPASS_8 = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]

# Eight 3-hour forecast slots per day.
SLOT_HOURS = [f"{h:02d}:00" for h in range(0, 24, 3)]
KEY_HOURS = ("06:00", "12:00", "18:00")
DAYTIME_HOURS = ("06", "09", "12", "15", "18")

GUST_FACTOR = 1.3


def rating(height: float) -> Dict[str, str]:
    """Bucket a significant wave height into a qualitative rating.

    Args:
        height: Significant wave height in meters.

    Returns:
        Dict with ``rating`` (e.g. "FAIR") and ``color`` (a display hint).
    """
    for upper, label, color in RATING_BANDS:
        if height < upper:
            return {"rating": label, "color": color}
    label, color = TOP_RATING
    return {"rating": label, "color": color}


def compass_direction(bearing: float) -> str:
    """Convert a bearing in degrees into one of 16 compass points."""
    idx = int((bearing % 360) / 22.5 + 0.5) % 16
    return COMPASS_16[idx]


def compass_direction_8(bearing: float) -> str:
    """Simplified variant of :func:`compass_direction` with 8 points."""
    idx = int((bearing % 360) / 45.0 + 0.5) % 8
    return COMPASS_8[idx]


def direction_rotation(direction: str) -> float:
    """Rotation in degrees for an up-pointing arrow showing where wind or swell travels.

    Directions are reported as "coming from", so the arrow points the opposite
    way: wind from N rotates 180, from S rotates 0.  Unknown labels rotate 0.
    """
    if not isinstance(direction, str):
        return 0.0
    label = direction.strip().upper()
    if label not in COMPASS_16:
        return 0.0
    return (COMPASS_16.index(label) * 22.5 + 180.0) % 360.0


def empty_slot(hour: str) -> Dict[str, Any]:
    """Placeholder for a slot the store has no row for."""
    return {
        "time": hour,
        "surf": "-",
        "rating": NO_DATA,
        "color": "muted",
        "has_data": False,
        "swell": {"height": "-", "period": "-", "direction": "N", "rotation": direction_rotation("N")},
        "wind": {"speed": "-", "gust": "-", "direction": "N", "rotation": direction_rotation("N")},
    }


def forecast_slot(record: WaveRecord) -> Dict[str, Any]:
    """Display entry for one forecast sample."""
    hour = f"{record.date[8:10]}:00"
    swell_dir = compass_direction(record.wave_direction)
    wind_dir = compass_direction(record.wind_direction)
    slot = {
        "time": hour,
        "surf": f"{record.wave - 0.2:.1f}-{record.wave + 0.2:.1f}",
        "has_data": True,
        "wave": record.wave,
        "swell": {
            "height": f"{record.wave:.1f}m",
            "period": f"{round(record.period)}",
            "direction": swell_dir,
            "rotation": direction_rotation(swell_dir),
        },
        "wind": {
            "speed": f"{round(record.wind)}",
            "gust": f"{round(record.wind * GUST_FACTOR)}",
            "direction": wind_dir,
            "rotation": direction_rotation(wind_dir),
        },
    }
    slot.update(rating(record.wave))
    return slot


def _split_key(key: str) -> Optional[Tuple[str, str]]:
    """Split a ``YYYYMMDDHH`` key into (``YYYYMMDD``, ``HH:00``)."""
    if len(key) < 10 or not key[:10].isdigit():
        return None
    day, hour = key[:8], key[8:10]
    try:
        datetime.strptime(day, "%Y%m%d")
    except ValueError:
        return None
    if int(hour) > 23:
        return None
    return day, f"{hour}:00"


def fill_day(slots: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Complete one day with the eight standard slots.

    Standard slots come first in time order, placeholders fill the gaps, and
    any off-grid hours that carry data follow in time order.  Applying this to
    an already filled day returns an equal day.
    """
    day = {hour: slots.get(hour) or empty_slot(hour) for hour in SLOT_HOURS}
    for hour in sorted(h for h in slots if h not in day):
        day[hour] = slots[hour]
    return day


def group_by_day(records: Iterable[WaveRecord]) -> Dict[str, Dict[str, Dict[str, Any]]]:
    """Group unordered forecast rows into days of 3-hour slots.

    Args:
        records: Forecast samples for one zone, in any order.

    Returns:
        Mapping of ``YYYYMMDD`` to an ordered mapping of ``HH:00`` to slot
        entries, days in ascending order.  When two rows share a timestamp the
        later one in iteration order wins.
    """
    raw: Dict[str, Dict[str, Dict[str, Any]]] = {}
    for record in records:
        parts = _split_key(record.date)
        if parts is None:
            logger.warning("Skipping forecast row with malformed timestamp %r", record.date)
            continue
        day, hour = parts
        raw.setdefault(day, {})[hour] = forecast_slot(record)
    return {day: fill_day(raw[day]) for day in sorted(raw)}


def key_hours(slots: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Collapsed view of a day: morning, noon and evening only."""
    return [slots[h] for h in KEY_HOURS if h in slots]


def format_day(day_key: str) -> str:
    """``20250402`` -> ``Wed, Apr 02``."""
    try:
        return datetime.strptime(day_key[:8], "%Y%m%d").strftime("%a, %b %d")
    except ValueError:
        return day_key


def format_timestamp(key: str) -> str:
    """``2025040206`` -> ``Apr 02, 06:00``."""
    parts = _split_key(key)
    if parts is None:
        return key
    day, hour = parts
    return f"{datetime.strptime(day, '%Y%m%d').strftime('%b %d')}, {hour}"


def tide_info(day_key: str) -> Dict[str, Any]:
    """Sample tide points and sun times for a day.

    No tide source is wired in yet, so the values are a fixed semidiurnal
    pattern shifted slightly by the day of month.  Deterministic per date.
    """
    try:
        offset = int(day_key[6:8]) % 3
    except ValueError:
        offset = 0
    shift = offset * 0.1
    return {
        "current": f"{1.2 + shift:.1f}m",
        "points": [
            {"time": "5:34am", "height": f"{1.7 + shift:.1f}m"},
            {"time": "12:14pm", "height": f"{0.3 + shift:.1f}m"},
            {"time": "6:07pm", "height": f"{1.3 + shift:.1f}m"},
            {"time": "11:54pm", "height": f"{0.3 + shift:.1f}m"},
        ],
        "sun": {
            "first_light": "5:30am",
            "sunrise": "5:53am",
            "sunset": "5:52pm",
            "last_light": "6:15pm",
        },
    }


def build_days(records: Iterable[WaveRecord]) -> List[Dict[str, Any]]:
    """Everything the beach page needs, one entry per day."""
    days = []
    for day, slots in group_by_day(records).items():
        days.append({
            "date": day,
            "label": format_day(day),
            "slots": list(slots.values()),
            "key_slots": key_hours(slots),
            "tide": tide_info(day),
        })
    return days


def group_beaches(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Group listing rows into zones with their beach names.

    ``beach_name`` holds a comma-separated list; names are trimmed and each
    appears once per zone.  Zones keep first-seen order.
    """
    groups: Dict[int, List[str]] = {}
    for row in rows:
        try:
            lzone = int(row["lzone"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping listing row without a zone: %r", row)
            continue
        beaches = groups.setdefault(lzone, [])
        for name in str(row.get("beach_name") or "").split(","):
            name = name.strip()
            if name and name not in beaches:
                beaches.append(name)
    return [{"lzone": lzone, "beaches": beaches} for lzone, beaches in groups.items()]


def filter_groups(groups: List[Dict[str, Any]], query: Optional[str]) -> List[Dict[str, Any]]:
    """Keep beaches whose name contains ``query`` (case-insensitive); drop emptied zones."""
    q = (query or "").strip().lower()
    if not q:
        return groups
    filtered = []
    for group in groups:
        hits = [b for b in group["beaches"] if q in b.lower()]
        if hits:
            filtered.append({"lzone": group["lzone"], "beaches": hits})
    return filtered


def daytime_keys(today: date, days: int = 3) -> List[str]:
    """Timestamp keys for the daytime slots of ``today`` and the following days."""
    keys = []
    for i in range(days):
        d = (today + timedelta(days=i)).strftime("%Y%m%d")
        keys.extend(f"{d}{h}" for h in DAYTIME_HOURS)
    return keys


def best_by_region(spots: Iterable[BestSpot]) -> List[BestSpot]:
    """Pick the top-scoring spot of each region, best first.

    Each beach first keeps its highest-scoring row; each region then keeps
    its highest-scoring beach.  Ties keep the row seen first.
    """
    by_beach: Dict[str, BestSpot] = {}
    for spot in spots:
        current = by_beach.get(spot.beach_name)
        if current is None or current.surf_score < spot.surf_score:
            by_beach[spot.beach_name] = spot
    by_region: Dict[str, BestSpot] = {}
    for spot in by_beach.values():
        current = by_region.get(spot.region)
        if current is None or current.surf_score < spot.surf_score:
            by_region[spot.region] = spot
    return sorted(by_region.values(), key=lambda s: s.surf_score, reverse=True)


def spot_card(spot: BestSpot) -> Dict[str, Any]:
    """Display fields for a landing-page card."""
    card = {
        "region": spot.region,
        "beach_name": spot.beach_name,
        "when": format_timestamp(spot.date),
        "wave": f"{spot.wave:.1f}",
        "period": f"{spot.period:.1f}",
        "wind": f"{spot.wind:.1f}",
        "score": f"{spot.surf_score:.2f}",
        "wave_arrow": None,
        "wind_arrow": None,
    }
    if spot.wave_direction is not None:
        card["wave_arrow"] = direction_rotation(compass_direction_8(spot.wave_direction))
    if spot.wind_direction is not None:
        card["wind_arrow"] = direction_rotation(compass_direction_8(spot.wind_direction))
    return card


def paginate(items: Sequence[Any], page: int, per_page: int = 6) -> Tuple[List[Any], int, int]:
    """Slice ``items`` for a 1-based ``page``.

    Returns:
        (items on the page, the page actually shown, total pages).  Out of
        range pages are clamped.
    """
    total_pages = max(1, math.ceil(len(items) / per_page))
    page = min(max(1, page), total_pages)
    start = (page - 1) * per_page
    return list(items[start:start + per_page]), page, total_pages


def zone_frame(records: Iterable[WaveRecord]) -> pd.DataFrame:
    """Time series of a zone's samples as a DataFrame sorted by time."""
    rows = []
    for record in records:
        try:
            ts = datetime.strptime(record.date[:10], "%Y%m%d%H")
        except ValueError:
            continue
        rows.append({
            "time": ts,
            "wave": record.wave,
            "period": record.period,
            "wind": record.wind,
        })
    df = pd.DataFrame(rows, columns=["time", "wave", "period", "wind"])
    if not df.empty:
        df.sort_values("time", inplace=True)
        df.reset_index(drop=True, inplace=True)
    return df
