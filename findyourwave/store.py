"""
Read-only client for the hosted row store.

The forecast tables live in a Supabase project and are queried through its
PostgREST endpoint (``{url}/rest/v1/{table}``) with the public anon key.
Nothing here writes: rows are created by an external ingestion job.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests
from pydantic import ValidationError

from .models import Beach, BestSpot, WaveRecord, timestamp_key

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the row store cannot be reached or returns a bad response."""


def _parse_rows(model, rows: List[Dict[str, Any]]) -> list:
    """Validate rows into ``model``, skipping (and logging) malformed ones."""
    parsed = []
    for row in rows:
        try:
            parsed.append(model(**row))
        except ValidationError as e:
            logger.warning("Skipping malformed %s row: %s", model.__name__, e.errors()[0].get("msg"))
    return parsed


class RowStore:
    """Thin PostgREST client.

    Args:
        url: Base URL of the hosted project (``https://<ref>.supabase.co``).
        key: Public anon API key.
        timeout: Seconds before an outgoing request is abandoned.
        session: Optional ``requests.Session`` to reuse connections.
    """

    def __init__(self, url: str, key: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.configured = bool(url and key)
        self.base_url = (url or "").rstrip("/") + "/rest/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Accept": "application/json",
        })

    def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, str]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Run a select query and return the decoded rows.

        ``filters`` maps a column (or ``or``) to a PostgREST operator
        expression, e.g. ``{"lzone": "eq.3"}``.  ``order`` is ``column.asc`` or
        ``column.desc``.
        """
        if not self.configured:
            raise StoreError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
        params: Dict[str, Any] = {"select": columns}
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit
        try:
            resp = self.session.get(f"{self.base_url}/{table}", params=params, timeout=self.timeout)
            resp.raise_for_status()
        except requests.HTTPError as e:
            status = getattr(e.response, "status_code", None)
            raise StoreError(f"Row store HTTP error {status} for table {table}") from e
        except requests.RequestException as e:
            raise StoreError(f"Row store unreachable: {e}") from e
        try:
            rows = resp.json()
        except ValueError as e:
            raise StoreError(f"Row store returned invalid JSON for table {table}") from e
        if not isinstance(rows, list):
            raise StoreError(f"Unexpected row store payload for table {table}")
        logger.debug("Fetched %d rows from %s", len(rows), table)
        return rows

    # -- beaches -----------------------------------------------------------

    def list_beaches(self) -> List[Beach]:
        rows = self.select("beaches", "beach_name, lat, lon, region")
        return _parse_rows(Beach, rows)

    # -- waves -------------------------------------------------------------

    def find_zone(self, beach: str) -> Optional[int]:
        """Return the zone whose beach list mentions ``beach``, or None."""
        rows = self.select(
            "waves",
            "lzone",
            filters={"beach_name": f"like.*{beach}*"},
            limit=1,
        )
        if not rows:
            return None
        try:
            return int(rows[0]["lzone"])
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Row store returned no usable zone for {beach}") from e

    def zone_forecast(self, lzone: int) -> List[WaveRecord]:
        """All forecast samples for a zone, oldest first."""
        rows = self.select("waves", "*", filters={"lzone": f"eq.{lzone}"}, order="date.asc")
        return _parse_rows(WaveRecord, rows)

    def latest_timestamp(self) -> Optional[str]:
        rows = self.select("waves", "date", order="date.desc", limit=1)
        if not rows:
            return None
        return timestamp_key(rows[0]["date"])

    def zone_listing(self, date_key: str) -> List[Dict[str, Any]]:
        """Zone/beach rows for one forecast timestamp (one row per zone)."""
        return self.select("waves", "lzone, beach_name", filters={"date": f"eq.{date_key}"})

    # -- best_spot ---------------------------------------------------------

    def best_spots(self, date_keys: Iterable[str]) -> List[BestSpot]:
        """Scored spots at any of the given timestamps, best score first."""
        keys = list(date_keys)
        if not keys:
            return []
        expr = ",".join(f"date.eq.{k}" for k in keys)
        rows = self.select(
            "best_spot",
            "region, beach_name, date, surf_score, wave, wave_direction, period, wind, wind_direction",
            filters={"or": f"({expr})"},
            order="surf_score.desc",
        )
        return _parse_rows(BestSpot, rows)
