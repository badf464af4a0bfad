"""
FastAPI application for Find Your Wave.

This file defines the web server: HTML pages rendered with Jinja2 templates
(landing page, beach listing, beach forecast, chat), a small JSON API used by
the pages' scripts, the chat relay endpoint and a PNG chart of a zone's wave
height.  Data comes from the hosted row store; chat replies come from the
chatbot webhook.
"""

from __future__ import annotations

import io
import logging
from datetime import date, datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field

import matplotlib

# Use a non‑interactive backend for server
matplotlib.use("Agg")  # noqa: E402
import matplotlib.pyplot as plt

from . import forecast
from .chat import FALLBACK_MESSAGE, ChatRelayError, relay_message
from .config import Settings, get_settings
from .log import setup_logging
from .store import RowStore, StoreError

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
SESSION_COOKIE = "session_id"
CARDS_PER_PAGE = 6

setup_logging(get_settings().log_level)

app = FastAPI(title="Find Your Wave")

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.globals["chat_fallback"] = FALLBACK_MESSAGE
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")


@lru_cache()
def get_store() -> RowStore:
    settings = get_settings()
    return RowStore(settings.supabase_url, settings.supabase_anon_key, timeout=settings.request_timeout)


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    userId: str = Field(min_length=1)


def _session_id(request: Request) -> str:
    return request.cookies.get(SESSION_COOKIE) or str(uuid4())


def _render(request: Request, name: str, context: Dict[str, Any], status_code: int = 200) -> HTMLResponse:
    """Render a page and make sure the browser keeps its chat session id."""
    session_id = context.setdefault("session_id", _session_id(request))
    response = templates.TemplateResponse(request, name, context, status_code=status_code)
    if request.cookies.get(SESSION_COOKIE) != session_id:
        response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
    return response


def _zone_records(store: RowStore, beach: str):
    """Return (lzone, records) for a beach, lzone None when the beach is unknown."""
    lzone = store.find_zone(beach)
    if lzone is None:
        return None, []
    return lzone, store.zone_forecast(lzone)


@app.get("/", response_class=HTMLResponse)
def index(request: Request, page: int = 1, store: RowStore = Depends(get_store)):
    """Landing page: wave-finder chat, best spot per region, call to action."""
    error: Optional[str] = None
    cards: List[Dict[str, Any]] = []
    total_pages = 1
    try:
        spots = store.best_spots(forecast.daytime_keys(date.today()))
        best = forecast.best_by_region(spots)
        shown, page, total_pages = forecast.paginate(best, page, CARDS_PER_PAGE)
        cards = [forecast.spot_card(s) for s in shown]
    except StoreError:
        logger.exception("Could not load best spots")
        error = "Could not load the best waves right now."
    return _render(request, "index.html", {
        "cards": cards,
        "page": page,
        "total_pages": total_pages,
        "error": error,
    })


@app.get("/waves", response_class=HTMLResponse)
def waves(
    request: Request,
    q: Optional[str] = None,
    store: RowStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Beach listing grouped by forecast zone, optionally filtered by name."""
    error: Optional[str] = None
    groups: List[Dict[str, Any]] = []
    try:
        listing_date = settings.listing_date or store.latest_timestamp()
        if listing_date:
            groups = forecast.group_beaches(store.zone_listing(listing_date))
    except StoreError:
        logger.exception("Could not load beach listing")
        error = "Could not load beaches right now."
    groups = forecast.filter_groups(groups, q)
    return _render(request, "waves.html", {
        "groups": groups,
        "query": q or "",
        "error": error,
    })


@app.get("/waves/{beach}", response_class=HTMLResponse)
def beach_page(
    request: Request,
    beach: str,
    store: RowStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Forecast for one beach: a collapsible table per day plus tides."""
    error: Optional[str] = None
    days: List[Dict[str, Any]] = []
    status_code = 200
    try:
        lzone, records = _zone_records(store, beach)
        if lzone is None:
            error = f"No forecast found for {beach}."
            status_code = 404
        else:
            days = forecast.build_days(records)
    except StoreError:
        logger.exception("Could not load forecast for %s", beach)
        error = "Could not load the forecast right now."
    return _render(request, "beach.html", {
        "beach": beach,
        "days": days,
        "error": error,
        "refresh_seconds": settings.refresh_seconds,
    }, status_code=status_code)


@app.get("/chatbot", response_class=HTMLResponse)
def chatbot(request: Request):
    return _render(request, "chatbot.html", {})


@app.get("/api/beaches")
def api_beaches(store: RowStore = Depends(get_store)):
    try:
        beaches = store.list_beaches()
    except StoreError:
        logger.exception("Error fetching beaches")
        return JSONResponse({"message": "Internal server error"}, status_code=500)
    return [b.model_dump() for b in beaches]


@app.get("/api/waves/{beach}")
def api_waves(beach: str, store: RowStore = Depends(get_store)):
    """Grouped forecast for a beach; polled by the beach page to pick up new rows."""
    try:
        lzone, records = _zone_records(store, beach)
    except StoreError:
        logger.exception("Error fetching forecast for %s", beach)
        return JSONResponse({"message": "Internal server error"}, status_code=500)
    if lzone is None:
        return JSONResponse({"message": f"Unknown beach {beach}"}, status_code=404)
    return {"beach": beach, "lzone": lzone, "days": forecast.build_days(records)}


@app.post("/api/chat")
def api_chat(body: ChatRequest, settings: Settings = Depends(get_settings)):
    """Relay one chat message to the chatbot webhook."""
    try:
        reply = relay_message(
            body.message,
            body.userId,
            settings.chat_webhook_url,
            timeout=settings.request_timeout,
        )
    except ChatRelayError:
        logger.exception("Chat API error")
        return JSONResponse(
            {"error": "Failed to process message", "fallback": FALLBACK_MESSAGE},
            status_code=500,
        )
    return {"response": reply}


@app.get("/chart", response_class=StreamingResponse)
def chart(beach: str, store: RowStore = Depends(get_store)):
    """Return a PNG chart of significant wave height for the beach's zone."""
    try:
        _, records = _zone_records(store, beach)
    except StoreError:
        logger.exception("Could not load chart data for %s", beach)
        records = []
    df = forecast.zone_frame(records)
    fig, ax = plt.subplots(figsize=(6, 3))
    if df.empty:
        # Blank image if no data
        ax.text(0.5, 0.5, "No data", ha="center", va="center")
        ax.set_axis_off()
    else:
        ax.plot(df["time"], df["wave"], marker="o")
        for upper, _, _ in forecast.RATING_BANDS:
            ax.axhline(upper, color="grey", linewidth=0.5, linestyle="--")
        ax.set_title(f"Wave height forecast for {beach}")
        ax.set_xlabel("Time")
        ax.set_ylabel("Height (m)")
        ax.set_ylim(bottom=0)
        fig.autofmt_xdate()
    buf = io.BytesIO()
    fig.savefig(buf, format="png", bbox_inches="tight")
    plt.close(fig)
    buf.seek(0)
    return StreamingResponse(buf, media_type="image/png")


@app.get("/health")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }
