from unittest.mock import MagicMock

import pytest
import requests

from findyourwave.store import RowStore, StoreError
from conftest import make_response


def _store(response=None, side_effect=None):
    session = requests.Session()
    session.get = MagicMock(return_value=response, side_effect=side_effect)
    return RowStore("https://proj.supabase.co/", "anon-key", timeout=5, session=session), session.get


def test_select_sends_key_and_query():
    store, get = _store(make_response([{"lzone": 3}]))
    rows = store.select("waves", "lzone", filters={"beach_name": "like.*Songjeong*"}, order="date.asc", limit=1)
    assert rows == [{"lzone": 3}]
    url = get.call_args.args[0]
    kwargs = get.call_args.kwargs
    assert url == "https://proj.supabase.co/rest/v1/waves"
    assert kwargs["params"] == {
        "select": "lzone",
        "beach_name": "like.*Songjeong*",
        "order": "date.asc",
        "limit": 1,
    }
    assert kwargs["timeout"] == 5
    assert store.session.headers["apikey"] == "anon-key"
    assert store.session.headers["Authorization"] == "Bearer anon-key"


def test_select_maps_http_error():
    store, _ = _store(make_response({"message": "boom"}, status=500))
    with pytest.raises(StoreError, match="HTTP error 500"):
        store.select("waves")


def test_select_maps_connection_error():
    store, _ = _store(side_effect=requests.ConnectionError("refused"))
    with pytest.raises(StoreError, match="unreachable"):
        store.select("waves")


def test_select_rejects_bad_payloads():
    store, _ = _store(make_response(raw=b"<html>"))
    with pytest.raises(StoreError, match="invalid JSON"):
        store.select("waves")
    store, _ = _store(make_response({"rows": []}))
    with pytest.raises(StoreError, match="Unexpected"):
        store.select("waves")


def test_unconfigured_store_raises():
    store = RowStore("", "")
    with pytest.raises(StoreError, match="SUPABASE_URL"):
        store.list_beaches()


def test_find_zone():
    store, get = _store(make_response([{"lzone": "7"}]))
    assert store.find_zone("Jukdo") == 7
    assert get.call_args.kwargs["params"]["beach_name"] == "like.*Jukdo*"
    store, _ = _store(make_response([]))
    assert store.find_zone("Nowhere") is None


def test_zone_forecast_skips_malformed_rows():
    rows = [
        {"date": 2025040206, "lzone": 3, "beach_name": "Songjeong", "wave": 1.2, "period": 7.0,
         "wave_direction": 100, "wind": 3.0, "wind_direction": 10},
        {"date": 2025040209, "lzone": 3, "wave": None},
    ]
    store, get = _store(make_response(rows))
    records = store.zone_forecast(3)
    assert len(records) == 1
    assert records[0].date == "2025040206"
    assert get.call_args.kwargs["params"]["lzone"] == "eq.3"
    assert get.call_args.kwargs["params"]["order"] == "date.asc"


def test_latest_timestamp():
    store, get = _store(make_response([{"date": 2025040321}]))
    assert store.latest_timestamp() == "2025040321"
    assert get.call_args.kwargs["params"]["order"] == "date.desc"
    store, _ = _store(make_response([]))
    assert store.latest_timestamp() is None


def test_best_spots_builds_or_filter():
    row = {"region": "Busan", "beach_name": "Songjeong", "date": "2025040206", "surf_score": 8.1,
           "wave": 1.3, "period": 8.0, "wind": 2.0, "wave_direction": None, "wind_direction": 200}
    store, get = _store(make_response([row]))
    spots = store.best_spots(["2025040206", "2025040209"])
    assert spots[0].beach_name == "Songjeong"
    assert spots[0].wave_direction is None
    params = get.call_args.kwargs["params"]
    assert params["or"] == "(date.eq.2025040206,date.eq.2025040209)"
    assert params["order"] == "surf_score.desc"
    assert store.best_spots([]) == []


@pytest.mark.parametrize("bad", ["NaN", "Infinity", "-Infinity"])
def test_zone_forecast_skips_non_finite_rows(bad):
    good = {"date": 2025040206, "lzone": 3, "beach_name": "Songjeong", "wave": 1.2, "period": 7.0,
            "wave_direction": 100, "wind": 3.0, "wind_direction": 10}
    store, _ = _store(make_response([good, dict(good, date=2025040209, wave_direction=bad)]))
    records = store.zone_forecast(3)
    assert [r.date for r in records] == ["2025040206"]


def test_best_spots_skips_non_finite_rows():
    row = {"region": "Busan", "beach_name": "Songjeong", "date": "2025040206", "surf_score": "NaN",
           "wave": 1.3, "period": 8.0, "wind": 2.0, "wave_direction": 90, "wind_direction": 200}
    store, _ = _store(make_response([row]))
    assert store.best_spots(["2025040206"]) == []


@pytest.mark.parametrize("row", [{"lzone": None}, {}, {"lzone": "north"}])
def test_find_zone_without_usable_zone_raises(row):
    store, _ = _store(make_response([row]))
    with pytest.raises(StoreError, match="no usable zone"):
        store.find_zone("Songjeong")
