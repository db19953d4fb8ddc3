import json

import pytest
from fastapi.testclient import TestClient

from capital_curve_app.config import CONFIG_ENV_VAR, load_curve_config
from capital_curve_app.main import create_app
from capital_curve_app.schemas import CurveConfig, TOKEN_UNIT

T = TOKEN_UNIT


@pytest.fixture
def client():
    return TestClient(create_app(CurveConfig()))


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_buy_and_sell_flow(client):
    r = client.post("/api/deposit", json={"tokens": 10_000 * T})
    assert r.status_code == 200
    assert r.json()["pool_balance"] == str(10_000 * T), "wide ints are rendered as strings"

    r = client.post("/api/buy", json={"collateral": 1000 * T})
    assert r.status_code == 200
    body = r.json()
    assert int(body["tokens_out"]) == 1000 * T
    assert int(body["profit"]) == 100 * T
    assert body["change"] == "0", "amounts keep one JSON type whatever their size"

    r = client.post("/api/quote/sell", json={"tokens": str(1000 * T)})
    assert r.status_code == 200
    assert int(r.json()["collateral_out"]) == 900 * T

    r = client.post("/api/sell", json={"tokens": 1000 * T})
    assert int(r.json()["collateral_out"]) == 900 * T

    state = client.get("/api/state").json()
    assert state["current_step"] == 0
    assert state["tokens_sold"] == "0"


def test_engine_errors_map_to_http(client):
    r = client.post("/api/buy", json={"collateral": 0})
    assert r.status_code == 422
    assert "collateral must be > 0" in r.json()["detail"]

    r = client.post("/api/buy", json={"collateral": 5 * T})
    assert r.status_code == 409, "empty pool"

    r = client.post("/api/sell", json={"tokens": 1})
    assert r.status_code == 409

    r = client.post("/api/buy", json={"collateral": -1})
    assert r.status_code == 422


def test_offset_backing_and_return_channel():
    client = TestClient(create_app(CurveConfig(offset_tokens=2000 * T)))

    r = client.post("/api/back-offset", json={"collateral": 5000 * T})
    assert r.status_code == 200
    assert int(r.json()["tokens_backed"]) == 2000 * T

    r = client.post("/api/back-offset", json={"collateral": 5000 * T})
    assert r.status_code == 409

    r = client.post("/api/return-sell", json={"tokens": 1000 * T})
    assert int(r.json()["collateral_out"]) == 900 * T


def test_profit_share_and_claim(client):
    client.post("/api/deposit", json={"tokens": 10_000 * T})
    client.post("/api/buy", json={"collateral": 1000 * T})

    r = client.post("/api/profit-share", json={"party": "Royalty", "percent": 900})
    assert r.status_code == 409

    r = client.post("/api/profit-share", json={"party": "owner", "percent": 900})
    assert r.json() == {"royalty_profit_percent": 900}

    r = client.post("/api/claim", json={"party": "royalty"})
    assert int(r.json()["amount"]) == 50 * T

    r = client.post("/api/claim", json={"party": "nobody"})
    assert r.status_code == 422


def test_reset(client):
    client.post("/api/deposit", json={"tokens": 500 * T})
    r = client.post("/api/reset")
    assert int(r.json()["tokens"]) == 500 * T
    assert client.get("/api/state").json()["pool_balance"] == "0"


def test_curve_table(client):
    r = client.post("/api/curve", json={"steps": 8})
    assert r.status_code == 200
    table = r.json()
    assert len(table["rows"]) == 8
    assert table["summary"]["peak_level_step"] == 5

    assert client.post("/api/curve", json={"steps": 0}).status_code == 422


def test_load_config_from_env(tmp_path, monkeypatch):
    path = tmp_path / "curve.json"
    path.write_text(json.dumps({"trend_change_step": 12, "profit_percent": 40}))
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

    config = load_curve_config()
    assert config.trend_change_step == 12
    assert config.profit_percent == 40

    monkeypatch.delenv(CONFIG_ENV_VAR)
    assert load_curve_config() == CurveConfig()


def test_counters_stay_numbers_and_amounts_stay_strings(client):
    state = client.get("/api/state").json()

    assert state["current_step"] == 0
    assert state["sale"]["step"] == 0
    assert isinstance(state["royalty_profit_percent"], int)
    for field in ("pool_balance", "support_balance", "current_price", "unbacked_tokens"):
        assert isinstance(state[field], str), f"{field}={state[field]!r} should be a string"
    assert isinstance(state["sale"]["price"], str)


def test_curve_table_beyond_float_range_renders_null():
    config = CurveConfig(
        level_increase_multiplier=1000,
        price_increment_multiplier=1000,
        trend_change_step=1000,
    )
    client = TestClient(create_app(config))

    r = client.post("/api/curve", json={"steps": 1000})

    assert r.status_code == 200, r.text
    last = r.json()["rows"][-1]
    assert last["cumulative_cost_display"] is None
    assert last["price_display"] == 2.0**999
    assert int(last["price"]) == 2**999 * 10**18
    assert r.json()["summary"]["total_cost"] is None
    assert r.json()["summary"]["average_price"] is None
