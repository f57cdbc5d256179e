import pytest

from app import create_app


@pytest.fixture
def save_file(tmp_path):
    return str(tmp_path / "save.json")


@pytest.fixture
def client(save_file):
    app = create_app({"TESTING": True, "SAVE_FILE": save_file})
    return app.test_client()


def test_state(client):
    res = client.get("/api/state")
    assert res.status_code == 200
    data = res.get_json()
    assert data["balance"] == 1000.0
    assert len(data["assets"]) == 10
    assert [a["index"] for a in data["assets"]] == list(range(10))
    assert data["clock_label"] == "Day 0 00:00"


def test_select_by_name_and_index(client):
    assets = client.get("/api/assets").get_json()["assets"]

    res = client.post("/api/select", json={"name": "Nope"})
    assert res.status_code == 404
    assert res.get_json()["outcome"] == "unknown_asset"

    res = client.post("/api/select", json={"name": assets[3]["name"]})
    assert res.get_json()["selection"] == assets[3]["name"]

    res = client.post("/api/select", json={"index": 1})
    assert res.get_json()["selection"] == assets[1]["name"]

    res = client.post("/api/deselect")
    assert res.get_json()["selection"] is None


def test_asset_detail(client):
    name = client.get("/api/assets").get_json()["assets"][0]["name"]
    body = client.get(f"/api/assets/{name}").get_json()
    assert body["name"] == name
    assert body["rug_chance"] == 0.0
    assert body["progress"]["share"] == 0.0
    assert client.get("/api/assets/Nope").status_code == 404


def test_sell_validation(client):
    name = client.get("/api/assets").get_json()["assets"][0]["name"]
    assert client.post("/api/sell", json={}).status_code == 400
    assert client.post("/api/sell", json={"name": name, "amount": "lots"}).status_code == 400

    res = client.post("/api/sell", json={"name": name})
    assert res.status_code == 200
    assert res.get_json() == {"ok": False, "outcome": "invalid_amount", "balance": 1000.0}


def test_buy(client):
    name = client.get("/api/assets").get_json()["assets"][0]["name"]
    res = client.post("/api/buy", json={"name": name, "amount": 1})
    body = res.get_json()
    assert body["ok"] is True
    assert body["balance"] < 1000.0


def test_upgrade(client):
    res = client.post("/api/upgrade/rig")
    assert res.get_json()["balance"] == 990.0
    assert client.post("/api/upgrade/warp").status_code == 400

    preview = client.get("/api/upgrades").get_json()
    assert preview["rig"]["level"] == 2


def test_power_routes(client):
    assert client.post("/api/power/fill").get_json()["power_fill"] == 1.0
    res = client.post("/api/power/auto")
    assert res.get_json()["outcome"] == "locked"
    assert client.post("/api/power/click").get_json()["ok"] is True


def test_hardware_toggle(client):
    assert client.post("/api/hardware/cpu", json={"active": "no"}).status_code == 400
    assert client.post("/api/hardware/fpga", json={"active": False}).status_code == 400
    res = client.post("/api/hardware/cpu", json={"active": False})
    assert res.get_json()["hash_rate"] == 0.0


def test_tick_advances_clock(client):
    assert client.post("/api/tick", json={"count": 0}).status_code == 400
    res = client.post("/api/tick", json={"count": 60})
    state = res.get_json()["state"]
    assert state["clock"] == {"day": 0, "hour": 0, "minute": 15}


def test_pause_stops_ticks(client):
    assert client.post("/api/pause").get_json()["paused"] is True
    state = client.post("/api/tick", json={"count": 8}).get_json()["state"]
    assert state["clock"]["minute"] == 0


def test_game_survives_restart(client, save_file):
    client.post("/api/upgrade/rig")
    client.post("/api/tick", json={"count": 4})

    again = create_app({"TESTING": True, "SAVE_FILE": save_file}).test_client()
    state = again.get("/api/state").get_json()
    assert state["balance"] == 990.0
    assert state["rig"]["level"] == 2
    assert state["clock"]["minute"] == 1


def test_new_game_resets(client):
    client.post("/api/upgrade/rig")
    state = client.post("/api/new_game").get_json()
    assert state["balance"] == 1000.0
    assert state["rig"]["level"] == 1


def test_config_is_clamped(client):
    res = client.post("/api/config", json={"tick_ms": 0})
    assert res.get_json()["tick_ms"] == 1
    assert client.post("/api/config", json={"tick_ms": "fast"}).status_code == 400
    assert client.get("/api/config").get_json()["tick_ms"] == 1


def test_config_history_length_applies_to_running_game(client):
    client.post("/api/config", json={"history_length": 4})
    client.post("/api/tick", json={"count": 600})
    chart = client.get("/api/chart").get_json()
    assert all(len(series) <= 4 for series in chart["series"])
    assert len(chart["labels"]) <= 4


def test_catchup_and_cancel(client):
    res = client.post("/api/catchup")
    assert res.get_json()["ok"] is True
    assert client.post("/api/catchup/cancel").get_json() == {"ok": False, "running": False}


def test_terminal_and_welcome(client):
    client.post("/api/upgrade/rig")
    logs = client.get("/api/terminal?last=5").get_json()["logs"]
    assert logs[-1] == "Rig upgraded for $10.00"

    assert client.get("/api/welcome").get_json() == {"seen_welcome": False}
    assert client.post("/api/welcome").get_json() == {"seen_welcome": True}
    assert client.post("/api/save").get_json() == {"ok": True}
