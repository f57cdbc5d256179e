import logging
import os
import threading
from typing import Any, Dict, Optional, Tuple

from flask import Flask, current_app, jsonify, request

from idle_miner.catchup import BulkSimulator
from idle_miner.outcomes import Outcome
from idle_miner.simulation import UPGRADE_KINDS, Simulation
from idle_miner.storage import SaveStore

# JSON API over the simulation. The browser (or any client) drives the game
# by calling /api/tick at the configured tick rate, like the old auto-miner.

logger = logging.getLogger(__name__)


class BadRequest(Exception):
    """Malformed request payload; answered with HTTP 400."""


class GameHolder:
    """One game per app. Every access to ``sim`` goes through ``lock``."""

    def __init__(self, store: SaveStore) -> None:
        self.store = store
        self.lock = threading.Lock()
        self.catchup: Optional[BulkSimulator] = None
        snap = store.load_game()
        if snap is None:
            self.sim = Simulation.new_game()
            logger.info("started a new game")
        else:
            self.sim = Simulation.from_snapshot(snap)
            logger.info("loaded game from %s (%s)", store.path, self.sim.clock.label())

    def save(self) -> None:
        self.store.save_game(self.sim.snapshot())


def _game() -> GameHolder:
    return current_app.extensions["idle_miner"]


def _payload() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise BadRequest("expected a JSON object")
    return payload


def _name(payload: Dict[str, Any]) -> str:
    name = payload.get("name")
    if not isinstance(name, str) or not name:
        raise BadRequest("'name' must be a non-empty string")
    return name


def _amount(payload: Dict[str, Any]) -> Optional[float]:
    amount = payload.get("amount")
    if amount is None:
        return None
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise BadRequest("'amount' must be a number")
    return float(amount)


def _outcome(outcome: Outcome, **extra: Any) -> Tuple[Any, int]:
    status = 404 if outcome is Outcome.UNKNOWN_ASSET else 200
    body = {"ok": outcome.ok, "outcome": outcome.value}
    body.update(extra)
    return jsonify(body), status


def _state(sim: Simulation) -> Dict[str, Any]:
    state = sim.status()
    state["assets"] = [c.summary() for c in sim.market.index_sorted()]
    return state


def create_app(test_config: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_mapping(
        SECRET_KEY="dev-key-for-flask-session",
        SAVE_FILE=os.path.join(os.getcwd(), "savegame.json"),
        MAX_TICKS_PER_REQUEST=1000,
    )
    if test_config is None:
        # FLASK_SAVE_FILE, FLASK_SECRET_KEY, ...
        app.config.from_prefixed_env()
    else:
        app.config.from_mapping(test_config)

    app.extensions["idle_miner"] = GameHolder(SaveStore(app.config["SAVE_FILE"]))

    @app.errorhandler(BadRequest)
    def bad_request(exc: BadRequest):
        return jsonify({"ok": False, "error": str(exc)}), 400

    @app.route("/api/state")
    def api_state():
        game = _game()
        with game.lock:
            return jsonify(_state(game.sim))

    @app.route("/api/assets")
    def api_assets():
        game = _game()
        include_inactive = request.args.get("include_inactive", "0") in ("1", "true", "yes")
        order = request.args.get("sort", "index")
        if order not in ("index", "price"):
            raise BadRequest("'sort' must be 'index' or 'price'")
        with game.lock:
            market = game.sim.market
            coins = market.price_sorted() if order == "price" else market.index_sorted(include_inactive)
            return jsonify({"assets": [c.summary() for c in coins]})

    @app.route("/api/assets/<name>")
    def api_asset(name: str):
        game = _game()
        with game.lock:
            coin = game.sim.market.get_by_name(name)
            if coin is None:
                return _outcome(Outcome.UNKNOWN_ASSET)
            body = coin.summary()
            body["progress"] = game.sim.progress(name)
            body["max_buyable"] = game.sim.market.max_buyable(name)
            body["rug_chance"] = coin.rug_chance(game.sim.clock.day)
            return jsonify(body)

    @app.route("/api/chart")
    def api_chart():
        game = _game()
        with game.lock:
            return jsonify(game.sim.market.chart())

    @app.route("/api/select", methods=["POST"])
    def api_select():
        payload = _payload()
        game = _game()
        with game.lock:
            if "index" in payload:
                index = payload["index"]
                if isinstance(index, bool) or not isinstance(index, int):
                    raise BadRequest("'index' must be an integer")
                outcome = game.sim.select_index(index)
            else:
                outcome = game.sim.select(_name(payload))
            if outcome:
                game.save()
            return _outcome(outcome, selection=game.sim.selection)

    @app.route("/api/deselect", methods=["POST"])
    def api_deselect():
        game = _game()
        with game.lock:
            game.sim.deselect()
            game.save()
            return _outcome(Outcome.OK, selection=None)

    @app.route("/api/sell", methods=["POST"])
    def api_sell():
        payload = _payload()
        name, amount = _name(payload), _amount(payload)
        game = _game()
        with game.lock:
            outcome = game.sim.sell(name, amount)
            if outcome:
                game.save()
            return _outcome(outcome, balance=game.sim.bank.balance)

    @app.route("/api/buy", methods=["POST"])
    def api_buy():
        payload = _payload()
        name, amount = _name(payload), _amount(payload)
        game = _game()
        with game.lock:
            outcome = game.sim.buy(name, amount)
            if outcome:
                game.save()
            return _outcome(outcome, balance=game.sim.bank.balance)

    @app.route("/api/dismiss", methods=["POST"])
    def api_dismiss():
        name = _name(_payload())
        game = _game()
        with game.lock:
            outcome = game.sim.dismiss(name)
            if outcome:
                game.save()
            return _outcome(outcome)

    @app.route("/api/upgrades")
    def api_upgrades():
        game = _game()
        with game.lock:
            return jsonify(game.sim.upgrade_preview())

    @app.route("/api/upgrade/<kind>", methods=["POST"])
    def api_upgrade(kind: str):
        if kind not in UPGRADE_KINDS:
            raise BadRequest(f"unknown upgrade {kind!r}")
        game = _game()
        with game.lock:
            outcome = game.sim.upgrade(kind)
            if outcome:
                game.save()
            return _outcome(outcome, balance=game.sim.bank.balance)

    @app.route("/api/power/fill", methods=["POST"])
    def api_power_fill():
        game = _game()
        with game.lock:
            outcome = game.sim.fill_power()
            if outcome:
                game.save()
            return _outcome(outcome, power_fill=game.sim.rig.power_fill)

    @app.route("/api/power/click", methods=["POST"])
    def api_power_click():
        game = _game()
        with game.lock:
            outcome = game.sim.click_fill()
            return _outcome(outcome, power_fill=game.sim.rig.power_fill)

    @app.route("/api/power/auto", methods=["POST"])
    def api_power_auto():
        game = _game()
        with game.lock:
            outcome = game.sim.toggle_auto_fill()
            if outcome:
                game.save()
            return _outcome(outcome, active=game.sim.rig.auto_fill_active)

    @app.route("/api/hardware/<kind>", methods=["POST"])
    def api_hardware(kind: str):
        if kind not in ("cpu", "gpu", "asic"):
            raise BadRequest(f"unknown hardware slot {kind!r}")
        active = _payload().get("active")
        if not isinstance(active, bool):
            raise BadRequest("'active' must be true or false")
        game = _game()
        with game.lock:
            outcome = game.sim.set_slot_active(kind, active)
            game.save()
            return _outcome(outcome, hash_rate=game.sim.hash_rate)

    @app.route("/api/pause", methods=["POST"])
    def api_pause():
        game = _game()
        with game.lock:
            paused = game.sim.toggle_pause()
            game.save()
            return _outcome(Outcome.OK, paused=paused)

    @app.route("/api/tick", methods=["POST"])
    def api_tick():
        count = _payload().get("count", 1)
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise BadRequest("'count' must be a positive integer")
        count = min(count, app.config["MAX_TICKS_PER_REQUEST"])
        game = _game()
        with game.lock:
            sim = game.sim
            before_logs = len(sim.events.lines)
            for _ in range(count):
                sim.tick()
            game.save()
            new_logs = sim.events.lines[before_logs:]
            return jsonify({"state": _state(sim), "logs": new_logs[-50:]})

    @app.route("/api/catchup", methods=["POST"])
    def api_catchup():
        game = _game()
        with game.lock:
            days = game.sim.days_behind()
            runner = BulkSimulator(game.sim)
            game.catchup = runner
            try:
                result = runner.run(days)
            finally:
                game.catchup = None
            game.save()
            return _outcome(
                result.outcome,
                days_run=result.days_run,
                total=result.total,
                elapsed_seconds=result.elapsed_seconds,
            )

    @app.route("/api/catchup/cancel", methods=["POST"])
    def api_catchup_cancel():
        # No lock here: the running catch-up holds it.
        runner = _game().catchup
        if runner is None:
            return jsonify({"ok": False, "running": False})
        runner.cancel()
        return jsonify({"ok": True, "running": True})

    @app.route("/api/terminal")
    def api_terminal():
        try:
            last = int(request.args.get("last", "200"))
        except ValueError:
            last = 200
        game = _game()
        with game.lock:
            return jsonify({"logs": game.sim.get_terminal_logs(last=last)})

    @app.route("/api/config", methods=["GET", "POST"])
    def api_config():
        game = _game()
        if request.method == "GET":
            with game.lock:
                return jsonify(game.sim.config.to_dict())

        payload = _payload()
        overrides = {}
        for key in game.sim.config.to_dict():
            value = payload.get(key)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise BadRequest(f"{key!r} must be a number")
            overrides[key] = value
        with game.lock:
            game.sim.configure(**overrides)
            game.save()
            body = {"ok": True}
            body.update(game.sim.config.to_dict())
            return jsonify(body)

    @app.route("/api/welcome", methods=["GET", "POST"])
    def api_welcome():
        game = _game()
        with game.lock:
            if request.method == "POST":
                game.store.mark_welcome_seen()
            return jsonify({"seen_welcome": game.store.seen_welcome()})

    @app.route("/api/save", methods=["POST"])
    def api_save():
        """Force a save from the UI."""
        game = _game()
        with game.lock:
            game.save()
            return jsonify({"ok": True})

    @app.route("/api/new_game", methods=["POST"])
    def api_new_game():
        game = _game()
        with game.lock:
            game.sim = Simulation.new_game(game.sim.config)
            game.save()
            return jsonify(_state(game.sim))

    return app


if __name__ == "__main__":
    # Run app locally: `python app.py` and open http://127.0.0.1:5000/api/state
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    create_app().run(debug=True)
