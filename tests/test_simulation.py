import pytest

from idle_miner.bank import Bank
from idle_miner.config import SimulationConfig
from idle_miner.market import Market
from idle_miner.outcomes import Outcome
from idle_miner.rng import ScriptedRandomSource, SeededRandomSource
from idle_miner.schedules import PiecewiseSchedule
from idle_miner.simulation import Simulation
from idle_miner.snapshot import GameSnapshot


@pytest.fixture
def sim():
    return Simulation.new_game(rng=SeededRandomSource(11))


def _two_coin_sim(make_coin, **kwargs):
    market = Market(bank=Bank(1_000.0))
    market.add(make_coin(name="A", index=0, initial_price=0.0, hashes_per_share=1.0))
    market.add(make_coin(name="B", index=1, initial_price=0.0, hashes_per_share=1.0))
    sim = Simulation(rng=ScriptedRandomSource([0.5]), market=market, **kwargs)
    sim.rig.fill_power()
    return sim


def test_new_game(sim):
    assert sim.bank.balance == 1_000.0
    assert len(sim.market.assets) == 10
    assert sim.selection is None
    assert sim.hash_rate == 125.0


def test_clock_advances_every_fourth_tick(sim):
    for _ in range(8):
        sim.tick()
    assert (sim.clock.hour, sim.clock.minute) == (0, 2)


def test_day_boundary_every_sixty_ticks(sim):
    coin = sim.market.get_by_index(0)
    for _ in range(59):
        sim.tick()
    assert len(coin.prices) == 1
    sim.tick()
    assert len(coin.prices) == 2
    assert sim.clock.minute == 15


def test_paused_game_does_not_tick(sim):
    sim.toggle_pause()
    sim.tick()
    assert sim.ticks == 0
    assert sim.step(10.0) == 0
    sim.toggle_pause()
    sim.tick()
    assert sim.ticks == 1


def test_step_fires_whole_ticks(sim):
    assert sim.step(0.1) == 2
    assert sim.step(0.01) == 0
    assert sim.ticks == 2


def test_selection(sim):
    name = sim.market.get_by_index(2).name
    assert sim.select("nope") is Outcome.UNKNOWN_ASSET
    assert sim.select(name) is Outcome.OK
    assert sim.selected_asset.name == name
    assert sim.select_index(99) is Outcome.UNKNOWN_ASSET
    sim.deselect()
    assert sim.selection is None


def test_selection_cleared_when_coin_is_replaced(sim):
    coin = sim.market.get_by_index(0)
    sim.select(coin.name)
    coin.mark_dead(0)
    sim.day_boundary()
    assert sim.selection is None
    assert sim.market.get_by_index(0).name != coin.name


def test_mining_needs_power(make_coin):
    sim = _two_coin_sim(make_coin)
    sim.rig.available_power = 0.0
    sim.select("A")
    assert sim.mine() == 0
    assert sim.market.get_by_name("A").hashes == 0.0


def test_selected_coin_is_mined(make_coin):
    sim = _two_coin_sim(make_coin)
    sim.select("A")
    sim.config.update(reject_chance=0.0)
    # 125 H/s at zero difficulty: 125 / 6 hashes per tick
    assert sim.mine() == 20
    assert sim.market.get_by_name("A").shares == 20
    assert sim.market.get_by_name("B").shares == 0


def test_global_cooldown_serializes_mining(make_coin):
    sim = _two_coin_sim(make_coin)
    sim.select("A")
    b = sim.market.get_by_name("B")
    b.share_cooldown = 2

    assert sim.mine() == 0
    assert b.share_cooldown == 1
    assert sim.market.get_by_name("A").hashes == 0.0
    sim.mine()
    assert b.share_cooldown == 0
    assert sim.mine() > 0


def test_insurance_makes_cooldowns_independent(make_coin):
    sim = _two_coin_sim(make_coin)
    sim.rig.level = 10
    sim.rig.upgrade_rug_insurance()
    sim.rig.fill_power()
    sim.select("A")
    b = sim.market.get_by_name("B")
    b.share_cooldown = 5

    assert sim.mine() > 0
    assert b.share_cooldown == 4


def test_cooldown_schedule_is_pluggable(make_coin):
    sim = _two_coin_sim(make_coin, cooldown_schedule=PiecewiseSchedule([], default=3))
    sim.select("A")
    sim.mine()
    assert sim.market.get_by_name("A").share_cooldown == 3


def test_auto_fill_rescues_empty_rig(make_coin):
    sim = _two_coin_sim(make_coin)
    sim.rig.level = 10
    for _ in range(10):
        sim.rig.upgrade_auto_fill()
    sim.rig.available_power = 0.0
    sim.select("A")
    assert sim.mine() > 0
    assert sim.bank.balance < 1_000.0
    assert sim.rig.power_fill == pytest.approx(0.75)


def test_upgrades_charge_the_bank(sim):
    assert sim.upgrade("rig") is Outcome.OK
    assert sim.rig.level == 2
    assert sim.bank.balance == 990.0

    assert sim.upgrade_cpu() is Outcome.OK
    assert sim.bank.balance == 965.0
    assert sim.hash_rate == 250.0

    assert sim.upgrade_gpu() is Outcome.LOCKED
    assert sim.bank.balance == 965.0


def test_upgrade_without_money(sim):
    sim.bank.balance = 0.0
    assert sim.upgrade_rig() is Outcome.INSUFFICIENT_FUNDS
    assert sim.rig.level == 1


def test_unknown_upgrade_kind(sim):
    with pytest.raises(ValueError):
        sim.upgrade("warp_drive")


def test_upgrade_preview(sim):
    preview = sim.upgrade_preview()
    assert set(preview) == {"rig", "cpu", "gpu", "asic", "auto_fill", "rug_insurance"}
    assert preview["rig"]["cost"] == 10.0
    assert preview["rig"]["next_level"] == 2
    assert preview["cpu"]["outcome"] == "locked"
    assert preview["auto_fill"]["available"] is True


def test_fill_power(sim):
    assert sim.fill_power() is Outcome.OK
    assert sim.rig.power_fill == 1.0
    assert sim.bank.balance == 1_000.0 - 0.25
    sim.bank.balance = 0.0
    sim.rig.available_power = 0.0
    assert sim.fill_power() is Outcome.INSUFFICIENT_FUNDS


def test_dismiss_empty_coin(sim):
    coin = sim.market.get_by_index(4)
    assert sim.dismiss(coin.name) is Outcome.OK
    fresh = sim.market.get_by_index(4)
    assert fresh.name != coin.name
    assert len(fresh.prices) == 2
    assert sim.dismiss(fresh.name) is Outcome.LOCKED

    other = sim.market.get_by_index(5)
    other.balance = 1.0
    sim.dismiss_cooldown = 0
    assert sim.dismiss(other.name) is Outcome.INVALID_AMOUNT


def test_sell_logs_proceeds(sim):
    coin = sim.market.get_by_index(0)
    coin.balance = 2.0
    coin.current_price = 10.0
    assert sim.sell(coin.name) is Outcome.OK
    assert sim.bank.balance == 1_020.0
    assert sim.get_terminal_logs()[-1] == f"Sold {coin.name} for $20.00"


def test_progress_query(sim):
    name = sim.market.get_by_index(0).name
    assert sim.progress(name) == {"share": 0.0, "block": 0.0, "power": 0.0}
    assert sim.progress("nope") is None


def test_snapshot_is_detached_and_restorable(sim):
    sim.select(sim.market.get_by_index(1).name)
    snap = sim.snapshot(now=1_000.0)
    for _ in range(120):
        sim.tick()
    sim.bank.balance = 1.0

    sim.restore(snap)
    assert sim.bank.balance == 1_000.0
    assert sim.ticks == 0
    assert sim.selection == snap.selection
    assert sim.last_seen == 1_000.0


def test_snapshot_survives_json(sim):
    for _ in range(60):
        sim.tick()
    snap = sim.snapshot(now=5.0)
    again = GameSnapshot.from_json(snap.to_json())
    assert again.to_dict() == snap.to_dict()
    restored = Simulation.from_snapshot(again, rng=SeededRandomSource(1))
    assert restored.clock == sim.clock
    assert restored.market.to_dict() == sim.market.to_dict()


def test_days_behind():
    sim = Simulation(SimulationConfig())
    sim.last_seen = 1_000.0
    # one market day is 60 ticks of 50ms
    assert sim.days_behind(now=1_000.0 + 31.5) == 10
    assert sim.days_behind(now=900.0) == 0


def test_configure_resizes_price_history(sim):
    sim.configure(history_length=10)
    for _ in range(30):
        sim.simulate_market_day()
    assert sim.market.history_length == 10
    assert all(len(c.prices) <= 10 for c in sim.market.assets)
    assert all(c.prices.maxlen == 10 for c in sim.market.assets)


def test_configure_clamps_and_keeps_unchanged_history(sim):
    sim.configure(tick_ms=0, reject_chance=0.9)
    assert sim.config.tick_ms == 1
    assert sim.config.reject_chance == 0.5
    assert sim.market.history_length == 96


def test_status_reports_season(sim):
    assert sim.status()["season_factor"] == 20_000.0
    sim.clock.day = 100
    assert sim.status()["season_factor"] == 14_000.0
