import itertools

from idle_miner.catchup import BulkSimulator, CatchupProgress
from idle_miner.outcomes import Outcome
from idle_miner.rng import SeededRandomSource
from idle_miner.simulation import Simulation


def _fake_timer(step=0.5):
    counter = itertools.count()
    return lambda: next(counter) * step


def test_catchup_advances_market_days_without_mining():
    sim = Simulation.new_game(rng=SeededRandomSource(4))
    sim.select(sim.market.get_by_index(0).name)
    sim.rig.fill_power()

    result = BulkSimulator(sim, timer=_fake_timer()).run(5)

    assert result.outcome is Outcome.OK
    assert result.days_run == 5
    assert (sim.clock.day, sim.clock.hour, sim.clock.minute) == (0, 1, 15)
    assert sim.ticks == 300
    assert sim.rig.power_fill == 1.0
    assert all(c.hashes == 0.0 for c in sim.market.assets)
    assert all(len(c.prices) >= 2 for c in sim.market.assets)


def test_cancel_stops_on_a_finished_day():
    sim = Simulation.new_game(rng=SeededRandomSource(4))
    seen = []

    def on_progress(progress):
        seen.append(progress.current)
        if progress.current == 3:
            runner.cancel()

    runner = BulkSimulator(sim, on_progress=on_progress, timer=_fake_timer())
    result = runner.run(10)

    assert result.cancelled
    assert result.days_run == 3
    assert seen == [1, 2, 3]
    assert runner.cancel_requested


def test_progress_is_reported_on_a_cadence():
    sim = Simulation.new_game(rng=SeededRandomSource(8))
    reports = []
    BulkSimulator(sim, on_progress=reports.append, timer=_fake_timer()).run(250)

    assert len(reports) == 25
    assert reports[0].current == 10
    assert reports[-1].current == 250
    assert reports[-1].fraction == 1.0
    assert reports[-1].eta_seconds == 0.0


def test_zero_days_is_a_no_op():
    sim = Simulation.new_game(rng=SeededRandomSource(4))
    result = BulkSimulator(sim).run(0)
    assert result.outcome is Outcome.OK
    assert result.days_run == 0
    assert sim.ticks == 0


def test_progress_eta_text():
    progress = CatchupProgress(current=5, total=10, eta_seconds=185.0, speed_up=12.0)
    assert progress.fraction == 0.5
    assert progress.eta == "3m 05s"
