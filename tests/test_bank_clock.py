import pytest

from idle_miner.bank import Bank
from idle_miner.clock import Clock, season_factor


def test_withdraw_is_all_or_nothing():
    bank = Bank(balance=100.0)

    assert bank.withdraw(150.0) is False
    assert bank.balance == 100.0

    assert bank.withdraw(40.0) is True
    assert bank.balance == 60.0


def test_withdraw_negative_amount_fails():
    bank = Bank(balance=10.0)
    assert bank.withdraw(-1.0) is False
    assert bank.balance == 10.0


def test_withdraw_tolerates_rounding_overshoot():
    bank = Bank(balance=1.0)
    assert bank.withdraw(1.00000001) is True
    assert bank.balance == 0.0


def test_deposit_rejects_negative():
    with pytest.raises(ValueError):
        Bank().deposit(-5.0)


def test_bank_round_trip_clamps_negative_balance():
    assert Bank.from_dict({"balance": -3}).balance == 0.0
    assert Bank.from_dict(Bank(12.5).to_dict()).balance == 12.5


def test_clock_rolls_over_into_next_day():
    clock = Clock(day=1, hour=23, minute=59)
    clock.increment()
    assert (clock.day, clock.hour, clock.minute) == (2, 0, 0)


def test_clock_minute_rolls_into_hour():
    clock = Clock(day=0, hour=4, minute=59)
    clock.increment()
    assert (clock.day, clock.hour, clock.minute) == (0, 5, 0)


def test_minutes_and_ticks_until_day():
    clock = Clock(day=3, hour=23, minute=0)
    assert clock.minutes_to_midnight() == 60
    assert clock.ticks_until_day(4) == 240
    assert clock.ticks_until_day(5) == (60 + 1440) * 4
    assert clock.ticks_until_day(3) == 0


def test_clock_label_and_round_trip():
    clock = Clock(day=7, hour=3, minute=5)
    assert clock.label() == "Day 7 03:05"
    assert Clock.from_dict(clock.to_dict()) == clock


def test_season_bands():
    assert season_factor(0) == 20_000.0
    assert season_factor(90) == 20_000.0
    assert season_factor(91) == 14_000.0
    assert season_factor(200) == 16_000.0
    assert season_factor(360) == 18_000.0
    assert season_factor(361) == 20_000.0


def test_increment_day_keeps_time_of_day():
    clock = Clock(day=3, hour=5, minute=7)
    clock.increment_day()
    assert (clock.day, clock.hour, clock.minute) == (4, 5, 7)
    assert clock.season_factor() == season_factor(4)
