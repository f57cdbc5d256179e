import pytest

from idle_miner.asset import CryptoCoin
from idle_miner.rng import ScriptedRandomSource


def _coin(**overrides):
    params = dict(
        name="Test-1",
        index=0,
        initial_price=800.0,
        volatility=(-0.02, 0.02),
        hashes_per_share=1000.0,
        shares_per_block=1000,
        max_blocks=20,
        block_reward=100.0,
        birth_day=0,
    )
    params.update(overrides)
    return CryptoCoin(**params)


@pytest.fixture
def make_coin():
    """Factory for coins with round, hand-checkable numbers."""
    return _coin


@pytest.fixture
def midpoint_rng():
    """Every draw lands mid-range: never rejects, never fires rare events."""
    return ScriptedRandomSource([0.5])
