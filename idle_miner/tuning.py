from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .schedules import Band, PiecewiseSchedule, SlotBand, SlotCapTable, Tiers

# Numbers are gameplay tuning, not real-world mining economics.


@dataclass(frozen=True)
class HardwareSpec:
    key: str
    name: str
    power_per_unit: float  # W drawn per CPU level / per GPU or ASIC unit
    hash_per_unit: float  # H/s
    description: str = ""


HARDWARE: Dict[str, HardwareSpec] = {
    "cpu": HardwareSpec(
        key="cpu",
        name="CPU",
        power_per_unit=125.0,
        hash_per_unit=125.0,
        description="Single socket. Each upgrade adds a level.",
    ),
    "gpu": HardwareSpec(
        key="gpu",
        name="GPU",
        power_per_unit=500.0,
        hash_per_unit=225.0,
        description="One card per upgrade, slots unlock with rig level.",
    ),
    "asic": HardwareSpec(
        key="asic",
        name="ASIC",
        power_per_unit=1800.0,
        hash_per_unit=1200.0,
        description="Dedicated miners. Power hungry.",
    ),
}

# -- Rig --
CPU_MAX_LEVEL = 5
AUTO_FILL_MAX_LEVEL = 13
CPU_UNLOCK_LEVEL = 2
GPU_UNLOCK_LEVEL = 5
RUG_INSURANCE_UNLOCK_LEVEL = 10
ASIC_UNLOCK_LEVEL = 35

POWER_CAPACITY_FACTOR = 40.0  # capacity = draw * factor
POWER_DRAW_DIVISOR = 20.0  # per-tick consumption = draw / divisor
CLICK_FILL_FRACTION = 0.05

RIG_UPGRADE_COST = PiecewiseSchedule(
    [
        Band(1, 5, 10.0, 20.0),
        Band(6, 10, 90.0, 60.0),
        Band(11, 15, 350.0, 150.0),
        Band(16, 20, 1_000.0, 300.0),
        Band(21, 25, 2_600.0, 500.0),
        Band(26, 30, 5_600.0, 1_000.0),
        Band(31, 35, 10_600.0, 1_500.0),
        Band(36, 40, 16_600.0, 2_000.0),
        Band(41, None, 26_600.0, 2_500.0),
    ],
    default=10.0,
)

CPU_UPGRADE_COST = PiecewiseSchedule([Band(1, None, 0.0, 25.0, anchor=0)], default=25.0)

GPU_UPGRADE_COST = PiecewiseSchedule(
    [
        Band(1, 5, 0.0, 150.0, anchor=0),
        Band(6, 10, 0.0, 200.0, anchor=0),
        Band(11, 15, 0.0, 250.0, anchor=0),
        Band(16, 20, 0.0, 300.0, anchor=0),
        Band(21, 25, 0.0, 250.0, anchor=0),
        Band(26, 30, 0.0, 400.0, anchor=0),
        Band(31, 35, 0.0, 450.0, anchor=0),
        Band(36, 40, 0.0, 500.0, anchor=0),
        Band(41, None, 0.0, 600.0, anchor=0),
    ],
    default=150.0,
)

ASIC_UPGRADE_COST = PiecewiseSchedule(
    [
        Band(1, 5, 0.0, 3_000.0, anchor=0),
        Band(6, 10, 0.0, 3_500.0, anchor=0),
        Band(11, 15, 0.0, 4_000.0, anchor=0),
        Band(16, 20, 0.0, 4_500.0, anchor=0),
        Band(21, 25, 0.0, 5_000.0, anchor=0),
        Band(26, 30, 0.0, 5_500.0, anchor=0),
        Band(31, 35, 0.0, 6_000.0, anchor=0),
        Band(36, 40, 0.0, 6_500.0, anchor=0),
        Band(41, None, 0.0, 7_500.0, anchor=0),
    ],
    default=3_000.0,
)

# (start, end, base, multiplier); overlapping 66 resolves to the earlier band.
MAX_GPU_SLOTS = SlotCapTable(
    [
        SlotBand(5, 21, 0, 1),
        SlotBand(22, 34, 9, 2),
        SlotBand(36, 50, 27, 4),
        SlotBand(52, 66, 57, 6),
        SlotBand(66, 80, 107, 8),
        SlotBand(82, 94, 173, 10),
        SlotBand(96, 110, 245, 12),
        SlotBand(112, 124, 343, 14),
        SlotBand(126, 140, 443, 16),
        SlotBand(142, 154, 573, 18),
        SlotBand(156, 170, 701, 20),
        SlotBand(172, 196, 863, 22),
        SlotBand(198, 222, 1149, 24),
        SlotBand(224, 248, 1461, 32),
        SlotBand(250, 274, 1917, 40),
        SlotBand(276, 300, 2485, 48),
        SlotBand(302, 326, 3165, 56),
        SlotBand(328, 352, 4977, 64),
        SlotBand(354, 378, 5881, 72),
        SlotBand(380, 404, 6897, 80),
        SlotBand(406, 430, 8025, 88),
        SlotBand(432, 456, 9265, 96),
        SlotBand(458, 482, 10617, 104),
        SlotBand(484, 508, 12081, 112),
        SlotBand(510, 534, 13657, 120),
        SlotBand(536, None, 15345, 128),
    ],
    unlock_level=GPU_UNLOCK_LEVEL,
    first_increment_below=35,
)

MAX_ASIC_SLOTS = SlotCapTable(
    [
        SlotBand(35, 49, 0, 2),
        SlotBand(51, 65, 19, 3),
        SlotBand(67, 79, 47, 4),
        SlotBand(81, 95, 81, 6),
        SlotBand(97, 109, 137, 8),
        SlotBand(111, 125, 203, 10),
        SlotBand(127, 139, 295, 12),
        SlotBand(141, 155, 393, 14),
        SlotBand(157, 169, 521, 16),
        SlotBand(171, 191, 651, 18),
        SlotBand(193, 207, 873, 24),
        SlotBand(209, 229, 1121, 32),
        SlotBand(231, 255, 1513, 40),
        SlotBand(257, 281, 2081, 48),
        SlotBand(283, 307, 2761, 56),
        SlotBand(309, 333, 3553, 64),
        SlotBand(335, 359, 4457, 72),
        SlotBand(361, 385, 5473, 80),
        SlotBand(387, 411, 6601, 88),
        SlotBand(413, 437, 7841, 96),
        SlotBand(439, 463, 9193, 104),
        SlotBand(465, 489, 10657, 112),
        SlotBand(491, 515, 12233, 120),
        SlotBand(517, None, 13921, 128),
    ],
    unlock_level=ASIC_UNLOCK_LEVEL,
)

# -- Auto power fill --
AUTO_FILL_UPGRADE_COST = PiecewiseSchedule(
    [
        Band(0, 3, 100.0),
        Band(4, 6, 250.0),
        Band(7, 9, 500.0),
        Band(10, 12, 1_000.0),
        Band(13, 15, 2_500.0),
        Band(16, 18, 5_000.0),
        Band(19, 21, 10_000.0),
        Band(22, 24, 25_000.0),
        Band(25, 27, 50_000.0),
        Band(28, 30, 100_000.0),
        Band(31, 33, 250_000.0),
        Band(34, 36, 500_000.0),
        Band(37, 40, 1_000_000.0),
    ],
    default=0.0,
)

# Ticks before an empty rig is refilled: 5s at level 1, 0.5s faster per level.
AUTO_FILL_DELAY_TICKS = PiecewiseSchedule([Band(1, 9, 100.0, -10.0)], default=0.0)

AUTO_FILL_FRACTION = PiecewiseSchedule(
    [
        Band(1, 3, 0.25, 0.02),
        Band(4, 6, 0.33, 0.03),
        Band(7, 9, 0.50, 0.05),
        Band(10, 12, 0.75, 0.08),
    ],
    default=1.0,
)

AUTO_FILL_FEE = PiecewiseSchedule(
    [
        Band(1, 3, 0.25, -0.05),
        Band(4, 6, 0.10, -0.05),
    ],
    default=0.0,
)

# -- Rug insurance --
RUG_INSURANCE_ACTIVATION_COST = 5_000.0

RUG_INSURANCE_FRACTION = PiecewiseSchedule(
    [
        Band(0, 0, 0.0),
        Band(1, 3, 0.10, 0.02),
        Band(4, 6, 0.15, 0.02),
        Band(7, 9, 0.20, 0.02),
        Band(10, 12, 0.25, 0.02),
        Band(13, 15, 0.30, 0.02),
        Band(16, 18, 0.35, 0.02),
        Band(19, 21, 0.40, 0.02),
        Band(22, 24, 0.45, 0.02),
        Band(25, 27, 0.50, 0.02),
        Band(28, 30, 0.55, 0.02),
        Band(31, 33, 0.60, 0.02),
        Band(34, 36, 0.65, 0.02),
        Band(37, 40, 0.70, 0.02),
        Band(41, 45, 0.75, 0.01),
        Band(46, 50, 0.80, 0.01),
        Band(51, 55, 0.85, 0.01),
        Band(56, 60, 0.90, 0.01),
        Band(61, 64, 0.95, 0.01),
    ],
    default=1.0,
)

RUG_INSURANCE_UPGRADE_COST = PiecewiseSchedule(
    [
        Band(1, 3, 100.0),
        Band(4, 6, 250.0),
        Band(7, 9, 500.0),
        Band(10, 12, 1_000.0),
        Band(13, 15, 2_500.0),
        Band(16, 18, 5_000.0),
        Band(19, 21, 10_000.0),
        Band(22, 24, 25_000.0),
        Band(25, 27, 50_000.0),
        Band(28, 30, 100_000.0),
        Band(31, 33, 250_000.0),
        Band(34, 36, 500_000.0),
        Band(37, 40, 1_000_000.0),
        Band(41, 45, 2_500_000.0),
        Band(46, 50, 5_000_000.0),
        Band(51, 55, 10_000_000.0),
        Band(56, 60, 25_000_000.0),
        Band(61, 64, 50_000_000.0),
    ],
    default=100_000_000.0,
)

# Per-coin share cooldown by rig level. The shipped tuning has no cooldown.
SHARE_COOLDOWN_TICKS = PiecewiseSchedule([], default=0.0)

# Ticks before another coin may be dismissed by hand.
DISMISS_COOLDOWN_TICKS = 100

# -- Coins --
HISTORY_LENGTH = 96
TREND_WINDOW = 4
DIFFICULTY_DIVISOR = 800.0
HASH_TICK_DIVISOR = 6.0  # a tick adds effective_hash / divisor
REJECT_CHANCE = 0.01
BLOCK_BONUS_FRACTION = 0.25
SHARE_REWARD_HASH_SCALE = 10_000.0

TREND_CORRECTION_UP_RUN: Tuple[float, float] = (-0.03, 0.001)
TREND_CORRECTION_DOWN_RUN: Tuple[float, float] = (-0.001, 0.03)
TREND_CORRECTION_MIXED: Tuple[float, float] = (-0.003, 0.003)
SENTIMENT_RANGE: Tuple[float, float] = (-0.02, 0.02)
SAWTOOTH_PERIOD = 30
SAWTOOTH_AMPLITUDE = 0.05
TAIL_EVENT_CHANCE = 0.01
TAIL_EVENT_RANGE: Tuple[float, float] = (-0.1, 0.1)
NEWS_CHANCE = 0.015
NEWS_RANGE: Tuple[float, float] = (-0.05, 0.05)
PRICE_CEILING = 100_000.0
MAX_GAIN_ABOVE_CEILING = 0.03
PRICE_FLOOR = 0.05
MAX_LOSS_BELOW_FLOOR = 0.04
PRICE_DECIMALS = 5

CULL_PRICE_THRESHOLD = 0.01
RUG_BASE_CHANCE = 0.01
RUG_AGE_SCALE_DAYS = 100.0

VOLATILITY_RANGE: Tuple[float, float] = (0.02, 0.08)
SHARES_PER_BLOCK = 1000
BLOCK_REWARD = 100.0
MAX_BLOCKS_RANGE: Tuple[float, float] = (10.0, 25.0)
MIN_HASHES_PER_SHARE = 1000.0
MAX_HASHES_PER_SHARE = 5000.0
HASHES_PER_SHARE_PER_RIG_LEVEL = 1000.0

STARTING_PRICE_BY_RIG_LEVEL: Tiers[Tuple[float, float]] = Tiers(
    [
        (3, (8.0, 20.0)),
        (6, (20.0, 40.0)),
        (9, (40.0, 60.0)),
        (12, (60.0, 80.0)),
        (float("inf"), (80.0, 100.0)),
    ]
)

# Announce every Kth accepted share, K growing with raw hash rate (H/s).
ACCEPTED_NOTICE_EVERY: Tiers[int] = Tiers(
    [
        (1_000.0, 1),
        (5_000.0, 10),
        (10_000.0, 25),
        (25_000.0, 50),
        (50_000.0, 100),
        (100_000.0, 250),
        (float("inf"), 1000),
    ]
)

# -- Seasons (divide power prices) --
DAYS_PER_YEAR = 360
SEASON_FACTOR: Tiers[float] = Tiers(
    [
        (90, 20_000.0),
        (180, 14_000.0),
        (270, 16_000.0),
        (360, 18_000.0),
    ]
)

# -- Catch-up --
# Progress callback cadence (in days) by the size of the whole run.
CATCHUP_REPORT_EVERY: Tiers[int] = Tiers(
    [
        (100, 1),
        (500, 10),
        (1_500, 25),
        (5_000, 100),
        (10_000, 250),
        (float("inf"), 500),
    ]
)
