"""Reward calculations.

Pure functions of the cumulative daily step count.  Recomputing from a
stored total always gives the same numbers, so nothing here is
incremental.

    distance_km(steps)  = steps * 0.7 / 1000, to 2 places
    coins_for(steps)    = steps // 1000
    calories_for(steps) = steps * 0.04, to a whole number

Rounding is half-up on the exact decimal product (150 steps is 0.105 km,
shown as 0.11), not Python's half-even rounding of a binary float.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

STEP_LENGTH_METERS = 0.7
STEPS_PER_COIN = 1000
CALORIES_PER_STEP = 0.04
DAILY_GOAL = 10_000


@dataclass(frozen=True)
class RewardSettings:
    step_length_m: float = STEP_LENGTH_METERS
    steps_per_coin: int = STEPS_PER_COIN
    calories_per_step: float = CALORIES_PER_STEP
    daily_goal: int = DAILY_GOAL


DEFAULT_REWARDS = RewardSettings()


@dataclass(frozen=True)
class Rewards:
    steps: int
    distance_km: float
    distance_meters: float
    coins: int
    calories: int
    goal_progress: float


def _check(steps: int) -> None:
    if steps < 0:
        raise ValueError(f"step count cannot be negative: {steps}")


def _half_up(value: Decimal, places: int) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def _scaled(steps: int, factor: float) -> Decimal:
    # str() keeps the configured factor as written: 0.7, not 0.69999...
    return Decimal(steps) * Decimal(str(factor))


def distance_km(steps: int, settings: RewardSettings = DEFAULT_REWARDS) -> float:
    _check(steps)
    return float(_half_up(_scaled(steps, settings.step_length_m) / 1000, 2))


def distance_meters(steps: int, settings: RewardSettings = DEFAULT_REWARDS) -> float:
    _check(steps)
    return float(_half_up(_scaled(steps, settings.step_length_m), 2))


def coins_for(steps: int, settings: RewardSettings = DEFAULT_REWARDS) -> int:
    _check(steps)
    return steps // settings.steps_per_coin


def calories_for(steps: int, settings: RewardSettings = DEFAULT_REWARDS) -> int:
    _check(steps)
    return int(_half_up(_scaled(steps, settings.calories_per_step), 0))


def goal_progress(steps: int, settings: RewardSettings = DEFAULT_REWARDS) -> float:
    """Fraction of the daily goal reached, capped at 1.0."""
    _check(steps)
    return min(steps / settings.daily_goal, 1.0)


def compute_rewards(steps: int, settings: RewardSettings = DEFAULT_REWARDS) -> Rewards:
    return Rewards(
        steps=steps,
        distance_km=distance_km(steps, settings),
        distance_meters=distance_meters(steps, settings),
        coins=coins_for(steps, settings),
        calories=calories_for(steps, settings),
        goal_progress=goal_progress(steps, settings),
    )
