"""Pure eligibility rules for scheduled deposits and withdrawals."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PoolTiming:
    maturity: int
    epoch_length: int
    staking_phase_length: int
    time_delta: int


def in_staking_phase(timing: PoolTiming, now: int) -> bool:
    # maturity - EPOCH + TIME_DELTA < now < maturity - EPOCH + STAKING_PHASE - TIME_DELTA
    epoch_start = timing.maturity - timing.epoch_length
    lower = epoch_start + timing.time_delta
    upper = epoch_start + timing.staking_phase_length - timing.time_delta
    return lower < now < upper


def withdrawable_amount(balance: int, allowance: int) -> int:
    """Whole balance when the scheduler may move all of it, otherwise nothing."""
    if allowance >= balance:
        return balance
    return 0


def exceeds_reserve(amount: int, coefficient: int) -> bool:
    return amount > coefficient
