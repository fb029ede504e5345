"""
Vesting Engine

Pure, time-dependent vesting arithmetic and request validation.

Allocations unlock linearly in whole unlock periods: after ``k`` of ``n``
periods a schedule has vested ``floor(total * k / n)`` units, and the final
period flushes the full allocation so rounding dust is never stranded.
Nothing here holds state; every input arrives as an argument.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from tokenvest.core.vesting_exceptions import (
    AccountingInvariantViolation,
    ArrayLengthMismatchError,
    AssetNotConfiguredError,
    DurationMismatchError,
    InactiveScheduleError,
    InvalidAmountError,
    InvalidBeneficiaryError,
    InvalidDurationIndexError,
    NothingToClaimError,
)
from tokenvest.vesting.models import UnlockStep, VestingSchedule

logger = logging.getLogger("tokenvest.vesting.engine")


def _periods(elapsed: int, unlock_period: int) -> int:
    if elapsed <= 0:
        return 0
    return elapsed // unlock_period


def vested_amount(schedule: VestingSchedule, now: int, unlock_period: int) -> int:
    """
    Calculates the cumulative amount unlocked for a schedule as of ``now``.

    Inactive (fully claimed) schedules report 0. A ``now`` earlier than the
    schedule's start counts as zero elapsed periods.
    """
    if not schedule.active:
        return 0

    periods_passed = _periods(now - schedule.start_time, unlock_period)
    total_periods = schedule.duration // unlock_period

    if periods_passed >= total_periods:
        return schedule.total_allocation

    return schedule.total_allocation * periods_passed // total_periods


def claimable_amount(schedule: VestingSchedule, now: int, unlock_period: int) -> int:
    """
    Vested units not yet withdrawn.

    Raises:
        AccountingInvariantViolation: If an active schedule has claimed more
            than has vested.
    """
    if not schedule.active:
        return 0

    claimable = vested_amount(schedule, now, unlock_period) - schedule.claimed_amount
    if claimable < 0:
        logger.critical(
            "Claimed amount exceeds vested amount",
            extra={
                "event": "vesting.invariant_violation",
                "claimed_amount": schedule.claimed_amount,
                "total_allocation": schedule.total_allocation,
                "now": now,
            },
        )
        raise AccountingInvariantViolation(
            "Claimed amount exceeds vested amount.",
            details={"claimed_amount": schedule.claimed_amount, "now": now},
        )
    return claimable


def apply_claim(
    schedule: VestingSchedule, now: int, unlock_period: int
) -> Tuple[VestingSchedule, int]:
    """
    Withdraws everything currently claimable from a schedule.

    Returns:
        The updated schedule and the number of units released. The caller
        moves the units and commits the updated schedule as one unit.
    """
    if not schedule.active:
        raise InactiveScheduleError("Vesting schedule is no longer active.")

    claimable = claimable_amount(schedule, now, unlock_period)
    if claimable <= 0:
        raise NothingToClaimError(
            "No tokens available to claim.",
            details={"claimed_amount": schedule.claimed_amount, "now": now},
        )

    claimed = schedule.claimed_amount + claimable
    if claimed > schedule.total_allocation:
        raise AccountingInvariantViolation(
            "Claim would exceed total allocation.",
            details={"claimed_amount": claimed, "total_allocation": schedule.total_allocation},
        )

    updated = replace(
        schedule,
        claimed_amount=claimed,
        active=claimed != schedule.total_allocation,
    )
    return updated, claimable


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(f"Amount must be an integer number of units, got {amount!r}.")
    if amount <= 0:
        raise InvalidAmountError("Amount must be greater than zero.", details={"amount": amount})


def _resolve_duration(duration_index: int, allowed_durations: Sequence[int]) -> int:
    if (
        isinstance(duration_index, bool)
        or not isinstance(duration_index, int)
        or duration_index < 0
        or duration_index >= len(allowed_durations)
    ):
        raise InvalidDurationIndexError(
            f"Duration index {duration_index!r} is out of range "
            f"(allowed: 0..{len(allowed_durations) - 1}).",
            duration_index=duration_index if isinstance(duration_index, int) else None,
        )
    return allowed_durations[duration_index]


def validate_creation(
    amount: int,
    duration_index: int,
    allowed_durations: Sequence[int],
    asset: Optional[str],
    existing_duration: Optional[int] = None,
) -> int:
    """
    Validates a single ``create_vesting`` request.

    Args:
        amount: Units to lock.
        duration_index: Index into ``allowed_durations``.
        allowed_durations: Configured duration list.
        asset: Configured asset identity, ``None`` while unset.
        existing_duration: Duration of the beneficiary's first schedule, if any.

    Returns:
        The duration the new schedule will use.
    """
    if asset is None:
        raise AssetNotConfiguredError("Vesting asset has not been configured.")
    _check_amount(amount)
    duration = _resolve_duration(duration_index, allowed_durations)

    if existing_duration is not None and existing_duration != duration:
        raise DurationMismatchError(
            "All vesting schedules of a beneficiary must share one duration.",
            expected=existing_duration,
            actual=duration,
        )
    return duration


def validate_batch_creation(
    users: Sequence[str],
    amounts: Sequence[int],
    duration_indexes: Sequence[int],
    allowed_durations: Sequence[int],
    asset: Optional[str],
    existing_durations: Mapping[str, int],
) -> List[int]:
    """
    Validates an administrative batch of schedule creations.

    Unlike single creation, a beneficiary who already holds a schedule keeps
    that schedule's duration: the supplied index is still range-checked but
    otherwise ignored. A beneficiary listed more than once gets the duration
    fixed by its first entry.

    Returns:
        The resolved duration for each entry, in input order.
    """
    if asset is None:
        raise AssetNotConfiguredError("Vesting asset has not been configured.")
    if not (len(users) == len(amounts) == len(duration_indexes)):
        raise ArrayLengthMismatchError(
            "Batch input lengths differ.",
            details={
                "users": len(users),
                "amounts": len(amounts),
                "duration_indexes": len(duration_indexes),
            },
        )

    fixed: Dict[str, int] = dict(existing_durations)
    durations: List[int] = []
    for position, (user, amount, duration_index) in enumerate(
        zip(users, amounts, duration_indexes)
    ):
        if not user:
            raise InvalidBeneficiaryError(
                "Beneficiary address cannot be empty.", details={"position": position}
            )
        _check_amount(amount)
        requested = _resolve_duration(duration_index, allowed_durations)
        duration = fixed.setdefault(user, requested)
        if duration != requested:
            logger.info(
                "Batch entry duration overridden by existing schedule",
                extra={
                    "event": "vesting.batch_duration_override",
                    "beneficiary": user[:10],
                    "requested": requested,
                    "applied": duration,
                },
            )
        durations.append(duration)
    return durations


def unlock_timeline(
    total_allocation: int,
    duration: int,
    start_time: int,
    unlock_period: int,
) -> List[UnlockStep]:
    """
    Lists the cumulative vested amount at every unlock boundary of a
    prospective schedule, ending with the full allocation.
    """
    _check_amount(total_allocation)
    schedule = VestingSchedule(
        total_allocation=total_allocation, duration=duration, start_time=start_time
    )
    total_periods = max(duration // unlock_period, 1)
    steps: List[UnlockStep] = []
    previous = 0
    for period in range(1, total_periods + 1):
        timestamp = start_time + period * unlock_period
        vested = vested_amount(schedule, timestamp, unlock_period)
        steps.append(
            UnlockStep(period=period, timestamp=timestamp, vested=vested, unlocked=vested - previous)
        )
        previous = vested
    return steps
