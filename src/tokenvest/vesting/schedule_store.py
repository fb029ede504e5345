"""
Schedule Store

Owns every vesting schedule, keyed by beneficiary and creation index.

Lists are append-only: a schedule is never removed or reordered, so its
index is a permanent handle. The first schedule recorded for a beneficiary
fixes that beneficiary's duration; later appends must match it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from tokenvest.core.vesting_exceptions import (
    AccountingInvariantViolation,
    DurationMismatchError,
    IndexOutOfRangeError,
)
from tokenvest.vesting.models import VestingSchedule

logger = logging.getLogger("tokenvest.vesting.schedule_store")


class ScheduleStore:
    """
    Maps beneficiary addresses to their ordered vesting schedules.

    Attributes:
        _schedules: Dictionary mapping beneficiary addresses to schedule lists
    """

    def __init__(self) -> None:
        self._schedules: Dict[str, List[VestingSchedule]] = {}

    def count(self, beneficiary: str) -> int:
        return len(self._schedules.get(beneficiary, ()))

    def get(self, beneficiary: str, index: int) -> VestingSchedule:
        """
        Returns the schedule at ``index`` for a beneficiary.

        Raises:
            IndexOutOfRangeError: If the beneficiary has no schedule at ``index``.
        """
        schedules = self._schedules.get(beneficiary, [])
        if (
            isinstance(index, bool)
            or not isinstance(index, int)
            or index < 0
            or index >= len(schedules)
        ):
            raise IndexOutOfRangeError(
                f"Schedule index {index} out of range for {beneficiary} "
                f"({len(schedules)} schedules).",
                details={"index": index, "count": len(schedules)},
            )
        return schedules[index]

    def schedules(self, beneficiary: str) -> Tuple[VestingSchedule, ...]:
        return tuple(self._schedules.get(beneficiary, ()))

    def beneficiaries(self) -> List[str]:
        return list(self._schedules)

    def existing_duration(self, beneficiary: str) -> Optional[int]:
        """Duration fixed by the beneficiary's first schedule, if one exists."""
        schedules = self._schedules.get(beneficiary)
        if not schedules:
            return None
        return schedules[0].duration

    def append(self, beneficiary: str, schedule: VestingSchedule) -> int:
        """
        Records a new schedule and returns its index.

        Raises:
            DurationMismatchError: If the beneficiary's existing schedules use
                a different duration.
        """
        existing = self.existing_duration(beneficiary)
        if existing is not None and schedule.duration != existing:
            raise DurationMismatchError(
                f"Beneficiary {beneficiary} is locked to duration {existing}.",
                expected=existing,
                actual=schedule.duration,
            )

        schedules = self._schedules.setdefault(beneficiary, [])
        schedules.append(schedule)
        index = len(schedules) - 1
        logger.debug("Schedule %s appended for %s", index, beneficiary)
        return index

    def replace(self, beneficiary: str, index: int, schedule: VestingSchedule) -> None:
        """
        Commits a claim against an existing schedule.

        Only ``claimed_amount`` and ``active`` may change, and only forward.
        """
        current = self.get(beneficiary, index)
        if (
            schedule.total_allocation != current.total_allocation
            or schedule.duration != current.duration
            or schedule.start_time != current.start_time
            or schedule.claimed_amount < current.claimed_amount
            or schedule.claimed_amount > schedule.total_allocation
            or (schedule.active and not current.active)
        ):
            raise AccountingInvariantViolation(
                f"Illegal update of schedule {index} for {beneficiary}.",
                details={"current": current.to_dict(), "proposed": schedule.to_dict()},
            )
        self._schedules[beneficiary][index] = schedule

    def revert(self, beneficiary: str, index: int, schedule: VestingSchedule) -> None:
        """Puts back a record captured before a claim whose payout failed."""
        self.get(beneficiary, index)
        self._schedules[beneficiary][index] = schedule

    def total_locked(self) -> int:
        """Units held for all beneficiaries and not yet withdrawn."""
        return sum(
            schedule.remaining
            for schedules in self._schedules.values()
            for schedule in schedules
        )

    def truncate(self, beneficiary: str, length: int) -> None:
        """
        Drops a beneficiary's schedules beyond ``length``, undoing appends
        whose funding failed. Records below ``length`` are left as they are.
        """
        schedules = self._schedules.get(beneficiary)
        if schedules is None:
            return
        del schedules[length:]
        if not schedules:
            del self._schedules[beneficiary]

    def to_dict(self) -> Dict[str, Any]:
        return {
            beneficiary: [schedule.to_dict() for schedule in schedules]
            for beneficiary, schedules in self._schedules.items()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleStore":
        """Rebuilds a store, re-applying the duration rule on every append."""
        store = cls()
        for beneficiary, records in data.items():
            for record in records:
                store.append(beneficiary, VestingSchedule.from_dict(record))
        return store
