"""
Vesting data model: schedules, ledger configuration and unlock timeline steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

SECONDS_PER_DAY = 86_400

DEFAULT_ALLOWED_DURATIONS: Tuple[int, ...] = (90 * SECONDS_PER_DAY, 180 * SECONDS_PER_DAY)
DEFAULT_UNLOCK_PERIOD = 30 * SECONDS_PER_DAY
DEFAULT_CUSTODIAN = "vesting_custodian"


@dataclass(frozen=True)
class VestingSchedule:
    """
    One vesting allocation record.

    Schedules are value objects. The schedule store swaps in a new record
    when a claim commits, so a reference handed out by a read never changes
    underneath its holder.
    """

    total_allocation: int
    duration: int
    start_time: int
    claimed_amount: int = 0
    active: bool = True

    @property
    def remaining(self) -> int:
        """Units not yet withdrawn."""
        return self.total_allocation - self.claimed_amount

    @property
    def end_time(self) -> int:
        return self.start_time + self.duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_allocation": self.total_allocation,
            "claimed_amount": self.claimed_amount,
            "duration": self.duration,
            "start_time": self.start_time,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VestingSchedule":
        return cls(
            total_allocation=int(data["total_allocation"]),
            duration=int(data["duration"]),
            start_time=int(data["start_time"]),
            claimed_amount=int(data.get("claimed_amount", 0)),
            active=bool(data.get("active", True)),
        )


@dataclass
class VestingConfig:
    """
    Process-wide ledger configuration.

    ``asset`` starts unset and is fixed by the first privileged ``set_asset``
    call; the duration list and unlock period never change after
    construction.
    """

    allowed_durations: Tuple[int, ...] = DEFAULT_ALLOWED_DURATIONS
    unlock_period: int = DEFAULT_UNLOCK_PERIOD
    custodian: str = DEFAULT_CUSTODIAN
    asset: Optional[str] = None

    def __post_init__(self) -> None:
        self.allowed_durations = tuple(int(d) for d in self.allowed_durations)
        if not self.allowed_durations:
            raise ValueError("At least one allowed duration is required.")
        if not isinstance(self.unlock_period, int) or self.unlock_period <= 0:
            raise ValueError("Unlock period must be a positive integer in seconds.")
        for duration in self.allowed_durations:
            if duration < self.unlock_period:
                raise ValueError(
                    f"Duration {duration} is shorter than the unlock period {self.unlock_period}."
                )
        if not self.custodian:
            raise ValueError("Custodian address cannot be empty.")

    @property
    def asset_configured(self) -> bool:
        return self.asset is not None


@dataclass(frozen=True)
class UnlockStep:
    """Cumulative vested amount reached at one unlock period boundary."""

    period: int
    timestamp: int
    vested: int
    unlocked: int = field(default=0)

    def to_dict(self) -> Dict[str, int]:
        return {
            "period": self.period,
            "timestamp": self.timestamp,
            "vested": self.vested,
            "unlocked": self.unlocked,
        }
