"""
Append-only audit log of committed vesting ledger operations.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, List, Tuple, Type, TypeVar


@dataclass(frozen=True)
class AssetSet:
    asset: str


@dataclass(frozen=True)
class VestingCreated:
    beneficiary: str
    amount: int
    start_time: int


@dataclass(frozen=True)
class TokensClaimed:
    beneficiary: str
    amount: int


@dataclass(frozen=True)
class VestingBatchCreated:
    beneficiaries: Tuple[str, ...]
    amounts: Tuple[int, ...]


VestingEvent = Any
E = TypeVar("E")


class EventLog:
    """Records events in emission order. Entries are never mutated or removed."""

    def __init__(self) -> None:
        self._events: List[VestingEvent] = []

    def emit(self, event: VestingEvent) -> None:
        self._events.append(event)

    def of_type(self, event_type: Type[E]) -> List[E]:
        return [event for event in self._events if isinstance(event, event_type)]

    def to_list(self) -> List[Dict[str, Any]]:
        return [{"event": type(event).__name__, **asdict(event)} for event in self._events]

    def __iter__(self) -> Iterator[VestingEvent]:
        return iter(tuple(self._events))

    def __len__(self) -> int:
        return len(self._events)

    def __getitem__(self, index: int) -> VestingEvent:
        return self._events[index]
