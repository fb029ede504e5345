"""
tokenvest - Token Vesting Ledger

Public surface of the vesting ledger. Beneficiaries lock units of the
configured asset with the custodian and withdraw them as they unlock;
administrators set the asset and create schedules in batch.

Every mutating operation runs under one re-entrant lock and is
all-or-nothing: a failure at any step, including the asset transfer,
undoes the schedules and funds the operation had added.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple

from tokenvest.core.access_control import PrivilegeGate
from tokenvest.core.metrics import VestingMetrics
from tokenvest.core.token_ledger import AssetTransfer
from tokenvest.core.vesting_exceptions import (
    AccountingInvariantViolation,
    AssetAlreadyConfiguredError,
    IndexOutOfRangeError,
    InvalidAssetError,
    InvalidBeneficiaryError,
    ReentrantCreationError,
    TransferFailedError,
    VestingError,
    get_error_context,
)
from tokenvest.vesting import engine
from tokenvest.vesting.events import (
    AssetSet,
    EventLog,
    TokensClaimed,
    VestingBatchCreated,
    VestingCreated,
)
from tokenvest.vesting.models import VestingConfig, VestingSchedule
from tokenvest.vesting.schedule_store import ScheduleStore

if TYPE_CHECKING:
    from tokenvest.core.config_manager import ConfigManager

logger = logging.getLogger("tokenvest.vesting.token_vesting")


class TokenVesting:
    """
    Per-account token vesting ledger.

    Args:
        token_ledger: Asset transfer collaborator
        access_control: Gate for privileged operations
        config: Durations, unlock period and custodian address
        time_provider: Clock returning integer seconds since epoch
        metrics: Prometheus metrics collector
        store: Schedule store (a fresh one by default)
    """

    def __init__(
        self,
        token_ledger: AssetTransfer,
        access_control: PrivilegeGate,
        config: VestingConfig | None = None,
        time_provider: Callable[[], int] | None = None,
        metrics: VestingMetrics | None = None,
        store: ScheduleStore | None = None,
    ):
        self.config = config or VestingConfig()
        self._token_ledger = token_ledger
        self._access_control = access_control
        self._time_provider = time_provider or (lambda: int(time.time()))
        self._last_timestamp = 0
        # Beneficiary -> first schedule index whose deposit is in flight
        self._pending: Dict[str, int] = {}
        self.metrics = metrics or VestingMetrics()
        self._store = store or ScheduleStore()
        self.events = EventLog()
        self._lock = threading.RLock()
        logger.info(
            "TokenVesting initialized",
            extra={
                "event": "vesting.initialized",
                "allowed_durations": list(self.config.allowed_durations),
                "unlock_period": self.config.unlock_period,
                "custodian": self.config.custodian,
            },
        )

    @classmethod
    def from_config(
        cls,
        manager: "ConfigManager",
        token_ledger: AssetTransfer,
        access_control: PrivilegeGate,
        admin: Optional[str] = None,
        time_provider: Callable[[], int] | None = None,
    ) -> "TokenVesting":
        """
        Builds a ledger from loaded configuration. A configured asset is set
        through the regular privileged path on behalf of ``admin``.
        """
        vesting = cls(
            token_ledger=token_ledger,
            access_control=access_control,
            config=manager.to_vesting_config(),
            time_provider=time_provider,
            metrics=VestingMetrics(enabled=manager.metrics.enabled),
        )
        if manager.vesting.asset is not None:
            if not admin:
                raise ValueError("An admin address is required to set the configured asset.")
            vesting.set_asset(admin, manager.vesting.asset)
        return vesting

    # ==================== Internal helpers ====================

    def _current_time(self) -> int:
        timestamp = self._time_provider()
        try:
            now = int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc

        if now < self._last_timestamp:
            logger.warning(
                "Clock moved backwards; holding last observed timestamp",
                extra={
                    "event": "vesting.clock_regression",
                    "observed": now,
                    "last": self._last_timestamp,
                },
            )
            return self._last_timestamp
        self._last_timestamp = now
        return now

    def _record_failure(self, operation: str, exc: VestingError) -> None:
        context = get_error_context(exc)
        context["event"] = f"vesting.{operation}_failed"
        if isinstance(exc, AccountingInvariantViolation):
            logger.critical("Accounting invariant violated during %s", operation, extra=context)
        else:
            logger.warning("Vesting %s rejected: %s", operation, exc.message, extra=context)
        self.metrics.record_failure(operation, exc)

    def _move(
        self,
        transfer: Callable[[str, str, str, int], bool],
        sender: str,
        recipient: str,
        amount: int,
    ) -> None:
        asset = self.config.asset
        try:
            moved = transfer(asset, sender, recipient, amount)
        except Exception as exc:
            raise TransferFailedError(
                f"Transfer of {amount} from {sender} to {recipient} raised {type(exc).__name__}.",
                details={"sender": sender, "recipient": recipient, "amount": amount},
            ) from exc
        if not moved:
            raise TransferFailedError(
                f"Transfer of {amount} from {sender} to {recipient} was rejected.",
                details={"sender": sender, "recipient": recipient, "amount": amount},
            )

    def _begin_creation(self) -> None:
        # Unfunded appends are undone by truncation, so nothing else may be
        # appended behind them until their deposits settle.
        if self._pending:
            raise ReentrantCreationError(
                "Schedule creation re-entered while a deposit is in flight."
            )

    def _fund(self, lengths: Dict[str, int], deposits: Sequence[Tuple[str, int]]) -> None:
        """
        Pulls each deposit into custody.

        ``lengths`` holds every touched beneficiary's schedule count from
        before the appends. Schedules at or beyond those counts cannot be
        claimed until funding settles. If any deposit fails they are
        truncated away and completed deposits are refunded; records below
        the counts, including claims committed by re-entrant calls, are
        kept.
        """
        funded: List[Tuple[str, int]] = []
        self._pending = lengths
        try:
            for beneficiary, amount in deposits:
                self._move(
                    self._token_ledger.transfer_from, beneficiary, self.config.custodian, amount
                )
                funded.append((beneficiary, amount))
        except TransferFailedError:
            for beneficiary, length in lengths.items():
                self._store.truncate(beneficiary, length)
            self._refund(funded)
            raise
        finally:
            self._pending = {}

    def _refund(self, funded: List[Tuple[str, int]]) -> None:
        for beneficiary, amount in reversed(funded):
            try:
                self._move(self._token_ledger.transfer, self.config.custodian, beneficiary, amount)
            except TransferFailedError as exc:
                raise AccountingInvariantViolation(
                    f"Could not refund {amount} to {beneficiary} after an aborted batch.",
                    details={"beneficiary": beneficiary, "amount": amount},
                ) from exc

    # ==================== Administration ====================

    def set_asset(self, caller: str, asset_id: str) -> None:
        """
        Fixes the asset this ledger vests. Privileged, and only once.

        Raises:
            UnauthorizedError: If caller is not privileged
            InvalidAssetError: If asset_id is empty or not a string
            AssetAlreadyConfiguredError: If the asset was already set
        """
        with self._lock:
            try:
                self._access_control.require_privileged(caller)
                if not isinstance(asset_id, str) or not asset_id.strip():
                    raise InvalidAssetError(f"Invalid asset identity: {asset_id!r}")
                if self.config.asset is not None:
                    raise AssetAlreadyConfiguredError(
                        f"Asset already configured as {self.config.asset}.",
                        details={"asset": self.config.asset},
                    )
            except VestingError as exc:
                self._record_failure("set_asset", exc)
                raise

            self.config.asset = asset_id
            self.events.emit(AssetSet(asset=asset_id))
            logger.info(
                "Vesting asset set to %s",
                asset_id,
                extra={"event": "vesting.asset_set", "asset": asset_id},
            )

    # ==================== Schedule creation ====================

    def create_vesting(self, caller: str, amount: int, duration_index: int) -> int:
        """
        Locks ``amount`` units from the caller into a new schedule for the caller.

        Returns:
            Index of the new schedule.

        Raises:
            AssetNotConfiguredError, InvalidAmountError, InvalidDurationIndexError,
            DurationMismatchError, TransferFailedError
        """
        with self._lock:
            try:
                self._begin_creation()
                if not caller:
                    raise InvalidBeneficiaryError("Beneficiary address cannot be empty.")
                duration = engine.validate_creation(
                    amount,
                    duration_index,
                    self.config.allowed_durations,
                    self.config.asset,
                    self._store.existing_duration(caller),
                )
                now = self._current_time()
                index = self._store.append(
                    caller,
                    VestingSchedule(total_allocation=amount, duration=duration, start_time=now),
                )
                self._fund({caller: index}, [(caller, amount)])
            except VestingError as exc:
                self._record_failure("create_vesting", exc)
                raise

            self.events.emit(VestingCreated(beneficiary=caller, amount=amount, start_time=now))
            self.metrics.record_created(amount, mode="single")
            logger.info(
                "Vesting schedule %s created for %s",
                index,
                caller,
                extra={
                    "event": "vesting.created",
                    "beneficiary": caller[:10],
                    "amount": amount,
                    "duration": duration,
                    "start_time": now,
                },
            )
            return index

    def batch_create_vesting(
        self,
        caller: str,
        beneficiaries: Sequence[str],
        amounts: Sequence[int],
        duration_indexes: Sequence[int],
    ) -> List[int]:
        """
        Creates one schedule per entry, funded from each beneficiary's
        pre-approved balance. Privileged.

        A beneficiary that already holds schedules keeps its existing
        duration; the supplied index for that entry is range-checked and
        then ignored. The batch is all-or-nothing.

        Returns:
            Index of each new schedule within its beneficiary's list, in input order.
        """
        with self._lock:
            try:
                self._access_control.require_privileged(caller)
                self._begin_creation()
                existing: Dict[str, int] = {}
                for beneficiary in beneficiaries:
                    duration = self._store.existing_duration(beneficiary)
                    if duration is not None:
                        existing[beneficiary] = duration
                durations = engine.validate_batch_creation(
                    beneficiaries,
                    amounts,
                    duration_indexes,
                    self.config.allowed_durations,
                    self.config.asset,
                    existing,
                )
                if not durations:
                    return []

                now = self._current_time()
                lengths = {beneficiary: self._store.count(beneficiary) for beneficiary in beneficiaries}
                indexes = [
                    self._store.append(
                        beneficiary,
                        VestingSchedule(total_allocation=amount, duration=duration, start_time=now),
                    )
                    for beneficiary, amount, duration in zip(beneficiaries, amounts, durations)
                ]
                self._fund(lengths, list(zip(beneficiaries, amounts)))
            except VestingError as exc:
                self._record_failure("batch_create_vesting", exc)
                raise

            self.events.emit(
                VestingBatchCreated(beneficiaries=tuple(beneficiaries), amounts=tuple(amounts))
            )
            for amount in amounts:
                self.metrics.record_created(amount, mode="batch")
            logger.info(
                "Vesting batch of %s schedules created",
                len(indexes),
                extra={
                    "event": "vesting.batch_created",
                    "count": len(indexes),
                    "total_amount": sum(amounts),
                    "start_time": now,
                },
            )
            return indexes

    # ==================== Claims ====================

    def claim(self, caller: str, schedule_index: int) -> int:
        """
        Releases every unlocked, unclaimed unit of one of the caller's schedules.

        The claimed amount is committed before the payout starts, so a
        re-entrant claim from inside the transfer finds nothing left. A
        failed payout restores the schedule.

        Returns:
            Units transferred to the caller.

        Raises:
            IndexOutOfRangeError, InactiveScheduleError, NothingToClaimError,
            TransferFailedError
        """
        with self._lock:
            try:
                now = self._current_time()
                schedule = self._store.get(caller, schedule_index)
                if schedule_index >= self._pending.get(caller, schedule_index + 1):
                    raise IndexOutOfRangeError(
                        f"Schedule {schedule_index} for {caller} is not funded yet.",
                        details={"index": schedule_index},
                    )
                updated, amount = engine.apply_claim(schedule, now, self.config.unlock_period)
                self._store.replace(caller, schedule_index, updated)
                try:
                    self._move(self._token_ledger.transfer, self.config.custodian, caller, amount)
                except TransferFailedError:
                    self._store.revert(caller, schedule_index, schedule)
                    raise
            except VestingError as exc:
                self._record_failure("claim", exc)
                raise

            self.events.emit(TokensClaimed(beneficiary=caller, amount=amount))
            self.metrics.record_claim(amount, completed=not updated.active)
            logger.info(
                "Claimed %s tokens for schedule %s",
                amount,
                schedule_index,
                extra={
                    "event": "vesting.claimed",
                    "beneficiary": caller[:10],
                    "amount": amount,
                    "claimed_amount": updated.claimed_amount,
                    "completed": not updated.active,
                },
            )
            return amount

    # ==================== Views ====================

    def vested_amount(self, beneficiary: str, schedule_index: int) -> int:
        with self._lock:
            schedule = self._store.get(beneficiary, schedule_index)
            return engine.vested_amount(schedule, self._current_time(), self.config.unlock_period)

    def claimable_amount(self, beneficiary: str, schedule_index: int) -> int:
        with self._lock:
            schedule = self._store.get(beneficiary, schedule_index)
            return engine.claimable_amount(
                schedule, self._current_time(), self.config.unlock_period
            )

    def get_schedule(self, beneficiary: str, schedule_index: int) -> VestingSchedule:
        with self._lock:
            return self._store.get(beneficiary, schedule_index)

    def get_schedules(self, beneficiary: str) -> Tuple[VestingSchedule, ...]:
        with self._lock:
            return self._store.schedules(beneficiary)

    def schedule_count(self, beneficiary: str) -> int:
        with self._lock:
            return self._store.count(beneficiary)

    def total_locked(self) -> int:
        """Units held by the custodian on behalf of all beneficiaries."""
        with self._lock:
            return self._store.total_locked()

    def export_state(self) -> Dict[str, object]:
        with self._lock:
            return {
                "asset": self.config.asset,
                "schedules": self._store.to_dict(),
                "events": self.events.to_list(),
            }
