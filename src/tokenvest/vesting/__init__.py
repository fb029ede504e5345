"""
Token vesting ledger.

- Engine: Pure unlock arithmetic and request validation
- Schedule Store: Per-beneficiary append-only schedule lists
- TokenVesting: Public ledger surface with audit events
"""

from .engine import (
    apply_claim,
    claimable_amount,
    unlock_timeline,
    validate_batch_creation,
    validate_creation,
    vested_amount,
)
from .events import (
    AssetSet,
    EventLog,
    TokensClaimed,
    VestingBatchCreated,
    VestingCreated,
)
from .models import UnlockStep, VestingConfig, VestingSchedule
from .schedule_store import ScheduleStore
from .token_vesting import TokenVesting

__all__ = [
    # Ledger
    "TokenVesting",
    "ScheduleStore",
    # Models
    "VestingSchedule",
    "VestingConfig",
    "UnlockStep",
    # Engine
    "vested_amount",
    "claimable_amount",
    "apply_claim",
    "validate_creation",
    "validate_batch_creation",
    "unlock_timeline",
    # Events
    "EventLog",
    "AssetSet",
    "VestingCreated",
    "TokensClaimed",
    "VestingBatchCreated",
]
