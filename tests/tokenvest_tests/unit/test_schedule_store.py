import pytest

from tokenvest.core.vesting_exceptions import (
    AccountingInvariantViolation,
    DurationMismatchError,
    IndexOutOfRangeError,
)
from tokenvest.vesting.models import VestingSchedule
from tokenvest.vesting.schedule_store import ScheduleStore

DAY = 86_400


def schedule(total=900, duration=90 * DAY, start=0, claimed=0, active=True):
    return VestingSchedule(
        total_allocation=total,
        duration=duration,
        start_time=start,
        claimed_amount=claimed,
        active=active,
    )


def test_append_assigns_sequential_indexes():
    store = ScheduleStore()
    assert store.count("alice") == 0
    assert store.append("alice", schedule(total=100)) == 0
    assert store.append("alice", schedule(total=200)) == 1
    assert store.append("bob", schedule(total=300)) == 0
    assert store.count("alice") == 2
    assert store.get("alice", 1).total_allocation == 200
    assert [s.total_allocation for s in store.schedules("alice")] == [100, 200]


def test_get_out_of_range():
    store = ScheduleStore()
    with pytest.raises(IndexOutOfRangeError):
        store.get("alice", 0)
    store.append("alice", schedule())
    with pytest.raises(IndexOutOfRangeError):
        store.get("alice", 1)
    with pytest.raises(IndexOutOfRangeError):
        store.get("alice", -1)


def test_out_of_range_is_also_an_index_error():
    with pytest.raises(IndexError):
        ScheduleStore().get("nobody", 3)


def test_first_schedule_fixes_duration():
    store = ScheduleStore()
    store.append("alice", schedule(duration=180 * DAY))
    assert store.existing_duration("alice") == 180 * DAY
    with pytest.raises(DurationMismatchError):
        store.append("alice", schedule(duration=90 * DAY))
    assert store.count("alice") == 1


def test_existing_duration_none_without_schedules():
    assert ScheduleStore().existing_duration("alice") is None


def test_replace_commits_forward_claims():
    store = ScheduleStore()
    store.append("alice", schedule())
    store.replace("alice", 0, schedule(claimed=300))
    assert store.get("alice", 0).claimed_amount == 300
    store.replace("alice", 0, schedule(claimed=900, active=False))
    assert store.get("alice", 0).active is False


@pytest.mark.parametrize(
    "proposed",
    [
        schedule(claimed=100),  # claimed moves backwards
        schedule(total=1000, claimed=400),  # allocation changed
        schedule(duration=180 * DAY, claimed=400),  # duration changed
        schedule(start=5, claimed=400),  # start changed
    ],
)
def test_replace_rejects_illegal_updates(proposed):
    store = ScheduleStore()
    store.append("alice", schedule())
    store.replace("alice", 0, schedule(claimed=300))
    with pytest.raises(AccountingInvariantViolation):
        store.replace("alice", 0, proposed)


def test_replace_cannot_reactivate():
    store = ScheduleStore()
    store.append("alice", schedule())
    store.replace("alice", 0, schedule(claimed=900, active=False))
    with pytest.raises(AccountingInvariantViolation):
        store.replace("alice", 0, schedule(claimed=900, active=True))


def test_truncate_drops_only_later_appends():
    store = ScheduleStore()
    store.append("alice", schedule())
    store.append("alice", schedule())
    store.replace("alice", 0, schedule(claimed=300))
    store.append("bob", schedule(duration=180 * DAY))

    store.truncate("alice", 1)
    store.truncate("bob", 0)
    store.truncate("carol", 0)

    assert store.count("alice") == 1
    assert store.get("alice", 0).claimed_amount == 300
    assert store.count("bob") == 0
    assert store.existing_duration("bob") is None
    assert store.beneficiaries() == ["alice"]


@pytest.mark.parametrize("index", [True, False, 1.0, "0"])
def test_get_rejects_non_integer_indexes(index):
    store = ScheduleStore()
    store.append("alice", schedule())
    store.append("alice", schedule())
    with pytest.raises(IndexOutOfRangeError):
        store.get("alice", index)


def test_total_locked_counts_unclaimed_units():
    store = ScheduleStore()
    store.append("alice", schedule(total=900))
    store.append("bob", schedule(total=100))
    store.replace("alice", 0, schedule(total=900, claimed=300))
    assert store.total_locked() == 700


def test_dict_export_round_trip_preserves_records():
    store = ScheduleStore()
    store.append("alice", schedule(total=900, start=10))
    store.replace("alice", 0, schedule(total=900, start=10, claimed=300))
    store.append("bob", schedule(total=50, duration=180 * DAY))

    rebuilt = ScheduleStore.from_dict(store.to_dict())
    assert rebuilt.to_dict() == store.to_dict()
    assert rebuilt.get("alice", 0).claimed_amount == 300


def test_from_dict_rejects_mixed_durations():
    data = {
        "alice": [
            schedule(duration=90 * DAY).to_dict(),
            schedule(duration=180 * DAY).to_dict(),
        ]
    }
    with pytest.raises(DurationMismatchError):
        ScheduleStore.from_dict(data)
