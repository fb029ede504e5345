import pytest

from tokenvest.core.access_control import RoleBasedAccessControl
from tokenvest.core.token_ledger import TokenLedger
from tokenvest.vesting.models import VestingConfig
from tokenvest.vesting.token_vesting import TokenVesting

START = 1_700_000_000
ASSET = "VEST"
ADMIN = "0xadmin"
CUSTODIAN = "vesting_custodian"


class FakeClock:
    """Deterministic, manually advanced time source."""

    def __init__(self, now: int = START):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def token_ledger():
    ledger = TokenLedger()
    for address in ("alice", "bob", "carol"):
        ledger.mint(ASSET, address, 1_000_000)
        ledger.approve(ASSET, address, CUSTODIAN, 10_000_000)
    return ledger


@pytest.fixture
def rbac():
    return RoleBasedAccessControl(owner=ADMIN)


@pytest.fixture
def unconfigured_vesting(token_ledger, rbac, clock):
    return TokenVesting(
        token_ledger=token_ledger,
        access_control=rbac,
        config=VestingConfig(),
        time_provider=clock,
    )


@pytest.fixture
def vesting(unconfigured_vesting):
    unconfigured_vesting.set_asset(ADMIN, ASSET)
    return unconfigured_vesting
