import pytest

from tokenvest.core.token_ledger import TokenLedger


@pytest.fixture
def ledger():
    ledger = TokenLedger()
    ledger.mint("VEST", "alice", 500)
    return ledger


def test_mint_credits_balance_and_supply(ledger):
    assert ledger.balance_of("VEST", "alice") == 500
    assert ledger.total_supply("VEST") == 500
    assert ledger.mint("VEST", "bob", 250)
    assert ledger.total_supply("VEST") == 750


@pytest.mark.parametrize("asset,address,amount", [
    ("", "alice", 10),
    ("VEST", "", 10),
    ("VEST", "alice", 0),
    ("VEST", "alice", -3),
])
def test_invalid_mint_rejected(ledger, asset, address, amount):
    assert ledger.mint(asset, address, amount) is False
    assert ledger.total_supply("VEST") == 500


def test_transfer_moves_full_amount(ledger):
    ledger.approve("VEST", "alice", "vault", 200)
    assert ledger.transfer_from("VEST", "alice", "vault", 200)
    assert ledger.balance_of("VEST", "alice") == 300
    assert ledger.balance_of("VEST", "vault") == 200
    assert ledger.transfer("VEST", "vault", "bob", 200)
    assert ledger.balance_of("VEST", "vault") == 0
    assert ledger.total_supply("VEST") == 500


def test_transfer_from_requires_allowance(ledger):
    assert ledger.allowance("VEST", "alice", "vault") == 0
    assert ledger.transfer_from("VEST", "alice", "vault", 1) is False
    assert ledger.balance_of("VEST", "alice") == 500


def test_transfer_from_consumes_allowance(ledger):
    assert ledger.approve("VEST", "alice", "vault", 300)
    assert ledger.transfer_from("VEST", "alice", "vault", 200)
    assert ledger.allowance("VEST", "alice", "vault") == 100
    assert ledger.transfer_from("VEST", "alice", "vault", 101) is False
    assert ledger.balance_of("VEST", "vault") == 200


def test_allowance_is_per_spender(ledger):
    ledger.approve("VEST", "alice", "vault", 100)
    assert ledger.transfer_from("VEST", "alice", "mallory", 50) is False
    assert ledger.allowance("VEST", "alice", "mallory") == 0


@pytest.mark.parametrize("amount", [-1, 1.5])
def test_invalid_approval_rejected(ledger, amount):
    assert ledger.approve("VEST", "alice", "vault", amount) is False
    assert ledger.allowance("VEST", "alice", "vault") == 0


def test_insufficient_balance_keeps_allowance(ledger):
    ledger.approve("VEST", "alice", "vault", 1000)
    assert ledger.transfer_from("VEST", "alice", "vault", 501) is False
    assert ledger.balance_of("VEST", "alice") == 500
    assert ledger.balance_of("VEST", "vault") == 0
    assert ledger.allowance("VEST", "alice", "vault") == 1000


@pytest.mark.parametrize("amount", [0, -1, 1.5])
def test_non_positive_or_fractional_transfer_rejected(ledger, amount):
    assert ledger.transfer("VEST", "alice", "bob", amount) is False
    assert ledger.balance_of("VEST", "alice") == 500


def test_assets_are_isolated(ledger):
    assert ledger.transfer("OTHER", "alice", "bob", 1) is False
    assert ledger.balance_of("OTHER", "alice") == 0
