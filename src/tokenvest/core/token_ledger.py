"""
tokenvest - Token Ledger

Asset transfer collaborator used by the vesting ledger, plus an in-memory
implementation holding balances and allowances per asset.

A transfer either moves the full amount or nothing; implementations report
failure by returning False.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Protocol, Tuple

logger = logging.getLogger("tokenvest.core.token_ledger")


class AssetTransfer(Protocol):
    """Moves units of an asset between addresses."""

    def transfer_from(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        """Pull ``amount`` from ``sender`` into ``recipient``, which must hold ``sender``'s approval."""
        ...

    def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        """Push ``amount`` held by ``sender`` to ``recipient``."""
        ...


class TokenLedger:
    """
    Manages balances for one or more fungible assets.
    """

    def __init__(self) -> None:
        # {asset: {address: balance}}
        self.balances: Dict[str, Dict[str, int]] = {}
        self._supply: Dict[str, int] = {}
        # {asset: {(owner, spender): remaining allowance}}
        self._allowances: Dict[str, Dict[Tuple[str, str], int]] = {}
        self._lock = threading.RLock()

    def mint(self, asset: str, address: str, amount: int) -> bool:
        """
        Mints new units of ``asset`` to an address.

        Returns:
            True if minting was successful, False otherwise.
        """
        if not asset or not address or amount <= 0:
            logger.warning(
                "Rejected mint",
                extra={"event": "ledger.mint_rejected", "asset": asset, "amount": amount},
            )
            return False

        with self._lock:
            asset_balances = self.balances.setdefault(asset, {})
            asset_balances[address] = asset_balances.get(address, 0) + amount
            self._supply[asset] = self._supply.get(asset, 0) + amount
        logger.info(
            "Minted %s %s to %s",
            amount,
            asset,
            address,
            extra={"event": "ledger.minted", "asset": asset, "amount": amount},
        )
        return True

    def balance_of(self, asset: str, address: str) -> int:
        return self.balances.get(asset, {}).get(address, 0)

    def total_supply(self, asset: str) -> int:
        return self._supply.get(asset, 0)

    def _move(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        if not isinstance(amount, int) or amount <= 0:
            logger.warning(
                "Attempted to transfer non-positive amount.",
                extra={"event": "ledger.transfer_rejected", "asset": asset, "amount": amount},
            )
            return False

        with self._lock:
            asset_balances = self.balances.get(asset, {})
            sender_balance = asset_balances.get(sender, 0)
            if sender_balance < amount:
                logger.warning(
                    "Insufficient balance for transfer from %s.",
                    sender,
                    extra={
                        "event": "ledger.insufficient_balance",
                        "asset": asset,
                        "amount": amount,
                        "sender_balance": sender_balance,
                    },
                )
                return False

            asset_balances[sender] = sender_balance - amount
            asset_balances[recipient] = asset_balances.get(recipient, 0) + amount
        logger.debug("Transferred %s %s from %s to %s", amount, asset, sender, recipient)
        return True

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> bool:
        """
        Lets ``spender`` pull up to ``amount`` units of ``asset`` from ``owner``.
        Replaces any previous allowance.
        """
        if not isinstance(amount, int) or amount < 0:
            logger.warning(
                "Rejected approval",
                extra={"event": "ledger.approval_rejected", "asset": asset, "amount": amount},
            )
            return False
        with self._lock:
            self._allowances.setdefault(asset, {})[(owner, spender)] = amount
        logger.info(
            "Approved %s to spend %s %s of %s",
            spender,
            amount,
            asset,
            owner,
            extra={"event": "ledger.approved", "asset": asset, "amount": amount},
        )
        return True

    def allowance(self, asset: str, owner: str, spender: str) -> int:
        return self._allowances.get(asset, {}).get((owner, spender), 0)

    def transfer_from(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        """Moves funds on the recipient's allowance from ``sender``, consuming it."""
        with self._lock:
            allowed = self.allowance(asset, sender, recipient)
            if isinstance(amount, int) and allowed < amount:
                logger.warning(
                    "Allowance too low for transfer from %s.",
                    sender,
                    extra={
                        "event": "ledger.allowance_exceeded",
                        "asset": asset,
                        "amount": amount,
                        "allowance": allowed,
                    },
                )
                return False
            if not self._move(asset, sender, recipient, amount):
                return False
            self._allowances[asset][(sender, recipient)] = allowed - amount
        return True

    def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        return self._move(asset, sender, recipient, amount)
