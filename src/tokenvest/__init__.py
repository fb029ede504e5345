"""
tokenvest - Token Vesting Ledger

Per-account ledger of token allocations that unlock in whole periods over a
fixed duration, with claims, batch creation and an append-only audit log.

Main Components:
- vesting: Schedule store, vesting engine and the TokenVesting ledger
- core: Configuration, logging, metrics, access control and token transfers
- cli: Command-line preview and configuration tools
"""

__version__ = "0.1.0"
__author__ = "tokenvest Development Team"

__all__ = []
