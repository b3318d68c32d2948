"""
Reward Distribution Ledger

This module provides:
- Owner and keeper roles with a claim blacklist
- Batched winner registration before the claim window opens
- One-shot, all-or-nothing reward claims during a fixed 7 day window
- Sweeping of leftover funds once claiming is over
- An audit trail of emitted ledger events
"""

from .models import (
    EventType,
    LedgerPhase,
    LedgerEvent,
    LedgerStatus,
)
from .custodian import CustodianRegistry, InMemoryCustodian
from .service import RewardLedgerService

__all__ = [
    "EventType",
    "LedgerPhase",
    "LedgerEvent",
    "LedgerStatus",
    "CustodianRegistry",
    "InMemoryCustodian",
    "RewardLedgerService",
]
