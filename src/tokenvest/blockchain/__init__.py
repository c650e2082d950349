"""
tokenvest Blockchain Module

Vesting ledger components:
- VestingLedger: grants, linear release and claim bookkeeping
- Asset transferers: custody and allowance based movement of the managed token
- Progress clocks: block height style counters the schedule is measured against
- Ledger persistence: local deployment state for the operator CLI
"""

from .asset_transferer import AllowanceTransferer, AssetTransferer, CustodyTransferer
from .progress_clock import CallableClock, ManualClock, ProgressClock, WallClock
from .vesting_ledger import Grant, LedgerEvent, VestingLedger, VestingSchedule

__all__ = [
    "AllowanceTransferer",
    "AssetTransferer",
    "CallableClock",
    "CustodyTransferer",
    "Grant",
    "LedgerEvent",
    "ManualClock",
    "ProgressClock",
    "VestingLedger",
    "VestingSchedule",
    "WallClock",
]
