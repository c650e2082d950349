"""
tokenvest - Linear Token Vesting Ledger

Tracks token entitlements that unlock linearly over one global progress
window and lets each beneficiary withdraw what has unlocked so far.

Main Components:
- Blockchain: the vesting ledger, its asset transferers and progress clocks
- Core: token contract, exceptions, configuration, logging and metrics
- CLI: operator commands against a local ledger state file
"""

__version__ = "0.1.0"
__author__ = "tokenvest Development Team"

__all__ = []
