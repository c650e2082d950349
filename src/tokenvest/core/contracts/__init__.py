"""
tokenvest Contract Standards.

- ERC20: Fungible token standard, the asset held by the vesting ledger
"""

from .erc20 import ZERO_ADDRESS, ERC20Token, TokenEvent

__all__ = ["ZERO_ADDRESS", "ERC20Token", "TokenEvent"]
