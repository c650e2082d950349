"""
Asset Transferer Module

Narrow capability the vesting ledger uses to move the managed asset. The
ledger only ever asks for two movements:

- transfer_from(source, amount): bring ``amount`` from ``source`` (the
  administrator) into ledger custody when a grant is recorded.
- transfer_to(account, amount): pay ``amount`` out of ledger custody when a
  beneficiary claims.

Both raise TransferFailure when the underlying asset rejects the movement.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

from tokenvest.core.contracts.erc20 import ERC20Token
from tokenvest.core.vesting_exceptions import TokenError, TransferFailure

logger = logging.getLogger("tokenvest.blockchain.asset_transferer")


@runtime_checkable
class AssetTransferer(Protocol):
    """Capability for moving funds into and out of ledger custody."""

    def transfer_from(self, source: str, amount: int) -> None:
        ...

    def transfer_to(self, account: str, amount: int) -> None:
        ...


class CustodyTransferer:
    """
    Moves funds into ledger custody at grant time.

    The administrator approves ``custody_address`` on the token beforehand;
    each grant pulls the granted amount into custody immediately and each
    claim pays out of the custody balance.
    """

    mode = "custody"

    def __init__(self, token: ERC20Token, custody_address: str) -> None:
        if not custody_address:
            raise ValueError("Custody address cannot be empty.")
        self.token = token
        self.custody_address = custody_address.strip().lower()

    def transfer_from(self, source: str, amount: int) -> None:
        try:
            self.token.transfer_from(self.custody_address, source, self.custody_address, amount)
        except TokenError as exc:
            logger.warning(
                "Escrow of %s from %s into custody rejected: %s", amount, source, exc
            )
            raise TransferFailure(
                f"Escrow into custody failed: {exc}",
                reason=exc.message,
                details={"source": source, "amount": amount, **exc.details},
            ) from exc

    def transfer_to(self, account: str, amount: int) -> None:
        try:
            self.token.transfer(self.custody_address, account, amount)
        except TokenError as exc:
            logger.warning("Payout of %s to %s rejected: %s", amount, account, exc)
            raise TransferFailure(
                f"Payout from custody failed: {exc}",
                reason=exc.message,
                details={"account": account, "amount": amount, **exc.details},
            ) from exc

    def custody_balance(self) -> int:
        return self.token.balance_of(self.custody_address)


class AllowanceTransferer:
    """
    Deferred escrow over an allowance.

    Funds stay with ``funder`` until claim time. A grant only reserves part of
    the allowance ``funder`` gave ``spender_address``; a claim pulls the due
    amount straight from ``funder`` to the beneficiary and releases the
    reservation.
    """

    mode = "allowance"

    def __init__(self, token: ERC20Token, spender_address: str, funder: str, reserved: int = 0) -> None:
        if not spender_address or not funder:
            raise ValueError("Spender and funder addresses cannot be empty.")
        if reserved < 0:
            raise ValueError("Reserved amount cannot be negative.")
        self.token = token
        self.spender_address = spender_address.strip().lower()
        self.funder = funder.strip().lower()
        self.reserved = reserved
        self._lock = threading.Lock()

    def available_allowance(self) -> int:
        return self.token.allowance(self.funder, self.spender_address) - self.reserved

    def transfer_from(self, source: str, amount: int) -> None:
        if source.strip().lower() != self.funder:
            raise TransferFailure(
                "Escrow source is not the allowance funder",
                reason="source mismatch",
                details={"source": source, "funder": self.funder},
            )
        with self._lock:
            available = self.available_allowance()
            if available < amount:
                logger.warning(
                    "Reservation of %s rejected: only %s of allowance unreserved",
                    amount,
                    available,
                )
                raise TransferFailure(
                    f"Insufficient unreserved allowance ({available} < {amount})",
                    reason="insufficient allowance",
                    details={"available": available, "amount": amount},
                )
            self.reserved += amount

    def transfer_to(self, account: str, amount: int) -> None:
        with self._lock:
            try:
                self.token.transfer_from(self.spender_address, self.funder, account, amount)
            except TokenError as exc:
                logger.warning("Allowance payout of %s to %s rejected: %s", amount, account, exc)
                raise TransferFailure(
                    f"Allowance payout failed: {exc}",
                    reason=exc.message,
                    details={"account": account, "amount": amount, **exc.details},
                ) from exc
            self.reserved -= min(amount, self.reserved)
