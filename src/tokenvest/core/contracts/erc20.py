"""
Fungible token the vesting ledger escrows and pays out.

Only the EIP-20 surface the transferers drive is modelled: balances,
allowances, transfer/approve/transferFrom and owner minting for funding the
administrator. State round-trips through to_dict/from_dict; the Transfer and
Approval log stays in memory.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict

from ..vesting_exceptions import TokenError

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40


@dataclass
class TokenEvent:
    event_type: str  # "Transfer" or "Approval"
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ERC20Token:
    """
    In-memory ERC20 balance sheet.

    Mutations hold one re-entrant lock so concurrent payouts drawing on the
    same custody balance are applied one at a time.
    """

    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0
    address: str = ""
    owner: str = ""

    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[str, dict[str, int]] = field(default_factory=dict)
    events: list[TokenEvent] = field(default_factory=list)

    _lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    UINT256_MAX: int = 2**256 - 1

    def __post_init__(self) -> None:
        if not self.address:
            seed = f"{self.name}{self.symbol}{time.time()}".encode()
            self.address = f"0x{hashlib.sha3_256(seed).digest()[-20:].hex()}"
        self.owner = _normalize(self.owner)

    def balance_of(self, account: str) -> int:
        return self.balances.get(_normalize(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get(_normalize(owner), {}).get(_normalize(spender), 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` from ``sender``'s own balance to ``recipient``."""
        source = _normalize(sender)
        target = _require_address(recipient, "recipient")
        _check_amount(amount)

        with self._lock:
            self._debit(source, amount)
            self.balances[target] = self.balances.get(target, 0) + amount
            self._record("Transfer", source, target, amount)

        logger.debug(
            "%s transfer of %s from %s to %s",
            self.symbol,
            amount,
            source,
            target,
            extra={"event": "erc20.transfer", "token": self.symbol},
        )
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Set (not add to) the allowance ``owner`` gives ``spender``."""
        holder = _normalize(owner)
        delegate = _require_address(spender, "spender")
        _check_amount(amount)

        with self._lock:
            self.allowances.setdefault(holder, {})[delegate] = amount
            self._record("Approval", holder, delegate, amount)
        return True

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        """
        Move ``amount`` out of ``from_addr`` on the strength of ``spender``'s allowance.

        Allowance and balance are both checked before anything changes. An
        allowance of UINT256_MAX is treated as unlimited and left untouched.

        Raises:
            TokenError: zero recipient, bad amount, short allowance or short balance
        """
        delegate = _normalize(spender)
        source = _normalize(from_addr)
        target = _require_address(to_addr, "recipient")
        _check_amount(amount)

        with self._lock:
            allowed = self.allowance(source, delegate)
            if allowed < amount:
                raise TokenError(
                    f"ERC20: insufficient allowance ({allowed} < {amount})",
                    details={"owner": source, "spender": delegate, "amount": amount},
                )
            self._debit(source, amount)
            if allowed != self.UINT256_MAX:
                self.allowances[source][delegate] = allowed - amount
            self.balances[target] = self.balances.get(target, 0) + amount
            self._record("Transfer", source, target, amount)
        return True

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """Create ``amount`` new units for ``to``; only the owner may mint."""
        if not self.owner or _normalize(minter) != self.owner:
            raise TokenError("ERC20: caller is not owner", details={"caller": minter})
        target = _require_address(to, "recipient")
        _check_amount(amount)

        with self._lock:
            self.total_supply += amount
            self.balances[target] = self.balances.get(target, 0) + amount
            self._record("Transfer", ZERO_ADDRESS, target, amount)

        logger.info(
            "Minted %s %s to %s (supply %s)",
            amount,
            self.symbol,
            target,
            self.total_supply,
            extra={"event": "erc20.mint", "token": self.symbol},
        )
        return True

    def _debit(self, account: str, amount: int) -> None:
        balance = self.balances.get(account, 0)
        if balance < amount:
            raise TokenError(
                f"ERC20: transfer amount exceeds balance ({amount} > {balance})",
                details={"from": account, "amount": amount, "balance": balance},
            )
        self.balances[account] = balance - amount

    def _record(self, event_type: str, source: str, target: str, amount: int) -> None:
        self.events.append(TokenEvent(event_type, source, target, amount))

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "name": self.name,
                "symbol": self.symbol,
                "decimals": self.decimals,
                "total_supply": self.total_supply,
                "address": self.address,
                "owner": self.owner,
                "balances": dict(self.balances),
                "allowances": {owner: dict(spenders) for owner, spenders in self.allowances.items()},
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ERC20Token":
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", 18),
            total_supply=data.get("total_supply", 0),
            address=data.get("address", ""),
            owner=data.get("owner", ""),
        )
        token.balances = {account: int(value) for account, value in data.get("balances", {}).items()}
        token.allowances = {
            owner: {spender: int(value) for spender, value in spenders.items()}
            for owner, spenders in data.get("allowances", {}).items()
        }
        return token


def _normalize(address: str | None) -> str:
    return (address or "").strip().lower()


def _require_address(address: str, role: str) -> str:
    normalized = _normalize(address)
    if not normalized or normalized == ZERO_ADDRESS:
        raise TokenError(f"ERC20: {role} is zero address", details={role: address})
    return normalized


def _check_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TokenError("ERC20: amount must be an integer", details={"amount": amount})
    if amount < 0:
        raise TokenError("ERC20: amount cannot be negative", details={"amount": amount})
    if amount > ERC20Token.UINT256_MAX:
        raise TokenError("ERC20: amount exceeds uint256", details={"amount": amount})
