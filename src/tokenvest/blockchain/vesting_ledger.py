from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any

from tokenvest.blockchain.asset_transferer import AssetTransferer
from tokenvest.blockchain.progress_clock import ProgressClock
from tokenvest.core.contracts.erc20 import ZERO_ADDRESS
from tokenvest.core.metrics import VestingMetrics
from tokenvest.core.vesting_exceptions import (
    InvalidAccountError,
    InvalidAmountError,
    InvalidScheduleError,
    LedgerStateError,
    NothingToClaimError,
    TransferFailure,
    UnauthorizedError,
    VestingError,
)

logger = logging.getLogger("tokenvest.blockchain.vesting_ledger")

SNAPSHOT_VERSION = 1
MAX_EVENT_LOG = 1000


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_null_account(account: str | None) -> bool:
    """True for None, blank strings and the zero address."""
    if account is None:
        return True
    normalized = str(account).strip().lower()
    return not normalized or normalized == ZERO_ADDRESS


def normalize_account(account: str) -> str:
    return account.strip().lower()


@dataclass(frozen=True)
class VestingSchedule:
    """The single linear release window shared by every account."""

    window_start: int
    window_end: int

    def __post_init__(self) -> None:
        if not _is_int(self.window_start) or not _is_int(self.window_end):
            raise InvalidScheduleError(
                "Window bounds must be integer progress values.",
                details={"window_start": self.window_start, "window_end": self.window_end},
            )
        if self.window_end <= self.window_start:
            raise InvalidScheduleError(
                "Window end must be after window start.",
                details={"window_start": self.window_start, "window_end": self.window_end},
            )

    @property
    def duration(self) -> int:
        return self.window_end - self.window_start

    def releasable(self, vested_total: int, progress: int) -> int:
        """
        Cumulative amount of ``vested_total`` unlocked at ``progress``.

        Exact integer arithmetic: floor(vested * elapsed / duration), clamped to
        the window so nothing unlocks before the start and everything has
        unlocked at the end.
        """
        if progress <= self.window_start:
            return 0
        if progress >= self.window_end:
            return vested_total
        return vested_total * (progress - self.window_start) // self.duration


@dataclass
class Grant:
    vested_total: int = 0
    claimed_total: int = 0


@dataclass
class LedgerEvent:
    """A Vested or Claimed entry in the ledger's event log."""

    event_type: str
    account: str
    amount: int
    progress: int
    timestamp: float = field(default_factory=time.time)


class VestingLedger:
    """
    Tracks per-account grants released linearly over one global window.

    The administrator records grants; each beneficiary claims for itself
    whatever has unlocked and not yet been paid. claimed_total never exceeds
    what is releasable at the ledger's highest observed progress.
    """

    def __init__(
        self,
        admin: str,
        window_start: int,
        window_end: int,
        transferer: AssetTransferer,
        clock: ProgressClock,
        metrics: VestingMetrics | None = None,
        max_events: int = MAX_EVENT_LOG,
    ):
        self.schedule = VestingSchedule(window_start, window_end)
        if is_null_account(admin):
            raise InvalidAccountError("Administrator cannot be the null account.")
        self._admin = normalize_account(admin)
        self.transferer = transferer
        self.clock = clock
        self.metrics = metrics or VestingMetrics()

        self._grants: dict[str, Grant] = {}
        self._events: deque[LedgerEvent] = deque(maxlen=max_events)
        self._total_vested = 0
        self._total_claimed = 0
        self._high_water: int | None = None

        # Guards the grant registry, aggregates, events and the high-water mark
        self._state_lock = threading.Lock()
        # One lock per account; release holds it across read-compute-write-transfer
        self._account_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

        logger.info(
            "VestingLedger initialized for window [%s, %s] with admin %s",
            window_start,
            window_end,
            self._admin,
            extra={"event": "vesting.ledger_created"},
        )

    # ==================== Properties ====================

    @property
    def admin(self) -> str:
        return self._admin

    @property
    def window_start(self) -> int:
        return self.schedule.window_start

    @property
    def window_end(self) -> int:
        return self.schedule.window_end

    @property
    def total_vested(self) -> int:
        return self._total_vested

    @property
    def total_claimed(self) -> int:
        return self._total_claimed

    @property
    def events(self) -> list[LedgerEvent]:
        with self._state_lock:
            return list(self._events)

    def accounts(self) -> list[str]:
        with self._state_lock:
            return sorted(self._grants)

    # ==================== Progress ====================

    def current_progress(self) -> int:
        """Read the clock, never reporting less than the highest value already seen."""
        raw = self.clock.current_progress()
        if not _is_int(raw):
            try:
                raw = int(raw)
            except (TypeError, ValueError) as exc:
                raise ValueError("progress clock must return an integer counter") from exc
        with self._state_lock:
            if self._high_water is not None and raw < self._high_water:
                logger.warning(
                    "Progress clock regressed from %s to %s; holding at %s",
                    self._high_water,
                    raw,
                    self._high_water,
                    extra={"event": "vesting.clock_regressed"},
                )
                return self._high_water
            self._high_water = raw
        self.metrics.observe_progress(raw)
        return raw

    # ==================== Admin Operations ====================

    def grant(self, caller: str, account: str, amount: int) -> None:
        """
        Add ``amount`` to ``account``'s vested total (administrator only).

        The amount is escrowed from the administrator through the transferer
        before the ledger records it, so a rejected escrow changes nothing.

        Raises:
            UnauthorizedError: caller is not the administrator
            InvalidAccountError: account is the null identity
            InvalidAmountError: amount is zero or not a positive integer
            TransferFailure: the escrow movement was rejected
        """
        if is_null_account(caller) or normalize_account(caller) != self._admin:
            raise self._reject(
                UnauthorizedError(
                    "Only the ledger administrator can grant.",
                    details={"caller": caller},
                ),
                "unauthorized",
            )
        if is_null_account(account):
            raise self._reject(
                InvalidAccountError("Cannot grant to the null account.", details={"account": account}),
                "invalid_account",
            )
        if not _is_int(amount) or amount <= 0:
            raise self._reject(
                InvalidAmountError("Grant amount must be greater than 0.", details={"amount": amount}),
                "invalid_amount",
            )

        account = normalize_account(account)
        with self._account_lock(account):
            try:
                self.transferer.transfer_from(self._admin, amount)
            except TransferFailure:
                self.metrics.record_transfer_failure("grant")
                raise

            progress = self.current_progress()
            with self._state_lock:
                grant = self._grants.setdefault(account, Grant())
                grant.vested_total += amount
                self._total_vested += amount
                self._events.append(LedgerEvent("Vested", account, amount, progress))
                vested_total = grant.vested_total

        self.metrics.record_grant(amount)
        logger.info(
            "Granted %s to %s (vested total %s)",
            amount,
            account,
            vested_total,
            extra={"event": "vesting.grant", "account": account, "amount": amount},
        )

    # ==================== Claimant Operations ====================

    def release(self, caller: str) -> int:
        """
        Pay ``caller`` everything unlocked for it and not yet claimed.

        claimed_total is advanced first and rolled back if the payout is
        rejected, all while the account lock is held.

        Returns:
            The due amount transferred.

        Raises:
            InvalidAccountError: caller is the null identity
            NothingToClaimError: nothing is due at the current progress
            TransferFailure: the payout was rejected; state is unchanged
        """
        if is_null_account(caller):
            raise self._reject(
                InvalidAccountError("Null account cannot claim.", details={"account": caller}),
                "invalid_account",
            )
        account = normalize_account(caller)

        with self._state_lock:
            grant = self._grants.get(account)
        if grant is None:
            raise self._reject(
                NothingToClaimError("No funds to claim.", details={"account": account, "due": 0}),
                "nothing_to_claim",
            )

        with self._account_lock(account):
            progress = self.current_progress()
            releasable = self.schedule.releasable(grant.vested_total, progress)
            due = releasable - grant.claimed_total
            if due <= 0:
                raise self._reject(
                    NothingToClaimError(
                        "No funds to claim.",
                        details={"account": account, "due": 0, "progress": progress},
                    ),
                    "nothing_to_claim",
                )

            grant.claimed_total += due
            try:
                self.transferer.transfer_to(account, due)
            except TransferFailure:
                grant.claimed_total -= due
                self.metrics.record_transfer_failure("release")
                raise
            except Exception as exc:
                grant.claimed_total -= due
                self.metrics.record_transfer_failure("release")
                raise TransferFailure(
                    f"Payout to {account} failed: {exc}",
                    reason=type(exc).__name__,
                    details={"account": account, "amount": due},
                ) from exc

            with self._state_lock:
                self._total_claimed += due
                self._events.append(LedgerEvent("Claimed", account, due, progress))
            claimed_total = grant.claimed_total

        self.metrics.record_claim(due)
        logger.info(
            "Claimed %s for %s at progress %s (claimed total %s)",
            due,
            account,
            progress,
            claimed_total,
            extra={"event": "vesting.claim", "account": account, "amount": due},
        )
        return due

    # ==================== Views ====================

    def funds_vested_for(self, account: str | None) -> int:
        grant = self._lookup(account)
        return grant.vested_total if grant else 0

    def funds_claimed_for(self, account: str | None) -> int:
        grant = self._lookup(account)
        return grant.claimed_total if grant else 0

    def releasable_for(self, account: str | None) -> int:
        """Amount a release by ``account`` would pay right now."""
        grant = self._lookup(account)
        if grant is None:
            return 0
        progress = self.current_progress()
        return max(0, self.schedule.releasable(grant.vested_total, progress) - grant.claimed_total)

    def vested_at(self, account: str | None, progress: int) -> int:
        """Cumulative unlocked amount for ``account`` at an arbitrary progress value."""
        grant = self._lookup(account)
        if grant is None:
            return 0
        return self.schedule.releasable(grant.vested_total, progress)

    # ==================== Serialization ====================

    def to_dict(self) -> dict[str, Any]:
        with self._state_lock:
            return {
                "version": SNAPSHOT_VERSION,
                "admin": self._admin,
                "window_start": self.window_start,
                "window_end": self.window_end,
                "progress_high_water": self._high_water,
                "grants": {
                    account: {"vested_total": g.vested_total, "claimed_total": g.claimed_total}
                    for account, g in self._grants.items()
                },
                "events": [asdict(event) for event in self._events],
            }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        transferer: AssetTransferer,
        clock: ProgressClock,
        metrics: VestingMetrics | None = None,
    ) -> "VestingLedger":
        """Rebuild a ledger from to_dict() output, validating every grant."""
        try:
            ledger = cls(
                data["admin"],
                data["window_start"],
                data["window_end"],
                transferer,
                clock,
                metrics=metrics,
            )
            grants = data.get("grants", {})
            events = data.get("events", [])
            high_water = data.get("progress_high_water")
        except (KeyError, TypeError) as exc:
            raise LedgerStateError(f"Ledger snapshot is missing fields: {exc}") from exc
        except VestingError as exc:
            raise LedgerStateError(f"Ledger snapshot is invalid: {exc.message}") from exc

        if high_water is not None and not _is_int(high_water):
            raise LedgerStateError("Snapshot progress high-water mark must be an integer.")
        if not isinstance(grants, dict) or not isinstance(events, list):
            raise LedgerStateError("Snapshot grants must be a mapping and events a list.")

        for account, entry in grants.items():
            try:
                vested = entry["vested_total"]
                claimed = entry["claimed_total"]
            except (KeyError, TypeError) as exc:
                raise LedgerStateError(f"Grant for {account} is malformed") from exc
            if is_null_account(account):
                raise LedgerStateError("Snapshot contains a grant for the null account.")
            if not (_is_int(vested) and _is_int(claimed)) or claimed < 0 or vested < claimed:
                raise LedgerStateError(
                    f"Grant for {account} is inconsistent (vested {vested}, claimed {claimed})"
                )
            ledger._grants[normalize_account(account)] = Grant(vested, claimed)
            ledger._total_vested += vested
            ledger._total_claimed += claimed

        try:
            ledger._events.extend(LedgerEvent(**event) for event in events)
        except TypeError as exc:
            raise LedgerStateError("Snapshot event log is malformed") from exc
        ledger._high_water = high_water
        return ledger

    # ==================== Helpers ====================

    def _lookup(self, account: str | None) -> Grant | None:
        if is_null_account(account):
            return None
        with self._state_lock:
            return self._grants.get(normalize_account(account))

    def _account_lock(self, account: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._account_locks.get(account)
            if lock is None:
                lock = threading.Lock()
                self._account_locks[account] = lock
            return lock

    def _reject(self, error: VestingError, reason: str) -> VestingError:
        self.metrics.record_rejection(reason)
        logger.warning(
            "Rejected ledger call: %s",
            error.message,
            extra={"event": "vesting.rejected", "reason": reason},
        )
        return error
