"""
Ledger Persistence Module

Deploys a token + vesting ledger pair and stores the whole local deployment
(token balances, ledger grants, transferer reservation and the progress
counter) as a single JSON document. Used by the operator CLI, which works
against a state file instead of a live chain.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from tokenvest.blockchain.asset_transferer import AllowanceTransferer, CustodyTransferer
from tokenvest.blockchain.progress_clock import ManualClock
from tokenvest.blockchain.vesting_ledger import VestingLedger
from tokenvest.core.contracts.erc20 import ERC20Token
from tokenvest.core.vesting_exceptions import LedgerStateError, VestingError

logger = logging.getLogger("tokenvest.blockchain.ledger_persistence")

STATE_VERSION = 1
TRANSFER_MODES = ("custody", "allowance")

Transferer = Union[CustodyTransferer, AllowanceTransferer]


@dataclass
class LedgerDeployment:
    """Everything a local operator session needs: asset, clock, ledger."""

    token: ERC20Token
    clock: ManualClock
    transferer: Transferer
    ledger: VestingLedger
    ledger_address: str

    @property
    def mode(self) -> str:
        return self.transferer.mode

    def to_dict(self) -> Dict[str, Any]:
        transferer: Dict[str, Any] = {"mode": self.mode}
        if isinstance(self.transferer, AllowanceTransferer):
            transferer["funder"] = self.transferer.funder
            transferer["reserved"] = self.transferer.reserved
        return {
            "version": STATE_VERSION,
            "ledger_address": self.ledger_address,
            "height": self.clock.current_progress(),
            "token": self.token.to_dict(),
            "transferer": transferer,
            "ledger": self.ledger.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerDeployment":
        try:
            if data.get("version") != STATE_VERSION:
                raise LedgerStateError(f"Unsupported state version: {data.get('version')!r}")
            ledger_address = data["ledger_address"]
            token = ERC20Token.from_dict(data["token"])
            clock = ManualClock(data["height"])
            transferer = _build_transferer(
                data["transferer"], token, ledger_address, data["ledger"]["admin"]
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise LedgerStateError(f"State file is malformed: {exc}") from exc
        ledger = VestingLedger.from_dict(data["ledger"], transferer, clock)
        return cls(token, clock, transferer, ledger, ledger_address)


def _build_transferer(
    config: Dict[str, Any], token: ERC20Token, ledger_address: str, admin: str
) -> Transferer:
    mode = config.get("mode", "custody")
    if mode == "custody":
        return CustodyTransferer(token, ledger_address)
    if mode == "allowance":
        return AllowanceTransferer(
            token,
            ledger_address,
            config.get("funder", admin),
            reserved=int(config.get("reserved", 0)),
        )
    raise LedgerStateError(f"Unknown transfer mode: {mode!r}")


def _derive_ledger_address(admin: str, token_address: str) -> str:
    addr_input = f"TokenVesting{admin}{token_address}{time.time()}".encode()
    return f"0x{hashlib.sha3_256(addr_input).digest()[-20:].hex()}"


def deploy_ledger(
    admin: str,
    window_start: int,
    window_end: int,
    *,
    mint: int = 0,
    approve: int = 0,
    mode: str = "custody",
    name: str = "Test",
    symbol: str = "VEST",
    decimals: int = 18,
    height: int = 0,
) -> LedgerDeployment:
    """
    Deploy a fresh token and vesting ledger.

    Args:
        admin: Administrator and token owner
        window_start: Progress value at which release begins
        window_end: Progress value at which release completes
        mint: Units minted to the administrator
        approve: Allowance the administrator grants the ledger
        mode: "custody" escrows at grant time, "allowance" pulls at claim time
        height: Initial value of the local progress counter

    Returns:
        The new deployment
    """
    if mode not in TRANSFER_MODES:
        raise ValueError(f"mode must be one of {', '.join(TRANSFER_MODES)}")

    clock = ManualClock(height)
    token = ERC20Token(name=name, symbol=symbol, decimals=decimals, owner=admin)
    ledger_address = _derive_ledger_address(admin, token.address)
    transferer = _build_transferer({"mode": mode}, token, ledger_address, admin)
    ledger = VestingLedger(admin, window_start, window_end, transferer, clock)

    if mint:
        token.mint(admin, admin, mint)
    if approve:
        token.approve(admin, ledger_address, approve)

    logger.info(
        "TokenVesting deployed to %s",
        ledger_address,
        extra={
            "event": "vesting.deployed",
            "token": token.address,
            "mode": mode,
            "window_start": window_start,
            "window_end": window_end,
        },
    )
    return LedgerDeployment(token, clock, transferer, ledger, ledger_address)


class LedgerStateStore:
    """JSON file holding one LedgerDeployment."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, deployment: LedgerDeployment) -> None:
        snapshot = deployment.to_dict()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".tokenvest-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(snapshot, handle, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            logger.error("Failed to persist ledger state to %s: %s", self.path, exc)
            raise LedgerStateError(f"Could not write state file {self.path}: {exc}") from exc
        logger.debug("Ledger state written to %s", self.path)

    def load(self) -> LedgerDeployment:
        if not self.path.exists():
            raise LedgerStateError(
                f"No ledger state at {self.path}; run 'tokenvest deploy' first."
            )
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to load ledger state from %s: %s", self.path, exc)
            raise LedgerStateError(f"Could not read state file {self.path}: {exc}") from exc
        try:
            return LedgerDeployment.from_dict(data)
        except LedgerStateError:
            raise
        except VestingError as exc:
            raise LedgerStateError(f"State file {self.path} is invalid: {exc.message}") from exc
