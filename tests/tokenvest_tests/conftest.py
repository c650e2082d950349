import logging

import pytest

from tokenvest.blockchain.asset_transferer import AllowanceTransferer, CustodyTransferer
from tokenvest.blockchain.progress_clock import ManualClock
from tokenvest.blockchain.vesting_ledger import VestingLedger
from tokenvest.core.contracts.erc20 import ERC20Token

ADMIN = "0xadmin00000000000000000000000000000000001"
ALICE = "0xalice00000000000000000000000000000000002"
BOB = "0xbob0000000000000000000000000000000000003"
LEDGER_ADDRESS = "0xledger0000000000000000000000000000000004"

WINDOW_START = 10
WINDOW_END = 110


@pytest.fixture(autouse=True)
def reset_tokenvest_logging():
    """CLI runs attach handlers to captured streams; drop them between tests."""
    yield
    logging.getLogger("tokenvest").handlers = []


@pytest.fixture
def clock():
    return ManualClock(0)


@pytest.fixture
def token():
    """Token with 10000 units minted to the admin and 150 approved for the ledger."""
    vest = ERC20Token(name="Test", symbol="VEST", owner=ADMIN)
    vest.mint(ADMIN, ADMIN, 10_000)
    vest.approve(ADMIN, LEDGER_ADDRESS, 150)
    return vest


@pytest.fixture
def custody_transferer(token):
    return CustodyTransferer(token, LEDGER_ADDRESS)


@pytest.fixture
def allowance_transferer(token):
    return AllowanceTransferer(token, LEDGER_ADDRESS, ADMIN)


@pytest.fixture
def ledger(custody_transferer, clock):
    return VestingLedger(ADMIN, WINDOW_START, WINDOW_END, custody_transferer, clock)
