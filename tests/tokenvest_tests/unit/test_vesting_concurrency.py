"""
Concurrent grant/release against one ledger instance.
"""

import threading

from tokenvest.blockchain.asset_transferer import CustodyTransferer
from tokenvest.blockchain.progress_clock import ManualClock
from tokenvest.blockchain.vesting_ledger import VestingLedger
from tokenvest.core.contracts.erc20 import ERC20Token
from tokenvest.core.vesting_exceptions import NothingToClaimError

ADMIN = "0xadmin00000000000000000000000000000000001"
LEDGER_ADDRESS = "0xledger0000000000000000000000000000000004"


def _ledger(clock):
    token = ERC20Token(name="Test", symbol="VEST", owner=ADMIN)
    token.mint(ADMIN, ADMIN, 1_000_000)
    token.approve(ADMIN, LEDGER_ADDRESS, token.UINT256_MAX)
    return VestingLedger(ADMIN, 0, 100, CustodyTransferer(token, LEDGER_ADDRESS), clock), token


def _run(threads):
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)


def test_racing_releases_for_one_account_pay_once():
    clock = ManualClock(0)
    ledger, token = _ledger(clock)
    alice = "0xalice00000000000000000000000000000000002"
    ledger.grant(ADMIN, alice, 1_000)
    clock.set(50)

    barrier = threading.Barrier(16)
    paid = []
    refused = []
    lock = threading.Lock()

    def claim():
        barrier.wait()
        try:
            due = ledger.release(alice)
        except NothingToClaimError:
            with lock:
                refused.append(1)
        else:
            with lock:
                paid.append(due)

    _run([threading.Thread(target=claim) for _ in range(16)])

    assert paid == [500]
    assert len(refused) == 15
    assert ledger.funds_claimed_for(alice) == 500
    assert token.balance_of(alice) == 500


def test_parallel_accounts_settle_independently():
    clock = ManualClock(0)
    ledger, token = _ledger(clock)
    accounts = [f"0xacct{i:036d}" for i in range(20)]

    def grant(account):
        ledger.grant(ADMIN, account, 300)

    _run([threading.Thread(target=grant, args=(a,)) for a in accounts])
    assert ledger.total_vested == 20 * 300
    assert token.balance_of(LEDGER_ADDRESS) == 20 * 300

    clock.set(100)

    def claim(account):
        ledger.release(account)

    _run([threading.Thread(target=claim, args=(a,)) for a in accounts])

    assert ledger.total_claimed == 20 * 300
    assert token.balance_of(LEDGER_ADDRESS) == 0
    for account in accounts:
        assert ledger.funds_claimed_for(account) == 300
        assert token.balance_of(account) == 300
