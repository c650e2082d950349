"""
Vesting Invariant Tests using Property-Based Testing

Random sequences of grants, clock advances and releases must never let an
account claim more than has unlocked, never decrease a claimed total, and
must pay out every granted unit once the window has closed.
"""

from hypothesis import given, settings, strategies as st

from tokenvest.blockchain.asset_transferer import CustodyTransferer
from tokenvest.blockchain.progress_clock import ManualClock
from tokenvest.blockchain.vesting_ledger import VestingLedger, VestingSchedule
from tokenvest.core.contracts.erc20 import ERC20Token
from tokenvest.core.vesting_exceptions import NothingToClaimError

ADMIN = "0xadmin00000000000000000000000000000000001"
LEDGER_ADDRESS = "0xledger0000000000000000000000000000000004"
ACCOUNTS = [f"0xbeneficiary{i:028d}" for i in range(4)]

operations = st.lists(
    st.one_of(
        st.tuples(st.just("grant"), st.integers(0, 3), st.integers(1, 10**24)),
        st.tuples(st.just("advance"), st.integers(0, 40)),
        st.tuples(st.just("release"), st.integers(0, 3)),
    ),
    max_size=40,
)


def _build(window_start, window_length):
    clock = ManualClock(0)
    token = ERC20Token(name="Test", symbol="VEST", owner=ADMIN)
    token.mint(ADMIN, ADMIN, 10**30)
    token.approve(ADMIN, LEDGER_ADDRESS, token.UINT256_MAX)
    transferer = CustodyTransferer(token, LEDGER_ADDRESS)
    ledger = VestingLedger(ADMIN, window_start, window_start + window_length, transferer, clock)
    return ledger, clock, token


class TestLedgerInvariants:
    @given(
        ops=operations,
        window_start=st.integers(0, 50),
        window_length=st.integers(1, 200),
    )
    @settings(max_examples=150, deadline=None)
    def test_claims_bounded_and_monotonic(self, ops, window_start, window_length):
        ledger, clock, token = _build(window_start, window_length)
        previous = {account: 0 for account in ACCOUNTS}

        for op in ops:
            if op[0] == "grant":
                ledger.grant(ADMIN, ACCOUNTS[op[1]], op[2])
            elif op[0] == "advance":
                clock.advance(op[1])
            else:
                try:
                    ledger.release(ACCOUNTS[op[1]])
                except NothingToClaimError:
                    pass

            progress = clock.current_progress()
            for account in ACCOUNTS:
                vested = ledger.funds_vested_for(account)
                claimed = ledger.funds_claimed_for(account)
                assert claimed >= previous[account]
                assert claimed <= ledger.vested_at(account, progress) <= vested
                assert token.balance_of(account) == claimed
                previous[account] = claimed

            assert ledger.total_vested == sum(ledger.funds_vested_for(a) for a in ACCOUNTS)
            assert ledger.total_claimed == sum(ledger.funds_claimed_for(a) for a in ACCOUNTS)
            assert token.balance_of(LEDGER_ADDRESS) == ledger.total_vested - ledger.total_claimed

        clock.set(max(clock.current_progress(), ledger.window_end))
        for account in ACCOUNTS:
            if ledger.releasable_for(account):
                ledger.release(account)
            assert ledger.funds_claimed_for(account) == ledger.funds_vested_for(account)
        assert token.balance_of(LEDGER_ADDRESS) == 0

    @given(
        vested=st.integers(1, 10**30),
        window_start=st.integers(0, 10**6),
        window_length=st.integers(1, 10**6),
        offset=st.integers(-10**6, 2 * 10**6),
    )
    @settings(max_examples=300)
    def test_releasable_matches_exact_rational(self, vested, window_start, window_length, offset):
        schedule = VestingSchedule(window_start, window_start + window_length)
        progress = window_start + offset
        releasable = schedule.releasable(vested, progress)

        clamped = min(max(progress, window_start), window_start + window_length)
        assert releasable == vested * (clamped - window_start) // window_length
        assert 0 <= releasable <= vested
        if progress >= window_start + window_length:
            assert releasable == vested
        if progress <= window_start:
            assert releasable == 0

    @given(
        vested=st.integers(1, 10**24),
        steps=st.lists(st.integers(0, 30), min_size=1, max_size=20),
    )
    @settings(max_examples=150, deadline=None)
    def test_repeated_release_at_same_progress_is_noop(self, vested, steps):
        ledger, clock, _ = _build(10, 100)
        account = ACCOUNTS[0]
        ledger.grant(ADMIN, account, vested)

        for step in steps:
            clock.advance(step)
            try:
                ledger.release(account)
            except NothingToClaimError:
                pass
            try:
                ledger.release(account)
            except NothingToClaimError:
                pass
            else:
                raise AssertionError("second release at the same progress paid out")
