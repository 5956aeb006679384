"""
Tests for the Razor DEX entry layer

Covers:
  - DexTransaction validation, hashing and serialization
  - DexStateManager dispatch of every operation type
  - Nonce replay protection and deadlines
  - Ledger rollback on failure and error codes
"""

import pytest

from razordex.dex.assets import lp_asset
from razordex.dex.registry import RegistryConfig
from razordex.dex.state_manager import DexExecResult, DexStateManager
from razordex.dex.transactions import DexOpType, DexTransaction
from razordex.exceptions import (
    DeadlineExceeded,
    Forbidden,
    InsufficientBalance,
    InsufficientOutputAmount,
    PairOrderError,
    PausedError,
)

from conftest import ADMIN, ALICE, ASSET_A, ASSET_B, ASSET_C, BOB, START_MS, TREASURY

A = ASSET_A.type_name
B = ASSET_B.type_name
C = ASSET_C.type_name


def make_tx(op, sender, nonce, timestamp=START_MS, deadline=None, **params):
    return DexTransaction(
        op_type=op, sender=sender, nonce=nonce, params=params,
        timestamp=timestamp, deadline=deadline,
    )


class Runner:
    """Submits transactions with auto-incremented nonces."""

    def __init__(self, mgr: DexStateManager):
        self.mgr = mgr

    def __call__(self, op, sender, **params) -> DexExecResult:
        tx = make_tx(op, sender, self.mgr.get_nonce(sender), **params)
        return self.mgr.process_transaction(tx)


@pytest.fixture
def mgr():
    m = DexStateManager(
        RegistryConfig(admin=ADMIN, fee_to=TREASURY),
        clock=lambda: START_MS,
    )
    for asset in (ASSET_A, ASSET_B, ASSET_C):
        m.ledger.mint(ALICE, asset, 10_000_000)
        m.ledger.mint(BOB, asset, 100_000)
    return m


@pytest.fixture
def run(mgr):
    return Runner(mgr)


@pytest.fixture
def seeded(mgr, run):
    assert run(DexOpType.CREATE_PAIR, ALICE, asset_x=A, asset_y=B).success
    result = run(DexOpType.ADD_LIQUIDITY, ALICE, asset_x=A, asset_y=B,
                 amount_x_desired=10_000, amount_y_desired=10_000)
    assert result.success
    return mgr


# ============================================================================
#  TRANSACTION ENVELOPE
# ============================================================================

class TestDexTransaction:

    def test_hash_deterministic(self):
        t1 = make_tx(DexOpType.CREATE_PAIR, ALICE, 0, asset_x=A, asset_y=B)
        t2 = make_tx(DexOpType.CREATE_PAIR, ALICE, 0, asset_y=B, asset_x=A)
        assert t1.tx_hash() == t2.tx_hash()
        assert len(t1.tx_hash()) == 64

    def test_hash_covers_nonce(self):
        t1 = make_tx(DexOpType.PAUSE, ADMIN, 0)
        t2 = make_tx(DexOpType.PAUSE, ADMIN, 1)
        assert t1.tx_hash() != t2.tx_hash()

    def test_dict_round_trip(self):
        tx = make_tx(DexOpType.SWAP_EXACT_INPUT, ALICE, 3, deadline=START_MS + 5,
                     asset_in=A, asset_out=B, amount_in=100)
        restored = DexTransaction.from_dict(tx.to_dict())
        assert restored.op_type == DexOpType.SWAP_EXACT_INPUT
        assert restored.tx_hash() == tx.tx_hash()

    def test_from_dict_numeric_op(self):
        tx = DexTransaction.from_dict({"op_type": 9, "sender": ADMIN, "nonce": 0})
        assert tx.op_type == DexOpType.PAUSE

    def test_missing_param(self):
        tx = make_tx(DexOpType.SWAP_EXACT_INPUT, ALICE, 0, asset_in=A, asset_out=B)
        with pytest.raises(ValueError, match="amount_in"):
            tx.validate_basic()

    @pytest.mark.parametrize("bad", [-1, "100", True, 1.5])
    def test_amounts_must_be_integers(self, bad):
        tx = make_tx(DexOpType.SWAP_EXACT_INPUT, ALICE, 0, asset_in=A, asset_out=B, amount_in=bad)
        with pytest.raises(ValueError, match="non-negative integer"):
            tx.validate_basic()

    def test_missing_sender(self):
        with pytest.raises(ValueError, match="sender"):
            make_tx(DexOpType.PAUSE, "", 0).validate_basic()

    def test_from_dict_coerces_deadline(self):
        tx = DexTransaction.from_dict(
            {"op_type": "PAUSE", "sender": ADMIN, "nonce": 0, "deadline": "10"}
        )
        assert tx.deadline == 10

    @pytest.mark.parametrize("field,value", [
        ("nonce", -1), ("timestamp", -5), ("deadline", -1), ("deadline", 2**64), ("nonce", None),
    ])
    def test_from_dict_rejects_out_of_range(self, field, value):
        data = {"op_type": "PAUSE", "sender": ADMIN, "nonce": 0, field: value}
        with pytest.raises(ValueError, match=field):
            DexTransaction.from_dict(data)

    def test_from_dict_rejects_non_string_sender(self):
        with pytest.raises(ValueError, match="sender"):
            DexTransaction.from_dict({"op_type": "PAUSE", "sender": 7, "nonce": 0})

    @pytest.mark.parametrize("deadline", ["10", -1, 1.5])
    def test_deadline_must_be_integer(self, deadline):
        with pytest.raises(ValueError, match="Deadline"):
            make_tx(DexOpType.PAUSE, ADMIN, 0, deadline=deadline).validate_basic()


# ============================================================================
#  DISPATCH
# ============================================================================

class TestLiquidityOps:

    def test_create_pair(self, mgr, run):
        result = run(DexOpType.CREATE_PAIR, ALICE, asset_x=A, asset_y=B)
        assert result.success
        assert result.data["pair_key"] == f"{A}/{B}"
        assert result.events[0]["type"] == "PairCreatedEvent"
        assert mgr.get_pairs()[0]["creator"] == ALICE

    def test_create_pair_wrong_order(self, mgr, run):
        result = run(DexOpType.CREATE_PAIR, ALICE, asset_x=B, asset_y=A)
        assert not result.success
        assert result.error_code == PairOrderError.code

    def test_add_liquidity_moves_ledger(self, seeded):
        mgr = seeded
        assert mgr.ledger.balance_of(ALICE, ASSET_A) == 10_000_000 - 10_000
        assert mgr.ledger.balance_of(ALICE, lp_asset(ASSET_A, ASSET_B)) == 9_000
        assert mgr.get_reserves(ASSET_A, ASSET_B)["reserve_x"] == 10_000

    def test_add_liquidity_refund_credited(self, seeded, run):
        result = run(DexOpType.ADD_LIQUIDITY, BOB, asset_x=A, asset_y=B,
                     amount_x_desired=10_000, amount_y_desired=20_000)
        assert result.success
        assert result.data == {"liquidity": 10_000, "amount_x": 10_000, "amount_y": 10_000}
        assert seeded.ledger.balance_of(BOB, ASSET_B) == 100_000 - 10_000

    def test_remove_liquidity(self, seeded, run):
        result = run(DexOpType.REMOVE_LIQUIDITY, ALICE, asset_x=A, asset_y=B, liquidity=1_000)
        assert result.success
        assert result.data == {"amount_x": 1_000, "amount_y": 1_000}
        assert seeded.ledger.balance_of(ALICE, lp_asset(ASSET_A, ASSET_B)) == 8_000


class TestSwapOps:

    def test_swap_exact_input(self, seeded, run):
        result = run(DexOpType.SWAP_EXACT_INPUT, BOB, asset_in=A, asset_out=B, amount_in=1_000)
        assert result.success
        assert result.data == {"amount_in": 1_000, "amount_out": 906}
        assert seeded.ledger.balance_of(BOB, ASSET_A) == 99_000
        assert seeded.ledger.balance_of(BOB, ASSET_B) == 100_906
        types = [e["type"] for e in result.events]
        assert types == ["SyncEvent", "SwapEvent"]

    def test_swap_reverse_pair_order(self, seeded, run):
        result = run(DexOpType.SWAP_EXACT_INPUT, BOB, asset_in=B, asset_out=A, amount_in=1_000)
        assert result.data["amount_out"] == 906

    def test_swap_exact_output_refund(self, seeded, run):
        result = run(DexOpType.SWAP_EXACT_OUTPUT, BOB, asset_in=A, asset_out=B,
                     amount_out=906, amount_in_max=1_500)
        assert result.success
        assert result.data == {"amount_in": 1_000, "amount_out": 906}
        assert seeded.ledger.balance_of(BOB, ASSET_A) == 99_000

    def test_double_hop_ops(self, mgr, run):
        run(DexOpType.CREATE_PAIR, ALICE, asset_x=A, asset_y=B)
        run(DexOpType.CREATE_PAIR, ALICE, asset_x=B, asset_y=C)
        run(DexOpType.ADD_LIQUIDITY, ALICE, asset_x=A, asset_y=B,
            amount_x_desired=1_000_000, amount_y_desired=4_000_000)
        run(DexOpType.ADD_LIQUIDITY, ALICE, asset_x=B, asset_y=C,
            amount_x_desired=1_000_000, amount_y_desired=4_000_000)

        result = run(DexOpType.SWAP_EXACT_INPUT_DOUBLE_HOP, BOB,
                     asset_x=A, asset_y=B, asset_z=C, amount_in=1_000)
        assert result.data == {"amount_in": 1_000, "amount_out": 15_825}

        result = run(DexOpType.SWAP_EXACT_OUTPUT_DOUBLE_HOP, BOB,
                     asset_x=A, asset_y=B, asset_z=C, amount_out=100, amount_in_max=50)
        assert result.success
        assert result.data["amount_out"] == 100
        assert result.data["amount_in"] <= 50

    def test_slippage_failure_leaves_ledger(self, seeded, run):
        before = seeded.ledger.holdings(BOB)
        result = run(DexOpType.SWAP_EXACT_INPUT, BOB, asset_in=A, asset_out=B,
                     amount_in=1_000, amount_out_min=907)
        assert not result.success
        assert result.error_code == InsufficientOutputAmount.code
        assert seeded.ledger.holdings(BOB) == before
        assert seeded.get_reserves(ASSET_A, ASSET_B)["reserve_x"] == 10_000

    def test_insufficient_ledger_balance(self, seeded, run):
        result = run(DexOpType.SWAP_EXACT_INPUT, BOB, asset_in=A, asset_out=B, amount_in=100_001)
        assert not result.success
        assert result.error_code == InsufficientBalance.code


class TestAdminOps:

    def test_pause_blocks_swaps(self, seeded, run):
        assert run(DexOpType.PAUSE, ADMIN).success
        result = run(DexOpType.SWAP_EXACT_INPUT, BOB, asset_in=A, asset_out=B, amount_in=10)
        assert result.error_code == PausedError.code
        assert run(DexOpType.UNPAUSE, ADMIN).success
        assert run(DexOpType.SWAP_EXACT_INPUT, BOB, asset_in=A, asset_out=B, amount_in=1_000).success

    def test_non_admin(self, seeded, run):
        result = run(DexOpType.SET_SWAP_FEE, BOB, fee_bps=0)
        assert result.error_code == Forbidden.code
        assert "[E16]" in result.error

    def test_config_ops(self, mgr, run):
        assert run(DexOpType.SET_SWAP_FEE, ADMIN, fee_bps=25).data == {"swap_fee_bps": 25}
        assert run(DexOpType.SET_FEE_TO, ADMIN, fee_to=BOB).data == {"fee_to": BOB}
        result = run(DexOpType.SET_PROTOCOL_FEE, ADMIN, denominator=4)
        assert result.data == {"protocol_fee_enabled": True, "protocol_fee_denominator": 4}
        assert run(DexOpType.SET_ADMIN, ADMIN, admin=BOB).data == {"admin": BOB}
        assert run(DexOpType.PAUSE, BOB).success

    def test_withdraw_fee(self, mgr, run):
        run(DexOpType.SET_PROTOCOL_FEE, ADMIN, denominator=5)
        run(DexOpType.CREATE_PAIR, ALICE, asset_x=A, asset_y=B)
        run(DexOpType.ADD_LIQUIDITY, ALICE, asset_x=A, asset_y=B,
            amount_x_desired=1_000_000, amount_y_desired=1_000_000)
        run(DexOpType.SWAP_EXACT_INPUT, ALICE, asset_in=A, asset_out=B, amount_in=100_000)
        run(DexOpType.REMOVE_LIQUIDITY, ALICE, asset_x=A, asset_y=B, liquidity=1_000)

        result = run(DexOpType.WITHDRAW_FEE, TREASURY, asset_x=A, asset_y=B)
        assert result.success
        assert result.data["liquidity"] > 0
        assert mgr.ledger.balance_of(TREASURY, lp_asset(ASSET_A, ASSET_B)) == result.data["liquidity"]


# ============================================================================
#  REPLAY PROTECTION / DEADLINES
# ============================================================================

class TestNonceAndDeadline:

    def test_nonce_advances_on_success(self, mgr):
        tx = make_tx(DexOpType.CREATE_PAIR, ALICE, 0, asset_x=A, asset_y=B)
        assert mgr.process_transaction(tx).success
        assert mgr.get_nonce(ALICE) == 1

    def test_replay_rejected(self, mgr):
        tx = make_tx(DexOpType.CREATE_PAIR, ALICE, 0, asset_x=A, asset_y=B)
        mgr.process_transaction(tx)
        replay = make_tx(DexOpType.CREATE_PAIR, ALICE, 0, asset_x=B, asset_y=C)
        result = mgr.process_transaction(replay)
        assert not result.success
        assert "Invalid nonce" in result.error

    def test_failed_tx_keeps_nonce(self, mgr):
        tx = make_tx(DexOpType.PAUSE, BOB, 0)
        assert not mgr.process_transaction(tx).success
        assert mgr.get_nonce(BOB) == 0

    def test_deadline_passed(self, mgr):
        tx = make_tx(DexOpType.CREATE_PAIR, ALICE, 0, timestamp=START_MS,
                     deadline=START_MS - 1, asset_x=A, asset_y=B)
        result = mgr.process_transaction(tx)
        assert not result.success
        assert result.error_code == DeadlineExceeded.code
        assert mgr.registry.all_pairs_length() == 0

    def test_deadline_inclusive(self, mgr):
        tx = make_tx(DexOpType.CREATE_PAIR, ALICE, 0, timestamp=START_MS,
                     deadline=START_MS, asset_x=A, asset_y=B)
        assert mgr.process_transaction(tx).success

    def test_tx_timestamp_drives_twap_clock(self, seeded, run):
        later = START_MS + 60_000
        run(DexOpType.SWAP_EXACT_INPUT, BOB, timestamp=later, asset_in=A, asset_out=B, amount_in=10)
        assert seeded.get_reserves(ASSET_A, ASSET_B)["last_update_timestamp"] == later // 1000

    def test_malformed_deadline_fails_cleanly(self, mgr):
        tx = make_tx(DexOpType.PAUSE, ADMIN, 0, deadline="10")
        result = mgr.process_transaction(tx)
        assert not result.success
        assert "Deadline" in result.error
        assert mgr.get_nonce(ADMIN) == 0
        assert mgr.get_stats()["failed_txs"] == 1
        assert not mgr.registry.config.paused

    def test_invalid_envelope_counted(self, mgr):
        result = mgr.process_transaction(make_tx(DexOpType.PAUSE, "", 0))
        assert not result.success
        assert mgr.get_stats()["failed_txs"] == 1

    def test_stats(self, seeded):
        stats = seeded.get_stats()
        assert stats["pairs"] == 1
        assert stats["total_txs"] == 2
        assert stats["failed_txs"] == 0
        assert stats["config"]["admin"] == ADMIN
