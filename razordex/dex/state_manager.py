"""
Razor DEX State Manager  (entry layer)

Bridges signed-sender transactions with the exchange core. Every
transaction is executed atomically against the ledger:

  1. Structural validation, nonce replay protection, deadline check
  2. Inputs withdrawn from the sender's ledger account
  3. Core operation through the SwapEngine / Router
  4. Outputs and refunds credited back to the sender
  5. On any failure the registry, ledger and event log are restored

Responsibilities:
  - Owns the registry, engine, router, ledger and event log
  - Per-sender nonces
  - Deterministic dispatch of every DexOpType
  - Read-only query interface
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from ..exceptions import DeadlineExceeded, DexError
from ..logger import get_logger
from .assets import AssetType, Ledger, coerce_asset
from .atomic import atomic
from .engine import SwapEngine, system_clock_ms
from .events import EventLog, event_to_dict
from .registry import PoolRegistry, RegistryConfig
from .router import Router
from .transactions import DexOpType, DexTransaction

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Transaction execution result
# ---------------------------------------------------------------------------

class DexExecResult:
    """Result of executing a single transaction."""

    __slots__ = ("success", "data", "error", "error_code", "events")

    def __init__(
        self,
        success: bool = True,
        data: Optional[Dict[str, Any]] = None,
        error: str = "",
        error_code: int = 0,
        events: Optional[List[Dict[str, Any]]] = None,
    ):
        self.success = success
        self.data = data or {}
        self.error = error
        self.error_code = error_code
        self.events = events or []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "error_code": self.error_code,
            "events": self.events,
        }


# ---------------------------------------------------------------------------
# State Manager
# ---------------------------------------------------------------------------

class DexStateManager:
    """
    Entry point for ledger-backed exchange transactions.

    Usage:

        mgr = DexStateManager(RegistryConfig(admin="0xadmin", fee_to="0xfee"))
        mgr.ledger.mint("0xalice", USDC, 1_000_000)
        result = mgr.process_transaction(tx)
    """

    def __init__(
        self,
        config: RegistryConfig,
        ledger: Optional[Ledger] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.registry = PoolRegistry(config)
        self.ledger = ledger if ledger is not None else Ledger()
        self.event_log = EventLog()
        self._tx_time: Optional[int] = None
        self._clock = clock or system_clock_ms
        self.engine = SwapEngine(self.registry, clock=self._now_ms, events=self.event_log)
        self.router = Router(self.engine)
        self._nonces: Dict[str, int] = {}
        self._total_txs: int = 0
        self._failed_txs: int = 0

    def _now_ms(self) -> int:
        """Transaction timestamp while executing, wall clock otherwise."""
        if self._tx_time is not None:
            return self._tx_time
        return self._clock()

    # =====================================================================
    #  Transaction processing
    # =====================================================================

    def process_transaction(self, tx: DexTransaction) -> DexExecResult:
        """
        Execute a single transaction atomically.

        Returns:
            DexExecResult with success/failure, result data and emitted events
        """
        try:
            tx.validate_basic()
        except ValueError as e:
            return self._record(tx, DexExecResult(success=False, error=str(e)))

        expected_nonce = self._nonces.get(tx.sender, 0)
        if tx.nonce != expected_nonce:
            return self._record(tx, DexExecResult(
                success=False,
                error=f"Invalid nonce: expected {expected_nonce}, got {tx.nonce}",
            ))

        self._tx_time = tx.timestamp or self._clock()
        mark = self.event_log.mark()
        try:
            if tx.deadline is not None and self._tx_time > tx.deadline:
                raise DeadlineExceeded(f"deadline {tx.deadline} passed at {self._tx_time}")
            with atomic(self.registry, self.ledger, self.event_log):
                data = self._execute_op(tx)
            result = DexExecResult(
                success=True,
                data=data,
                events=[event_to_dict(e) for e in self.event_log.since(mark)],
            )
        except DexError as e:
            logger.info("Transaction %s aborted: %s", tx.op_type.name, e)
            result = DexExecResult(success=False, error=str(e), error_code=e.code)
        except (ValueError, KeyError) as e:
            logger.info("Transaction %s rejected: %s", tx.op_type.name, e)
            result = DexExecResult(success=False, error=str(e))
        except Exception as e:
            logger.error("Transaction %s failed: %s", tx.op_type.name, e)
            result = DexExecResult(success=False, error=str(e))
        finally:
            self._tx_time = None

        if result.success:
            self._nonces[tx.sender] = tx.nonce + 1
        return self._record(tx, result)

    def _record(self, tx: DexTransaction, result: DexExecResult) -> DexExecResult:
        tx.success = result.success
        tx.result = result.data
        tx.error = result.error
        self._total_txs += 1
        if not result.success:
            self._failed_txs += 1
        return result

    def _execute_op(self, tx: DexTransaction) -> Dict[str, Any]:
        handlers = {
            DexOpType.CREATE_PAIR: self._op_create_pair,
            DexOpType.ADD_LIQUIDITY: self._op_add_liquidity,
            DexOpType.REMOVE_LIQUIDITY: self._op_remove_liquidity,
            DexOpType.SWAP_EXACT_INPUT: self._op_swap_exact_input,
            DexOpType.SWAP_EXACT_OUTPUT: self._op_swap_exact_output,
            DexOpType.SWAP_EXACT_INPUT_DOUBLE_HOP: self._op_swap_exact_input_double_hop,
            DexOpType.SWAP_EXACT_OUTPUT_DOUBLE_HOP: self._op_swap_exact_output_double_hop,
            DexOpType.WITHDRAW_FEE: self._op_withdraw_fee,
            DexOpType.PAUSE: self._op_pause,
            DexOpType.UNPAUSE: self._op_unpause,
            DexOpType.SET_FEE_TO: self._op_set_fee_to,
            DexOpType.SET_ADMIN: self._op_set_admin,
            DexOpType.SET_SWAP_FEE: self._op_set_swap_fee,
            DexOpType.SET_PROTOCOL_FEE: self._op_set_protocol_fee,
        }
        return handlers[tx.op_type](tx)

    # =====================================================================
    #  Operation handlers
    # =====================================================================

    @staticmethod
    def _assets(p: Dict[str, Any], *names: str) -> List[AssetType]:
        return [coerce_asset(p[name]) for name in names]

    def _op_create_pair(self, tx: DexTransaction) -> Dict[str, Any]:
        x, y = self._assets(tx.params, "asset_x", "asset_y")
        pool = self.engine.create_pair(x, y, tx.sender)
        return {"pair_key": pool.key, "lp_asset": pool.lp_asset.type_name}

    def _op_add_liquidity(self, tx: DexTransaction) -> Dict[str, Any]:
        p = tx.params
        x, y = self._assets(p, "asset_x", "asset_y")
        coin_x = self.ledger.withdraw(tx.sender, x, p["amount_x_desired"])
        coin_y = self.ledger.withdraw(tx.sender, y, p["amount_y_desired"])
        lp, refund_x, refund_y = self.engine.add_liquidity(
            x, y, coin_x, coin_y,
            p.get("amount_x_min", 0), p.get("amount_y_min", 0), tx.sender,
        )
        data = {
            "liquidity": lp.value,
            "amount_x": p["amount_x_desired"] - refund_x.value,
            "amount_y": p["amount_y_desired"] - refund_y.value,
        }
        for balance in (lp, refund_x, refund_y):
            self.ledger.deposit(tx.sender, balance)
        return data

    def _op_remove_liquidity(self, tx: DexTransaction) -> Dict[str, Any]:
        p = tx.params
        x, y = self._assets(p, "asset_x", "asset_y")
        pool = self.registry.get_pool(x, y)
        lp = self.ledger.withdraw(tx.sender, pool.lp_asset, p["liquidity"])
        coin_x, coin_y = self.engine.remove_liquidity(
            x, y, lp, p.get("amount_x_min", 0), p.get("amount_y_min", 0), tx.sender,
        )
        data = {"amount_x": coin_x.value, "amount_y": coin_y.value}
        self.ledger.deposit(tx.sender, coin_x)
        self.ledger.deposit(tx.sender, coin_y)
        return data

    def _op_swap_exact_input(self, tx: DexTransaction) -> Dict[str, Any]:
        p = tx.params
        asset_in, asset_out = self._assets(p, "asset_in", "asset_out")
        coin_in = self.ledger.withdraw(tx.sender, asset_in, p["amount_in"])
        coin_out = self.router.swap_exact_input(
            asset_in, asset_out, coin_in, p.get("amount_out_min", 0), tx.sender
        )
        data = {"amount_in": p["amount_in"], "amount_out": coin_out.value}
        self.ledger.deposit(tx.sender, coin_out)
        return data

    def _op_swap_exact_output(self, tx: DexTransaction) -> Dict[str, Any]:
        p = tx.params
        asset_in, asset_out = self._assets(p, "asset_in", "asset_out")
        coin_in = self.ledger.withdraw(tx.sender, asset_in, p["amount_in_max"])
        coin_out, refund = self.router.swap_exact_output(
            asset_in, asset_out, coin_in, p["amount_out"], sender=tx.sender
        )
        data = {"amount_in": p["amount_in_max"] - refund.value, "amount_out": coin_out.value}
        self.ledger.deposit(tx.sender, coin_out)
        self.ledger.deposit(tx.sender, refund)
        return data

    def _op_swap_exact_input_double_hop(self, tx: DexTransaction) -> Dict[str, Any]:
        p = tx.params
        x, y, z = self._assets(p, "asset_x", "asset_y", "asset_z")
        coin_in = self.ledger.withdraw(tx.sender, x, p["amount_in"])
        coin_out = self.router.swap_exact_input_double_hop(
            x, y, z, coin_in, p.get("amount_out_min", 0), tx.sender
        )
        data = {"amount_in": p["amount_in"], "amount_out": coin_out.value}
        self.ledger.deposit(tx.sender, coin_out)
        return data

    def _op_swap_exact_output_double_hop(self, tx: DexTransaction) -> Dict[str, Any]:
        p = tx.params
        x, y, z = self._assets(p, "asset_x", "asset_y", "asset_z")
        coin_in = self.ledger.withdraw(tx.sender, x, p["amount_in_max"])
        coin_out, refund = self.router.swap_exact_output_double_hop(
            x, y, z, coin_in, p["amount_out"], sender=tx.sender
        )
        data = {"amount_in": p["amount_in_max"] - refund.value, "amount_out": coin_out.value}
        self.ledger.deposit(tx.sender, coin_out)
        self.ledger.deposit(tx.sender, refund)
        return data

    def _op_withdraw_fee(self, tx: DexTransaction) -> Dict[str, Any]:
        x, y = self._assets(tx.params, "asset_x", "asset_y")
        lp = self.engine.withdraw_fee(x, y, tx.sender)
        data = {"liquidity": lp.value}
        self.ledger.deposit(tx.sender, lp)
        return data

    def _op_pause(self, tx: DexTransaction) -> Dict[str, Any]:
        self.registry.pause(tx.sender)
        return {"paused": True}

    def _op_unpause(self, tx: DexTransaction) -> Dict[str, Any]:
        self.registry.unpause(tx.sender)
        return {"paused": False}

    def _op_set_fee_to(self, tx: DexTransaction) -> Dict[str, Any]:
        self.registry.set_fee_to(tx.sender, tx.params["fee_to"])
        return {"fee_to": self.registry.config.fee_to}

    def _op_set_admin(self, tx: DexTransaction) -> Dict[str, Any]:
        self.registry.set_admin(tx.sender, tx.params["admin"])
        return {"admin": self.registry.config.admin}

    def _op_set_swap_fee(self, tx: DexTransaction) -> Dict[str, Any]:
        self.registry.set_swap_fee(tx.sender, tx.params["fee_bps"])
        return {"swap_fee_bps": self.registry.config.swap_fee_bps}

    def _op_set_protocol_fee(self, tx: DexTransaction) -> Dict[str, Any]:
        self.registry.set_protocol_fee(tx.sender, tx.params["denominator"])
        return {
            "protocol_fee_enabled": self.registry.config.protocol_fee_enabled,
            "protocol_fee_denominator": self.registry.config.protocol_fee_denominator,
        }

    # =====================================================================
    #  Query interface (read-only)
    # =====================================================================

    def get_nonce(self, address: str) -> int:
        return self._nonces.get(address, 0)

    def get_reserves(self, x: AssetType, y: AssetType) -> Dict[str, int]:
        reserve_x, reserve_y, ts = self.registry.get_reserves(x, y)
        return {"reserve_x": reserve_x, "reserve_y": reserve_y, "last_update_timestamp": ts}

    def get_pairs(self) -> List[Dict[str, Any]]:
        return [
            {
                "pair_key": m.pair_key,
                "asset_x": m.asset_x.type_name,
                "asset_y": m.asset_y.type_name,
                "lp_asset": m.lp_asset.type_name,
                "lp_name": m.lp_name,
                "creator": m.creator,
            }
            for m in self.registry.all_pairs()
        ]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "pairs": self.registry.all_pairs_length(),
            "total_txs": self._total_txs,
            "failed_txs": self._failed_txs,
            "events": len(self.event_log),
            "config": self.registry.config.to_dict(),
        }
