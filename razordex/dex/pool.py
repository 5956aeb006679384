"""
Razor DEX Pool State  (constant-product, one pool per asset pair)

Per-pair mutable state held by the registry:
  - Two u64 reserves, stored X-before-Y in canonical order
  - Liquidity supply counter and the protocol-fee liquidity reserve
  - UQ64.64 cumulative price accumulators (wrap modulo 2**128)
  - k_last snapshot for protocol-fee accrual
  - Reentrancy flag, set only while a flash loan is outstanding

Also defines the flash-loan ticket, a single-use receipt that cannot be
copied, pickled, or built outside the engine.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..constants import LP_NAME_PREFIX, LP_SYMBOL
from .assets import AssetType, Balance, Supply, lp_asset as lp_asset_of


def pair_key(x: AssetType, y: AssetType) -> str:
    """Registry key of the canonical (x, y) pair."""
    return f"{x.type_name}/{y.type_name}"


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass
class PairMetadata:
    """Discovery record kept for every registered pair."""
    pair_key: str
    asset_x: AssetType
    asset_y: AssetType
    lp_asset: AssetType
    lp_name: str
    lp_symbol: str
    creator: str
    created_at: float = field(default_factory=time.time)


@dataclass
class PoolState:
    """
    State of a constant-product pool.

    asset_x < asset_y (canonical ordering).
    """
    asset_x: AssetType
    asset_y: AssetType
    reserve_x: Balance = None   # type: ignore[assignment]
    reserve_y: Balance = None   # type: ignore[assignment]
    lp_supply: Supply = None    # type: ignore[assignment]
    lp_fee_reserve: Balance = None  # type: ignore[assignment]

    # TWAP accumulators
    last_update_timestamp: int = 0
    price_x_cumulative: int = 0
    price_y_cumulative: int = 0

    # Protocol fee
    k_last: int = 0

    # Flash-loan guard
    locked: bool = False
    loan_serial: Optional[int] = None

    def __post_init__(self) -> None:
        lp = lp_asset_of(self.asset_x, self.asset_y)
        if self.reserve_x is None:
            self.reserve_x = Balance.zero(self.asset_x)
        if self.reserve_y is None:
            self.reserve_y = Balance.zero(self.asset_y)
        if self.lp_supply is None:
            self.lp_supply = Supply(lp)
        if self.lp_fee_reserve is None:
            self.lp_fee_reserve = Balance.zero(lp)

    @property
    def key(self) -> str:
        return pair_key(self.asset_x, self.asset_y)

    @property
    def lp_asset(self) -> AssetType:
        return self.lp_supply.asset

    @property
    def reserves(self) -> Tuple[int, int]:
        return self.reserve_x.value, self.reserve_y.value

    @property
    def total_supply(self) -> int:
        return self.lp_supply.value


def new_pair_metadata(x: AssetType, y: AssetType, creator: str) -> PairMetadata:
    return PairMetadata(
        pair_key=pair_key(x, y),
        asset_x=x,
        asset_y=y,
        lp_asset=lp_asset_of(x, y),
        lp_name=f"{LP_NAME_PREFIX} {x.name}-{y.name}",
        lp_symbol=LP_SYMBOL,
        creator=creator,
    )


# ---------------------------------------------------------------------------
# Flash-loan ticket
# ---------------------------------------------------------------------------

_TICKET_SEAL = object()


class FlashLoanTicket:
    """
    Receipt for an outstanding flash loan.

    Produced only by ``SwapEngine.borrow`` and redeemable once by
    ``SwapEngine.repay`` for the same pool.
    """

    __slots__ = ("pair_key", "loan_x", "loan_y", "serial", "_consumed")

    def __init__(self, seal: object, pair_key: str, loan_x: int, loan_y: int, serial: int):
        if seal is not _TICKET_SEAL:
            raise TypeError("FlashLoanTicket can only be issued by the swap engine")
        self.pair_key = pair_key
        self.loan_x = loan_x
        self.loan_y = loan_y
        self.serial = serial
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def _consume(self) -> None:
        self._consumed = True

    def __copy__(self):
        raise TypeError("FlashLoanTicket cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("FlashLoanTicket cannot be copied")

    def __reduce__(self):
        raise TypeError("FlashLoanTicket cannot be serialized")

    def __repr__(self) -> str:
        state = "consumed" if self._consumed else "outstanding"
        return (
            f"FlashLoanTicket({self.pair_key}, loan_x={self.loan_x}, "
            f"loan_y={self.loan_y}, {state})"
        )


def issue_ticket(pair_key: str, loan_x: int, loan_y: int, serial: int) -> FlashLoanTicket:
    return FlashLoanTicket(_TICKET_SEAL, pair_key, loan_x, loan_y, serial)
