"""
Razor DEX Router  (one-hop and two-hop routes)

Chains single-pair swaps through the swap engine:
  - Exact-input / exact-output single hop
  - Exact-input / exact-output two hop (X -> Y -> Z)
  - Read-only path quoting (get_amounts_out / get_amounts_in)

Security features:
  - Every intermediate amount is computed before either leg executes
  - Slippage bounds on the final output (amount_out_min) and on the
    input actually consumed (amount_in_max)
  - Excess input on exact-output routes is refunded, never kept
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from ..exceptions import InsufficientInputAmount, InsufficientOutputAmount, PairOrderError
from ..logger import get_logger
from .assets import AssetType, Balance
from .engine import SwapEngine

logger = get_logger(__name__)


class Router:
    """Multi-hop swap router on top of a SwapEngine."""

    def __init__(self, engine: SwapEngine):
        self.engine = engine

    # -- Quoting (read-only) ----------------------------------------------------

    @staticmethod
    def _check_path(path: Sequence[AssetType]) -> None:
        if len(path) < 2:
            raise PairOrderError("path needs at least two assets")

    def get_amounts_out(self, path: Sequence[AssetType], amount_in: int) -> List[int]:
        """Amounts along `path` when selling exactly `amount_in` of path[0]."""
        self._check_path(path)
        amounts = [amount_in]
        for asset_in, asset_out in zip(path, path[1:]):
            amounts.append(self.engine.get_amount_out(asset_in, asset_out, amounts[-1]))
        return amounts

    def get_amounts_in(self, path: Sequence[AssetType], amount_out: int) -> List[int]:
        """Amounts along `path` when buying exactly `amount_out` of path[-1]."""
        self._check_path(path)
        amounts = [amount_out]
        for asset_in, asset_out in reversed(list(zip(path, path[1:]))):
            amounts.insert(0, self.engine.get_amount_in(asset_in, asset_out, amounts[0]))
        return amounts

    # -- One hop ------------------------------------------------------------------

    def swap_exact_input(
        self,
        asset_in: AssetType,
        asset_out: AssetType,
        coin_in: Balance,
        amount_out_min: int = 0,
        sender: str = "",
    ) -> Balance:
        return self.engine.swap_exact_input(asset_in, asset_out, coin_in, amount_out_min, sender)

    def swap_exact_output(
        self,
        asset_in: AssetType,
        asset_out: AssetType,
        coin_in: Balance,
        amount_out: int,
        amount_in_max: Optional[int] = None,
        sender: str = "",
    ) -> Tuple[Balance, Balance]:
        return self.engine.swap_exact_output(
            asset_in, asset_out, coin_in, amount_out, amount_in_max, sender
        )

    # -- Two hops -----------------------------------------------------------------

    def swap_exact_input_double_hop(
        self,
        asset_x: AssetType,
        asset_y: AssetType,
        asset_z: AssetType,
        coin_in: Balance,
        amount_out_min: int = 0,
        sender: str = "",
    ) -> Balance:
        """
        Sell all of `coin_in` (X) for Z through the X/Y and Y/Z pools.

        Raises:
            InsufficientOutputAmount: final Z below `amount_out_min`
        """
        amounts = self.get_amounts_out([asset_x, asset_y, asset_z], coin_in.value)
        amount_mid, amount_out = amounts[1], amounts[2]
        if amount_out < amount_out_min:
            raise InsufficientOutputAmount(
                f"route output {amount_out} below minimum {amount_out_min}"
            )

        coin_mid = self.engine.swap_directed(asset_x, asset_y, coin_in, amount_mid, sender)
        coin_out = self.engine.swap_directed(asset_y, asset_z, coin_mid, amount_out, sender)
        logger.debug(
            "Route %s -> %s -> %s: in=%d mid=%d out=%d",
            asset_x.name, asset_y.name, asset_z.name, amounts[0], amount_mid, amount_out,
        )
        return coin_out

    def swap_exact_output_double_hop(
        self,
        asset_x: AssetType,
        asset_y: AssetType,
        asset_z: AssetType,
        coin_in: Balance,
        amount_out: int,
        amount_in_max: Optional[int] = None,
        sender: str = "",
    ) -> Tuple[Balance, Balance]:
        """
        Buy exactly `amount_out` of Z through the X/Y and Y/Z pools.

        The intermediate Y amount is derived backwards from the Y/Z pool
        before either leg runs.

        Returns:
            (coin_out, refund)
        """
        amounts = self.get_amounts_in([asset_x, asset_y, asset_z], amount_out)
        amount_in, amount_mid = amounts[0], amounts[1]
        limit = coin_in.value if amount_in_max is None else min(amount_in_max, coin_in.value)
        if amount_in > limit:
            raise InsufficientInputAmount(f"route input {amount_in} exceeds maximum {limit}")

        coin_mid = self.engine.swap_directed(
            asset_x, asset_y, coin_in.split(amount_in), amount_mid, sender
        )
        coin_out = self.engine.swap_directed(asset_y, asset_z, coin_mid, amount_out, sender)
        logger.debug(
            "Route %s -> %s -> %s: in=%d mid=%d out=%d refund=%d",
            asset_x.name, asset_y.name, asset_z.name, amount_in, amount_mid, amount_out, coin_in.value,
        )
        return coin_out, coin_in
