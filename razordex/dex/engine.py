"""
Razor DEX Swap Engine  (constant-product, x * y = k)

Orchestrates every state change of a pool resolved through the registry:
  - Pair creation
  - Add / remove liquidity with proportional LP minting
  - Generalized two-sided swap primitive plus exact-in / exact-out wrappers
  - Flash-loan borrow / repay with a reentrancy lock and single-use ticket
  - Protocol fee (k-growth) accrual and withdrawal
  - TWAP accumulator updates

Security features:
  - Fee-adjusted K-invariant check after every swap and flash-loan repay
  - Slippage bounds on every liquidity and swap entry point
  - Permanent MINIMUM_LIQUIDITY floor on the LP supply
  - Reentrancy lock while a flash loan is outstanding
  - Emergency pause

All checks run before any reserve or supply is touched, so a raised DexError
leaves the pool as it was. Cross-operation atomicity is provided by
``razordex.dex.atomic``.
"""

from __future__ import annotations

import time
from typing import Callable, Optional, Tuple

from ..constants import BPS_DENOMINATOR, MINIMUM_LIQUIDITY
from ..exceptions import (
    AssetMismatch,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InsufficientXAmount,
    InsufficientYAmount,
    KInvariantError,
    LoanError,
    ReentrancyLockError,
)
from ..logger import get_logger
from .assets import AssetType, Balance
from .events import (
    BurnEvent,
    EventSink,
    FeeWithdrawnEvent,
    FlashLoanEvent,
    MintEvent,
    NullSink,
    PairCreatedEvent,
    SwapEvent,
    SyncEvent,
)
from .pool import FlashLoanTicket, PoolState, issue_ticket
from .pricing import (
    encode_uq64,
    get_amount_in,
    get_amount_out,
    quote,
    safe_add,
    safe_mul,
    sqrt,
    sqrt_single,
    uq_div,
    wrapping_add_u128,
)
from .registry import PoolRegistry, RegistryConfig

logger = get_logger(__name__)


def system_clock_ms() -> int:
    return int(time.time() * 1000)


class SwapEngine:
    """
    Single entry point for pool mutations.

    Every operation resolves its pool through the registry, so a registry
    restored from a snapshot is picked up immediately.
    """

    def __init__(
        self,
        registry: PoolRegistry,
        clock: Optional[Callable[[], int]] = None,
        events: Optional[EventSink] = None,
    ):
        self.registry = registry
        self.clock = clock or system_clock_ms
        self.events = events if events is not None else NullSink()

    def now_seconds(self) -> int:
        return self.clock() // 1000

    # -- Pool resolution ------------------------------------------------------

    def _open(self, x: AssetType, y: AssetType) -> PoolState:
        """Resolve a pool for a swap / mint / burn."""
        pool = self.registry.get_pool(x, y)
        self.registry.assert_not_paused()
        if pool.locked:
            raise ReentrancyLockError(f"Pool {pool.key} is locked by a flash loan")
        return pool

    @staticmethod
    def _check_asset(balance: Balance, asset: AssetType) -> None:
        if balance.asset != asset:
            raise AssetMismatch(f"expected {asset}, got {balance.asset}")

    # -- Creation -------------------------------------------------------------

    def create_pair(self, x: AssetType, y: AssetType, sender: str = "") -> PoolState:
        pool = self.registry.create_pair(x, y, sender, created_at=self.clock() / 1000)
        self.events.emit(PairCreatedEvent(pool.key, x.type_name, y.type_name, sender))
        return pool

    # -- Liquidity --------------------------------------------------------------

    def add_liquidity(
        self,
        x: AssetType,
        y: AssetType,
        coin_x: Balance,
        coin_y: Balance,
        amount_x_min: int = 0,
        amount_y_min: int = 0,
        sender: str = "",
    ) -> Tuple[Balance, Balance, Balance]:
        """
        Deposit at the current reserve ratio.

        The supplied balances are the desired amounts; whatever is not needed
        to preserve the ratio comes back as a refund.

        Returns:
            (lp, refund_x, refund_y)
        """
        pool = self._open(x, y)
        self._check_asset(coin_x, x)
        self._check_asset(coin_y, y)

        amount_x, amount_y = self._optimal_amounts(
            pool, coin_x.value, coin_y.value, amount_x_min, amount_y_min
        )
        lp = self._mint(pool, coin_x, coin_y, amount_x, amount_y, sender)
        return lp, coin_x, coin_y

    def mint(self, x: AssetType, y: AssetType, coin_x: Balance, coin_y: Balance, sender: str = "") -> Balance:
        """Deposit the full balances without ratio matching."""
        pool = self._open(x, y)
        self._check_asset(coin_x, x)
        self._check_asset(coin_y, y)
        return self._mint(pool, coin_x, coin_y, coin_x.value, coin_y.value, sender)

    @staticmethod
    def _optimal_amounts(
        pool: PoolState,
        amount_x_desired: int,
        amount_y_desired: int,
        amount_x_min: int,
        amount_y_min: int,
    ) -> Tuple[int, int]:
        reserve_x, reserve_y = pool.reserves
        if reserve_x == 0 and reserve_y == 0:
            return amount_x_desired, amount_y_desired

        amount_y_optimal = quote(amount_x_desired, reserve_x, reserve_y)
        if amount_y_optimal <= amount_y_desired:
            if amount_y_optimal < amount_y_min:
                raise InsufficientYAmount(
                    f"optimal Y {amount_y_optimal} below minimum {amount_y_min}"
                )
            return amount_x_desired, amount_y_optimal

        amount_x_optimal = quote(amount_y_desired, reserve_y, reserve_x)
        if amount_x_optimal < amount_x_min:
            raise InsufficientXAmount(
                f"optimal X {amount_x_optimal} below minimum {amount_x_min}"
            )
        return amount_x_optimal, amount_y_desired

    def _mint(
        self,
        pool: PoolState,
        coin_x: Balance,
        coin_y: Balance,
        amount_x: int,
        amount_y: int,
        sender: str,
    ) -> Balance:
        reserve_x, reserve_y = pool.reserves
        fee_on, fee_liquidity = self._pending_protocol_fee(pool, reserve_x, reserve_y)
        total_supply = pool.lp_supply.value + fee_liquidity

        if total_supply == 0:
            root = sqrt(amount_x, amount_y)
            if root <= MINIMUM_LIQUIDITY:
                raise InsufficientLiquidityMinted(
                    f"initial liquidity {root} does not exceed the {MINIMUM_LIQUIDITY} floor"
                )
            liquidity = root - MINIMUM_LIQUIDITY
        else:
            liquidity = min(
                amount_x * total_supply // reserve_x,
                amount_y * total_supply // reserve_y,
            )
            if liquidity == 0:
                raise InsufficientLiquidityMinted("deposit too small to mint liquidity")

        # effects
        self._apply_protocol_fee(pool, fee_on, fee_liquidity)
        if total_supply == 0:
            pool.lp_fee_reserve.join(pool.lp_supply.increase_supply(MINIMUM_LIQUIDITY))
        pool.reserve_x.join(coin_x.split(amount_x))
        pool.reserve_y.join(coin_y.split(amount_y))
        lp = pool.lp_supply.increase_supply(liquidity)

        self._update(pool, reserve_x, reserve_y)
        if fee_on:
            pool.k_last = safe_mul(pool.reserve_x.value, pool.reserve_y.value)

        self.events.emit(MintEvent(pool.key, sender, amount_x, amount_y, liquidity))
        logger.debug("Mint %s: x=%d y=%d liquidity=%d", pool.key, amount_x, amount_y, liquidity)
        return lp

    def remove_liquidity(
        self,
        x: AssetType,
        y: AssetType,
        lp: Balance,
        amount_x_min: int = 0,
        amount_y_min: int = 0,
        sender: str = "",
    ) -> Tuple[Balance, Balance]:
        """
        Burn liquidity units for a proportional share of both reserves.

        Returns:
            (coin_x, coin_y)
        """
        pool = self._open(x, y)
        self._check_asset(lp, pool.lp_asset)

        reserve_x, reserve_y = pool.reserves
        fee_on, fee_liquidity = self._pending_protocol_fee(pool, reserve_x, reserve_y)
        total_supply = pool.lp_supply.value + fee_liquidity

        liquidity = lp.value
        if liquidity == 0 or total_supply == 0:
            raise InsufficientLiquidityBurned("nothing to burn")
        amount_x = liquidity * reserve_x // total_supply
        amount_y = liquidity * reserve_y // total_supply
        if amount_x == 0 or amount_y == 0:
            raise InsufficientLiquidityBurned(
                f"burning {liquidity} returns ({amount_x}, {amount_y})"
            )
        if amount_x < amount_x_min:
            raise InsufficientXAmount(f"X out {amount_x} below minimum {amount_x_min}")
        if amount_y < amount_y_min:
            raise InsufficientYAmount(f"Y out {amount_y} below minimum {amount_y_min}")

        # effects
        self._apply_protocol_fee(pool, fee_on, fee_liquidity)
        pool.lp_supply.decrease_supply(lp)
        coin_x = pool.reserve_x.split(amount_x)
        coin_y = pool.reserve_y.split(amount_y)

        self._update(pool, reserve_x, reserve_y)
        if fee_on:
            pool.k_last = safe_mul(pool.reserve_x.value, pool.reserve_y.value)

        self.events.emit(BurnEvent(pool.key, sender, amount_x, amount_y, liquidity))
        logger.debug("Burn %s: liquidity=%d x=%d y=%d", pool.key, liquidity, amount_x, amount_y)
        return coin_x, coin_y

    # -- Swap -------------------------------------------------------------------

    def swap(
        self,
        x: AssetType,
        y: AssetType,
        coin_x_in: Balance,
        amount_x_out: int,
        coin_y_in: Balance,
        amount_y_out: int,
        sender: str = "",
    ) -> Tuple[Balance, Balance]:
        """
        Generalized swap: join the inputs, split the requested outputs, then
        require the fee-adjusted reserve product not to decrease.

        Returns:
            (coin_x_out, coin_y_out)
        """
        pool = self._open(x, y)
        self._check_asset(coin_x_in, x)
        self._check_asset(coin_y_in, y)

        amount_x_in = coin_x_in.value
        amount_y_in = coin_y_in.value
        if amount_x_in == 0 and amount_y_in == 0:
            raise InsufficientInputAmount("no input supplied")
        if amount_x_out < 0 or amount_y_out < 0 or (amount_x_out == 0 and amount_y_out == 0):
            raise InsufficientOutputAmount("no output requested")

        reserve_x, reserve_y = pool.reserves
        if amount_x_out >= reserve_x or amount_y_out >= reserve_y:
            raise InsufficientLiquidity(
                f"requested ({amount_x_out}, {amount_y_out}) against reserves ({reserve_x}, {reserve_y})"
            )

        balance_x = reserve_x + amount_x_in - amount_x_out
        balance_y = reserve_y + amount_y_in - amount_y_out
        self._assert_k(balance_x, balance_y, amount_x_in, amount_y_in, reserve_x, reserve_y)

        # effects
        pool.reserve_x.join(coin_x_in)
        pool.reserve_y.join(coin_y_in)
        coin_x_out = pool.reserve_x.split(amount_x_out)
        coin_y_out = pool.reserve_y.split(amount_y_out)
        self._update(pool, reserve_x, reserve_y)

        self.events.emit(
            SwapEvent(pool.key, sender, amount_x_in, amount_y_in, amount_x_out, amount_y_out)
        )
        logger.debug(
            "Swap %s: in=(%d, %d) out=(%d, %d)",
            pool.key, amount_x_in, amount_y_in, amount_x_out, amount_y_out,
        )
        return coin_x_out, coin_y_out

    def _assert_k(
        self,
        balance_x: int,
        balance_y: int,
        amount_x_in: int,
        amount_y_in: int,
        reserve_x: int,
        reserve_y: int,
    ) -> None:
        fee = self.registry.config.swap_fee_bps
        adjusted_x = balance_x * BPS_DENOMINATOR - amount_x_in * fee
        adjusted_y = balance_y * BPS_DENOMINATOR - amount_y_in * fee
        if adjusted_x < 0 or adjusted_y < 0:
            raise KInvariantError("negative fee-adjusted balance")
        lhs = safe_mul(adjusted_x, adjusted_y)
        rhs = safe_mul(safe_mul(reserve_x, reserve_y), BPS_DENOMINATOR * BPS_DENOMINATOR)
        if lhs < rhs:
            raise KInvariantError(
                f"K decreased: balances ({balance_x}, {balance_y}) vs reserves ({reserve_x}, {reserve_y})"
            )

    def swap_exact_input(
        self,
        asset_in: AssetType,
        asset_out: AssetType,
        coin_in: Balance,
        amount_out_min: int = 0,
        sender: str = "",
    ) -> Balance:
        """Sell all of `coin_in` for at least `amount_out_min` of `asset_out`."""
        self._check_asset(coin_in, asset_in)
        amount_out = self.get_amount_out(asset_in, asset_out, coin_in.value)
        if amount_out < amount_out_min:
            raise InsufficientOutputAmount(
                f"output {amount_out} below minimum {amount_out_min}"
            )
        return self.swap_directed(asset_in, asset_out, coin_in, amount_out, sender)

    def swap_exact_output(
        self,
        asset_in: AssetType,
        asset_out: AssetType,
        coin_in: Balance,
        amount_out: int,
        amount_in_max: Optional[int] = None,
        sender: str = "",
    ) -> Tuple[Balance, Balance]:
        """
        Buy exactly `amount_out` of `asset_out`, paying from `coin_in`.

        Returns:
            (coin_out, refund)
        """
        self._check_asset(coin_in, asset_in)
        amount_in = self.get_amount_in(asset_in, asset_out, amount_out)
        limit = coin_in.value if amount_in_max is None else min(amount_in_max, coin_in.value)
        if amount_in > limit:
            raise InsufficientInputAmount(f"input {amount_in} exceeds maximum {limit}")
        coin_out = self.swap_directed(asset_in, asset_out, coin_in.split(amount_in), amount_out, sender)
        return coin_out, coin_in

    def swap_directed(
        self,
        asset_in: AssetType,
        asset_out: AssetType,
        coin_in: Balance,
        amount_out: int,
        sender: str,
    ) -> Balance:
        _, in_is_x = self.registry.get_pool_any_order(asset_in, asset_out)
        if in_is_x:
            zero_x, coin_out = self.swap(
                asset_in, asset_out, coin_in, 0, Balance.zero(asset_out), amount_out, sender
            )
            zero_x.destroy_zero()
        else:
            coin_out, zero_y = self.swap(
                asset_out, asset_in, Balance.zero(asset_out), amount_out, coin_in, 0, sender
            )
            zero_y.destroy_zero()
        return coin_out

    # -- Quotes -----------------------------------------------------------------

    def _directed_reserves(self, asset_in: AssetType, asset_out: AssetType) -> Tuple[int, int]:
        pool, in_is_x = self.registry.get_pool_any_order(asset_in, asset_out)
        reserve_x, reserve_y = pool.reserves
        return (reserve_x, reserve_y) if in_is_x else (reserve_y, reserve_x)

    def get_amount_out(self, asset_in: AssetType, asset_out: AssetType, amount_in: int) -> int:
        reserve_in, reserve_out = self._directed_reserves(asset_in, asset_out)
        return get_amount_out(amount_in, reserve_in, reserve_out, self.registry.config.swap_fee_bps)

    def get_amount_in(self, asset_in: AssetType, asset_out: AssetType, amount_out: int) -> int:
        reserve_in, reserve_out = self._directed_reserves(asset_in, asset_out)
        return get_amount_in(amount_out, reserve_in, reserve_out, self.registry.config.swap_fee_bps)

    # -- Flash loans ------------------------------------------------------------

    def borrow(
        self,
        x: AssetType,
        y: AssetType,
        loan_x: int,
        loan_y: int,
    ) -> Tuple[Balance, Balance, FlashLoanTicket]:
        """
        Take an uncollateralized loan out of the reserves.

        The pool stays locked until ``repay`` redeems the returned ticket
        within the same transaction.
        """
        pool = self.registry.get_pool(x, y)
        self.registry.assert_not_paused()
        if pool.locked:
            raise ReentrancyLockError(f"Pool {pool.key} already has a loan outstanding")
        if loan_x < 0 or loan_y < 0 or (loan_x == 0 and loan_y == 0):
            raise LoanError("loan amounts must be non-negative and not both zero")

        reserve_x, reserve_y = pool.reserves
        if loan_x > reserve_x or loan_y > reserve_y:
            raise LoanError(
                f"loan ({loan_x}, {loan_y}) not available in reserves ({reserve_x}, {reserve_y})"
            )

        serial = self.registry.next_loan_serial()
        pool.locked = True
        pool.loan_serial = serial
        coin_x = pool.reserve_x.split(loan_x)
        coin_y = pool.reserve_y.split(loan_y)

        logger.debug("Flash loan %s #%d: x=%d y=%d", pool.key, serial, loan_x, loan_y)
        return coin_x, coin_y, issue_ticket(pool.key, loan_x, loan_y, serial)

    def repay(
        self,
        x: AssetType,
        y: AssetType,
        coin_x: Balance,
        coin_y: Balance,
        ticket: FlashLoanTicket,
    ) -> None:
        """Return a flash loan; the fee-adjusted K must cover the pre-loan reserves."""
        pool = self.registry.get_pool(x, y)
        self.registry.assert_not_paused()
        self._check_asset(coin_x, x)
        self._check_asset(coin_y, y)
        if (
            ticket.consumed
            or ticket.pair_key != pool.key
            or not pool.locked
            or pool.loan_serial != ticket.serial
        ):
            raise LoanError(f"{ticket!r} does not match the outstanding loan of {pool.key}")

        reserve_x, reserve_y = pool.reserves
        base_x = reserve_x + ticket.loan_x
        base_y = reserve_y + ticket.loan_y
        repay_x = coin_x.value
        repay_y = coin_y.value
        self._assert_k(
            reserve_x + repay_x, reserve_y + repay_y, repay_x, repay_y, base_x, base_y
        )

        # effects
        ticket._consume()
        pool.reserve_x.join(coin_x)
        pool.reserve_y.join(coin_y)
        self._update(pool, base_x, base_y)
        pool.locked = False
        pool.loan_serial = None

        self.events.emit(FlashLoanEvent(pool.key, ticket.loan_x, ticket.loan_y, repay_x, repay_y))
        logger.debug("Flash loan %s #%d repaid: x=%d y=%d", pool.key, ticket.serial, repay_x, repay_y)

    # -- Protocol fee -------------------------------------------------------------

    def _pending_protocol_fee(self, pool: PoolState, reserve_x: int, reserve_y: int) -> Tuple[bool, int]:
        """
        Liquidity owed to the fee recipient for k-growth since the last snapshot.

        Returns:
            (fee_on, liquidity_to_mint)
        """
        config: RegistryConfig = self.registry.config
        if not config.protocol_fee_enabled:
            return False, 0
        if pool.k_last == 0:
            return True, 0

        root_k = sqrt(reserve_x, reserve_y)
        root_k_last = sqrt_single(pool.k_last)
        if root_k <= root_k_last:
            return True, 0

        numerator = safe_mul(pool.lp_supply.value, root_k - root_k_last)
        denominator = safe_add(safe_mul(root_k, config.protocol_fee_denominator), root_k_last)
        return True, numerator // denominator

    @staticmethod
    def _apply_protocol_fee(pool: PoolState, fee_on: bool, liquidity: int) -> None:
        if not fee_on:
            if pool.k_last != 0:
                pool.k_last = 0
            return
        if liquidity > 0:
            pool.lp_fee_reserve.join(pool.lp_supply.increase_supply(liquidity))
            logger.debug("Protocol fee %s: minted %d liquidity", pool.key, liquidity)

    def withdraw_fee(self, x: AssetType, y: AssetType, sender: str) -> Balance:
        """Hand the accrued protocol-fee liquidity (above the locked floor) to the fee recipient."""
        self.registry.assert_fee_to(sender)
        pool = self.registry.get_pool(x, y)
        if pool.locked:
            raise ReentrancyLockError(f"Pool {pool.key} is locked by a flash loan")

        amount = pool.lp_fee_reserve.value - MINIMUM_LIQUIDITY
        if amount <= 0:
            raise InsufficientLiquidity(f"no protocol fee accrued on {pool.key}")
        lp = pool.lp_fee_reserve.split(amount)

        self.events.emit(FeeWithdrawnEvent(pool.key, sender, amount))
        logger.info("Protocol fee withdrawn from %s: %d liquidity to %s", pool.key, amount, sender)
        return lp

    # -- Accumulators -------------------------------------------------------------

    def _update(self, pool: PoolState, reserve_x: int, reserve_y: int) -> None:
        """Accumulate prices over the elapsed time using the pre-operation reserves."""
        now = self.now_seconds()
        elapsed = now - pool.last_update_timestamp
        if elapsed > 0 and reserve_x != 0 and reserve_y != 0:
            pool.price_x_cumulative = wrapping_add_u128(
                pool.price_x_cumulative, uq_div(encode_uq64(reserve_y), reserve_x) * elapsed
            )
            pool.price_y_cumulative = wrapping_add_u128(
                pool.price_y_cumulative, uq_div(encode_uq64(reserve_x), reserve_y) * elapsed
            )
        pool.last_update_timestamp = now

        self.events.emit(
            SyncEvent(
                pool.key,
                pool.reserve_x.value,
                pool.reserve_y.value,
                pool.price_x_cumulative,
                pool.price_y_cumulative,
            )
        )

    # -- Read-only --------------------------------------------------------------

    def get_reserves(self, x: AssetType, y: AssetType) -> Tuple[int, int, int]:
        return self.registry.get_reserves(x, y)

    def get_config(self) -> RegistryConfig:
        return self.registry.config
