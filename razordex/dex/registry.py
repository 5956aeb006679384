"""
Razor DEX Pool Registry

Owns every pool, keyed by canonical pair key, plus global configuration:
  - admin principal, fee recipient
  - swap fee (bps), protocol fee denominator and enabled flag
  - emergency pause flag
  - ordered pair list for enumeration

Admin setters compare the caller against the stored admin at call time.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..constants import (
    BPS_DENOMINATOR,
    DEFAULT_PROTOCOL_FEE_DENOMINATOR,
    DEFAULT_PROTOCOL_FEE_ENABLED,
    DEFAULT_SWAP_FEE_BPS,
)
from ..exceptions import (
    Forbidden,
    InvalidFee,
    PairAlreadyExists,
    PairNotFound,
    PausedError,
)
from ..logger import get_logger
from .assets import AssetType
from .pool import PairMetadata, PoolState, new_pair_metadata, pair_key
from .pricing import assert_canonical, sort_types

logger = get_logger(__name__)


@dataclass
class RegistryConfig:
    """Global exchange configuration."""
    admin: str
    fee_to: str
    swap_fee_bps: int = DEFAULT_SWAP_FEE_BPS
    protocol_fee_denominator: int = DEFAULT_PROTOCOL_FEE_DENOMINATOR
    protocol_fee_enabled: bool = DEFAULT_PROTOCOL_FEE_ENABLED
    paused: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PoolRegistry:
    """
    Registry of constant-product pools.

    Handles:
      - Pair creation (canonical order, one pool per pair)
      - Pool lookup by pair
      - Pair enumeration
      - Admin-gated configuration
      - Snapshot / restore for transaction rollback
    """

    def __init__(self, config: RegistryConfig) -> None:
        self.config = config
        self._pools: Dict[str, PoolState] = {}
        self._pairs: List[PairMetadata] = []
        self._loan_sequence: int = 0
        # open rollback journals, innermost last
        self._journals: List[Dict[str, Any]] = []

    @classmethod
    def create(cls, admin: str, fee_to: Optional[str] = None, **kwargs: Any) -> "PoolRegistry":
        return cls(RegistryConfig(admin=admin, fee_to=fee_to or admin, **kwargs))

    # -- Pairs ----------------------------------------------------------------

    def create_pair(self, x: AssetType, y: AssetType, creator: str, created_at: Optional[float] = None) -> PoolState:
        assert_canonical(x, y)
        self.assert_not_paused()
        key = pair_key(x, y)
        if key in self._pools:
            raise PairAlreadyExists(f"Pool already exists for {key}")

        self._record(key, None)
        pool = PoolState(asset_x=x, asset_y=y)
        self._pools[key] = pool
        metadata = new_pair_metadata(x, y, creator)
        if created_at is not None:
            metadata.created_at = created_at
        self._pairs.append(metadata)

        logger.info("Pair %s created by %s", key, creator)
        return pool

    def get_pool(self, x: AssetType, y: AssetType) -> PoolState:
        """Pool for the canonical pair (x, y)."""
        assert_canonical(x, y)
        key = pair_key(x, y)
        pool = self._pools.get(key)
        if pool is None:
            raise PairNotFound(f"No pool for {key}")
        self._record(key, pool)
        return pool

    def get_pool_any_order(self, a: AssetType, b: AssetType) -> Tuple[PoolState, bool]:
        """Pool for {a, b} in either order; flag is True when a is the X side."""
        x, y = sort_types(a, b)
        return self.get_pool(x, y), x == a

    def pair_exists(self, x: AssetType, y: AssetType) -> bool:
        return pair_key(x, y) in self._pools

    def get_reserves(self, x: AssetType, y: AssetType) -> Tuple[int, int, int]:
        """(reserve_x, reserve_y, last_update_timestamp)"""
        pool = self.get_pool(x, y)
        return pool.reserve_x.value, pool.reserve_y.value, pool.last_update_timestamp

    def all_pairs(self) -> List[PairMetadata]:
        return list(self._pairs)

    def all_pairs_length(self) -> int:
        return len(self._pairs)

    def pools(self) -> List[PoolState]:
        return list(self._pools.values())

    def next_loan_serial(self) -> int:
        self._loan_sequence += 1
        return self._loan_sequence

    # -- Guards ---------------------------------------------------------------

    def assert_not_paused(self) -> None:
        if self.config.paused:
            raise PausedError("Registry is paused")

    def assert_admin(self, sender: str) -> None:
        if sender != self.config.admin:
            raise Forbidden(f"{sender} is not the admin")

    def assert_fee_to(self, sender: str) -> None:
        if sender != self.config.fee_to:
            raise Forbidden(f"{sender} is not the fee recipient")

    # -- Admin ------------------------------------------------------------------

    def pause(self, sender: str) -> None:
        self.assert_admin(sender)
        self.config.paused = True
        logger.warning("Registry PAUSED by %s", sender)

    def unpause(self, sender: str) -> None:
        self.assert_admin(sender)
        self.config.paused = False
        logger.info("Registry unpaused by %s", sender)

    def set_fee_to(self, sender: str, fee_to: str) -> None:
        self.assert_admin(sender)
        self.config.fee_to = fee_to
        logger.info("Fee recipient set to %s", fee_to)

    def set_admin(self, sender: str, admin: str) -> None:
        self.assert_admin(sender)
        self.config.admin = admin
        logger.info("Admin set to %s", admin)

    def set_swap_fee(self, sender: str, fee_bps: int) -> None:
        self.assert_admin(sender)
        if fee_bps < 0 or fee_bps >= BPS_DENOMINATOR:
            raise InvalidFee(f"swap fee {fee_bps} bps outside [0, {BPS_DENOMINATOR})")
        self.config.swap_fee_bps = fee_bps
        logger.info("Swap fee set to %d bps", fee_bps)

    def set_protocol_fee(self, sender: str, denominator: int) -> None:
        """Set the protocol fee denominator; zero disables the protocol fee."""
        self.assert_admin(sender)
        if denominator < 0:
            raise InvalidFee("protocol fee denominator must be non-negative")
        if denominator == 0:
            self.config.protocol_fee_enabled = False
        else:
            self.config.protocol_fee_denominator = denominator
            self.config.protocol_fee_enabled = True
        logger.info(
            "Protocol fee %s (denominator=%d)",
            "enabled" if self.config.protocol_fee_enabled else "disabled",
            self.config.protocol_fee_denominator,
        )

    # -- Snapshot / restore -----------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """
        Open a rollback journal.

        Pools are copied lazily the first time they are looked up while the
        journal is open, so the cost depends on the pools a transaction
        touches rather than on the registry size. Close the journal with
        ``restore`` or ``commit``.
        """
        journal: Dict[str, Any] = {
            "config": copy.deepcopy(self.config),
            "pairs_length": len(self._pairs),
            "loan_sequence": self._loan_sequence,
            "pools": {},
        }
        self._journals.append(journal)
        return journal

    def _record(self, key: str, pool: Optional[PoolState]) -> None:
        # None marks a pool created inside the journal
        for journal in self._journals:
            if key not in journal["pools"]:
                journal["pools"][key] = copy.deepcopy(pool)

    def _close(self, snapshot: Dict[str, Any]) -> None:
        for i, journal in enumerate(self._journals):
            if journal is snapshot:
                del self._journals[i:]
                return

    def restore(self, snapshot: Dict[str, Any]) -> None:
        """Undo every change made since ``snapshot`` and close its journal."""
        for key, saved in snapshot["pools"].items():
            if saved is None:
                self._pools.pop(key, None)
                continue
            live = self._pools.get(key)
            if live is None:
                self._pools[key] = saved
            else:
                # in place, so held PoolState references see the rollback
                live.__dict__.update(saved.__dict__)
        del self._pairs[snapshot["pairs_length"]:]
        self.config = snapshot["config"]
        self._loan_sequence = snapshot["loan_sequence"]
        self._close(snapshot)

    def commit(self, snapshot: Dict[str, Any]) -> None:
        """Keep every change made since ``snapshot`` and close its journal."""
        self._close(snapshot)

    def locked_pools(self, snapshot: Optional[Dict[str, Any]] = None) -> List[PoolState]:
        """Locked pools, limited to those touched since ``snapshot`` when given."""
        if snapshot is None:
            return [p for p in self._pools.values() if p.locked]
        pools = (self._pools.get(key) for key in snapshot["pools"])
        return [p for p in pools if p is not None and p.locked]
