"""
Razor DEX Ledger Collaborators

The exchange core only moves value through these primitives; it never inspects
asset-specific behaviour:

  - AssetType  : a fully qualified type identity (``0x1::coins::USDC``)
  - Balance    : a typed u64 amount: zero / split / join / value
  - Supply     : the mint/burn counter behind a liquidity asset
  - Ledger     : account balances, used by the entry layer to withdraw inputs
                 from the sender and credit results back
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..constants import U64_MAX
from ..exceptions import ArithmeticOverflow, AssetMismatch, InsufficientBalance


# ---------------------------------------------------------------------------
# Type identity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AssetType:
    """Fully qualified asset type: ``<address>::<module>::<name>``."""
    address: str
    module: str
    name: str

    @classmethod
    def parse(cls, type_name: str) -> "AssetType":
        parts = type_name.split("::")
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"Invalid asset type: {type_name!r}")
        return cls(*parts)

    @property
    def type_name(self) -> str:
        return f"{self.address}::{self.module}::{self.name}"

    @property
    def type_bytes(self) -> bytes:
        return self.type_name.encode()

    def __str__(self) -> str:
        return self.type_name


def lp_asset(x: AssetType, y: AssetType) -> AssetType:
    """Liquidity asset identity of the (x, y) pool."""
    return AssetType("0xdex", "swap", f"LP<{x.type_name},{y.type_name}>")


# ---------------------------------------------------------------------------
# Balance
# ---------------------------------------------------------------------------

@dataclass
class Balance:
    """A u64 amount of one asset type."""
    asset: AssetType
    value: int = 0

    def __post_init__(self) -> None:
        if self.value < 0 or self.value > U64_MAX:
            raise ArithmeticOverflow(f"balance {self.value} outside u64")

    @classmethod
    def zero(cls, asset: AssetType) -> "Balance":
        return cls(asset, 0)

    def split(self, amount: int) -> "Balance":
        """Take `amount` out of this balance into a new one."""
        if amount < 0:
            raise ValueError("split amount must be non-negative")
        if amount > self.value:
            raise InsufficientBalance(
                f"cannot split {amount} from {self.value} {self.asset}"
            )
        self.value -= amount
        return Balance(self.asset, amount)

    def join(self, other: "Balance") -> int:
        """Absorb `other` (left empty) and return the new value."""
        if other.asset != self.asset:
            raise AssetMismatch(f"cannot join {other.asset} into {self.asset}")
        total = self.value + other.value
        if total > U64_MAX:
            raise ArithmeticOverflow(f"{self.asset} balance overflows u64")
        self.value = total
        other.value = 0
        return total

    def withdraw_all(self) -> "Balance":
        return self.split(self.value)

    def destroy_zero(self) -> None:
        if self.value != 0:
            raise ValueError(f"balance of {self.asset} is not zero")


# ---------------------------------------------------------------------------
# Supply
# ---------------------------------------------------------------------------

@dataclass
class Supply:
    """Mint/burn counter of a liquidity asset; holders are a ledger concern."""
    asset: AssetType
    value: int = 0

    def increase_supply(self, amount: int) -> Balance:
        if self.value + amount > U64_MAX:
            raise ArithmeticOverflow(f"{self.asset} supply overflows u64")
        self.value += amount
        return Balance(self.asset, amount)

    def decrease_supply(self, balance: Balance) -> int:
        if balance.asset != self.asset:
            raise AssetMismatch(f"cannot burn {balance.asset} against {self.asset}")
        amount = balance.value
        self.value -= amount
        balance.value = 0
        return amount


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

@dataclass
class Ledger:
    """In-memory account balances keyed by address and asset type name."""
    accounts: Dict[str, Dict[str, int]] = field(default_factory=dict)
    _journals: List[Dict[Tuple[str, str], Optional[int]]] = field(
        default_factory=list, repr=False, compare=False
    )

    def balance_of(self, owner: str, asset: AssetType) -> int:
        return self.accounts.get(owner, {}).get(asset.type_name, 0)

    def deposit(self, owner: str, balance: Balance) -> None:
        """Credit `balance` to `owner`; zero balances are dropped."""
        if balance.value == 0:
            return
        self._record(owner, balance.asset.type_name)
        holdings = self.accounts.setdefault(owner, {})
        total = holdings.get(balance.asset.type_name, 0) + balance.value
        if total > U64_MAX:
            raise ArithmeticOverflow(f"{owner} {balance.asset} overflows u64")
        holdings[balance.asset.type_name] = total
        balance.value = 0

    def withdraw(self, owner: str, asset: AssetType, amount: int) -> Balance:
        if amount < 0:
            raise ValueError("withdraw amount must be non-negative")
        held = self.balance_of(owner, asset)
        if amount > held:
            raise InsufficientBalance(
                f"{owner} holds {held} {asset}, needs {amount}"
            )
        if amount:
            self._record(owner, asset.type_name)
            self.accounts[owner][asset.type_name] = held - amount
        return Balance(asset, amount)

    def mint(self, owner: str, asset: AssetType, amount: int) -> None:
        """Issue fresh units of an underlying asset (test/genesis funding)."""
        self.deposit(owner, Balance(asset, amount))

    def holdings(self, owner: str) -> Dict[str, int]:
        return {k: v for k, v in self.accounts.get(owner, {}).items() if v}

    # -- Rollback journal: prior values of the (owner, asset) slots written

    def _record(self, owner: str, type_name: str) -> None:
        for journal in self._journals:
            slot = (owner, type_name)
            if slot not in journal:
                journal[slot] = self.accounts.get(owner, {}).get(type_name)

    def _close(self, snapshot: Dict[Tuple[str, str], Optional[int]]) -> None:
        for i, journal in enumerate(self._journals):
            if journal is snapshot:
                del self._journals[i:]
                return

    def snapshot(self) -> Dict[Tuple[str, str], Optional[int]]:
        """Open a journal; close it with ``restore`` or ``commit``."""
        journal: Dict[Tuple[str, str], Optional[int]] = {}
        self._journals.append(journal)
        return journal

    def restore(self, snapshot: Dict[Tuple[str, str], Optional[int]]) -> None:
        for (owner, type_name), previous in snapshot.items():
            holdings = self.accounts.setdefault(owner, {})
            if previous is None:
                holdings.pop(type_name, None)
                if not holdings:
                    del self.accounts[owner]
            else:
                holdings[type_name] = previous
        self._close(snapshot)

    def commit(self, snapshot: Dict[Tuple[str, str], Optional[int]]) -> None:
        self._close(snapshot)


def coerce_asset(value: Optional[object]) -> AssetType:
    """Accept either an AssetType or its type-name string."""
    if isinstance(value, AssetType):
        return value
    if isinstance(value, str):
        return AssetType.parse(value)
    raise ValueError(f"Not an asset type: {value!r}")
