"""
Razor DEX Core

Constant-product automated market maker for fungible asset pairs.

Components:
  - Pricing math (quote, amount in/out, overflow-checked arithmetic)
  - Assets, balances and the account ledger
  - Pool registry (canonical pair ordering, admin configuration)
  - Swap engine (liquidity, swaps, flash loans, protocol fee, TWAP)
  - Router (one-hop and two-hop routes)
  - Atomic transactions and the ledger-backed entry layer
"""

from .pricing import (
    EQUAL,
    SMALLER,
    GREATER,
    quote,
    get_amount_out,
    get_amount_in,
    safe_mul,
    safe_add,
    sqrt,
    compare_types,
    canonical_order,
    sort_types,
)
from .assets import (
    AssetType,
    Balance,
    Supply,
    Ledger,
    lp_asset,
)
from .events import (
    PairCreatedEvent,
    MintEvent,
    BurnEvent,
    SwapEvent,
    SyncEvent,
    FlashLoanEvent,
    FeeWithdrawnEvent,
    EventLog,
    NullSink,
)
from .pool import (
    PairMetadata,
    PoolState,
    FlashLoanTicket,
    pair_key,
)
from .registry import (
    RegistryConfig,
    PoolRegistry,
)
from .engine import SwapEngine
from .router import Router
from .atomic import atomic
from .transactions import (
    DexOpType,
    DexTransaction,
)
from .state_manager import (
    DexExecResult,
    DexStateManager,
)

__all__ = [
    # Pricing
    "EQUAL", "SMALLER", "GREATER", "quote", "get_amount_out", "get_amount_in",
    "safe_mul", "safe_add", "sqrt", "compare_types", "canonical_order", "sort_types",
    # Assets
    "AssetType", "Balance", "Supply", "Ledger", "lp_asset",
    # Events
    "PairCreatedEvent", "MintEvent", "BurnEvent", "SwapEvent", "SyncEvent",
    "FlashLoanEvent", "FeeWithdrawnEvent", "EventLog", "NullSink",
    # Pools
    "PairMetadata", "PoolState", "FlashLoanTicket", "pair_key",
    "RegistryConfig", "PoolRegistry",
    # Engine
    "SwapEngine", "Router", "atomic",
    # Entry layer
    "DexOpType", "DexTransaction", "DexExecResult", "DexStateManager",
]
