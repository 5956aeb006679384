"""
Razor DEX Transaction Types

Defines the transaction envelope for every entry-level exchange operation.
Each envelope is executed atomically by ``DexStateManager``: inputs are
withdrawn from the sender's ledger account, results and refunds are credited
back.

Transaction Types:
  - CREATE_PAIR:                    Register a new pool for a canonical pair
  - ADD_LIQUIDITY:                  Deposit both assets, receive LP units
  - REMOVE_LIQUIDITY:               Burn LP units, receive both assets
  - SWAP_EXACT_INPUT:               One-hop sell of an exact amount
  - SWAP_EXACT_OUTPUT:              One-hop buy of an exact amount
  - SWAP_EXACT_INPUT_DOUBLE_HOP:    X -> Y -> Z sell of an exact amount
  - SWAP_EXACT_OUTPUT_DOUBLE_HOP:   X -> Y -> Z buy of an exact amount
  - WITHDRAW_FEE:                   Fee recipient collects protocol-fee LP units
  - PAUSE / UNPAUSE / SET_FEE_TO / SET_ADMIN / SET_SWAP_FEE / SET_PROTOCOL_FEE

Security:
  - Per-sender monotonic nonce prevents replay
  - Optional deadline rejects stale transactions
  - Deterministic hashing of the canonical envelope
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional

from ..constants import MAX_PARAMS_SIZE, U64_MAX


# ---------------------------------------------------------------------------
# Operation Types
# ---------------------------------------------------------------------------

class DexOpType(IntEnum):
    """All entry operation types.  Values are part of the transaction hash."""
    CREATE_PAIR = 1
    ADD_LIQUIDITY = 2
    REMOVE_LIQUIDITY = 3
    SWAP_EXACT_INPUT = 4
    SWAP_EXACT_OUTPUT = 5
    SWAP_EXACT_INPUT_DOUBLE_HOP = 6
    SWAP_EXACT_OUTPUT_DOUBLE_HOP = 7
    WITHDRAW_FEE = 8
    PAUSE = 9
    UNPAUSE = 10
    SET_FEE_TO = 11
    SET_ADMIN = 12
    SET_SWAP_FEE = 13
    SET_PROTOCOL_FEE = 14


_REQUIRED_PARAMS: Dict[DexOpType, tuple] = {
    DexOpType.CREATE_PAIR: ("asset_x", "asset_y"),
    DexOpType.ADD_LIQUIDITY: ("asset_x", "asset_y", "amount_x_desired", "amount_y_desired"),
    DexOpType.REMOVE_LIQUIDITY: ("asset_x", "asset_y", "liquidity"),
    DexOpType.SWAP_EXACT_INPUT: ("asset_in", "asset_out", "amount_in"),
    DexOpType.SWAP_EXACT_OUTPUT: ("asset_in", "asset_out", "amount_out", "amount_in_max"),
    DexOpType.SWAP_EXACT_INPUT_DOUBLE_HOP: ("asset_x", "asset_y", "asset_z", "amount_in"),
    DexOpType.SWAP_EXACT_OUTPUT_DOUBLE_HOP: ("asset_x", "asset_y", "asset_z", "amount_out", "amount_in_max"),
    DexOpType.WITHDRAW_FEE: ("asset_x", "asset_y"),
    DexOpType.PAUSE: (),
    DexOpType.UNPAUSE: (),
    DexOpType.SET_FEE_TO: ("fee_to",),
    DexOpType.SET_ADMIN: ("admin",),
    DexOpType.SET_SWAP_FEE: ("fee_bps",),
    DexOpType.SET_PROTOCOL_FEE: ("denominator",),
}

_AMOUNT_PARAMS = (
    "amount_x_desired", "amount_y_desired", "amount_x_min", "amount_y_min",
    "liquidity", "amount_in", "amount_out", "amount_in_max", "amount_out_min",
    "fee_bps", "denominator",
)


def _is_u64(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= U64_MAX


def _u64_field(value: Any, name: str) -> int:
    """Coerce a serialized envelope field; hashing packs it into 8 bytes."""
    try:
        value = int(value)
    except TypeError:
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"{name} out of range: {value}")
    return value


# ---------------------------------------------------------------------------
# Transaction envelope
# ---------------------------------------------------------------------------

@dataclass
class DexTransaction:
    """
    Envelope for a single exchange operation.

    Every field except the execution results feeds the transaction hash.
    """
    op_type: DexOpType
    sender: str
    nonce: int
    params: Dict[str, Any]
    timestamp: int = 0                  # milliseconds
    deadline: Optional[int] = None      # milliseconds, inclusive

    # --- Computed after execution ---
    success: bool = False
    result: Dict[str, Any] = field(default_factory=dict)
    error: str = ""

    # -- Hashing ------------------------------------------------------------

    def tx_hash(self) -> str:
        """Deterministic transaction hash."""
        return hashlib.blake2b(self._canonical_bytes(), digest_size=32).hexdigest()

    def _canonical_bytes(self) -> bytes:
        params_json = json.dumps(self.params, sort_keys=True, default=str).encode("utf-8")
        parts = [
            int(self.op_type).to_bytes(1, "big"),
            self.sender.encode("utf-8"),
            self.nonce.to_bytes(8, "big"),
            params_json,
            self.timestamp.to_bytes(8, "big"),
            (self.deadline if self.deadline is not None else 0).to_bytes(8, "big"),
        ]
        return b"".join(parts)

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op_type": self.op_type.name,
            "sender": self.sender,
            "nonce": self.nonce,
            "params": self.params,
            "timestamp": self.timestamp,
            "deadline": self.deadline,
            "tx_hash": self.tx_hash(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DexTransaction:
        op = data["op_type"]
        op_type = DexOpType[op] if isinstance(op, str) else DexOpType(int(op))
        sender = data["sender"]
        if not isinstance(sender, str):
            raise ValueError(f"sender must be a string, got {sender!r}")
        deadline = data.get("deadline")
        return cls(
            op_type=op_type,
            sender=sender,
            nonce=_u64_field(data["nonce"], "nonce"),
            params=dict(data.get("params", {})),
            timestamp=_u64_field(data.get("timestamp", 0), "timestamp"),
            deadline=None if deadline is None else _u64_field(deadline, "deadline"),
        )

    # -- Validation ---------------------------------------------------------

    def validate_basic(self) -> bool:
        """
        Structural validation (no state access needed).

        Raises:
            ValueError: with specific reason
        """
        if not isinstance(self.sender, str) or not self.sender:
            raise ValueError("Missing sender address")
        if not _is_u64(self.nonce):
            raise ValueError("Nonce must be a non-negative 64-bit integer")
        if not _is_u64(self.timestamp):
            raise ValueError("Timestamp must be a non-negative 64-bit integer")
        if self.deadline is not None and not _is_u64(self.deadline):
            raise ValueError("Deadline must be a non-negative 64-bit integer")
        if not isinstance(self.op_type, DexOpType):
            raise ValueError(f"Unknown operation type: {self.op_type}")
        if len(json.dumps(self.params, default=str)) > MAX_PARAMS_SIZE:
            raise ValueError("Params too large")

        for key in _REQUIRED_PARAMS[self.op_type]:
            if key not in self.params:
                raise ValueError(f"{self.op_type.name} missing param: {key}")
        for key in _AMOUNT_PARAMS:
            if key in self.params:
                value = self.params[key]
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise ValueError(f"{key} must be a non-negative integer")
        return True

    def __repr__(self) -> str:
        return (f"DexTransaction(op={self.op_type.name}, sender={self.sender}, "
                f"nonce={self.nonce}, hash={self.tx_hash()[:12]}...)")
