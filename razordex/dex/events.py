"""
Razor DEX Events

Event records emitted by the swap engine and the sink they are emitted into.
Emission is fire-and-forget: the engine never reads events back.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Protocol, Type, TypeVar

from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PairCreatedEvent:
    pair_key: str
    asset_x: str
    asset_y: str
    creator: str


@dataclass(frozen=True)
class MintEvent:
    pair_key: str
    sender: str
    amount_x: int
    amount_y: int
    liquidity: int


@dataclass(frozen=True)
class BurnEvent:
    pair_key: str
    sender: str
    amount_x: int
    amount_y: int
    liquidity: int


@dataclass(frozen=True)
class SwapEvent:
    pair_key: str
    sender: str
    amount_x_in: int
    amount_y_in: int
    amount_x_out: int
    amount_y_out: int


@dataclass(frozen=True)
class SyncEvent:
    pair_key: str
    reserve_x: int
    reserve_y: int
    price_x_cumulative: int
    price_y_cumulative: int


@dataclass(frozen=True)
class FlashLoanEvent:
    pair_key: str
    loan_x: int
    loan_y: int
    repay_x: int
    repay_y: int


@dataclass(frozen=True)
class FeeWithdrawnEvent:
    pair_key: str
    recipient: str
    liquidity: int


Event = Any
E = TypeVar("E")


class EventSink(Protocol):
    """Anything events can be emitted into."""

    def emit(self, event: Event) -> None: ...


class NullSink:
    """Discards every event."""

    def emit(self, event: Event) -> None:
        return None


class EventLog:
    """
    In-memory event collector.

    Supports marking a position and truncating back to it so the events of an
    aborted transaction disappear with the rest of its effects.
    """

    def __init__(self) -> None:
        self._events: List[Event] = []

    def emit(self, event: Event) -> None:
        self._events.append(event)
        logger.debug("event %s", event)

    @property
    def events(self) -> List[Event]:
        return list(self._events)

    def of_type(self, kind: Type[E]) -> List[E]:
        return [e for e in self._events if isinstance(e, kind)]

    def mark(self) -> int:
        return len(self._events)

    def since(self, mark: int) -> List[Event]:
        return self._events[mark:]

    def truncate(self, mark: int) -> None:
        del self._events[mark:]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


def event_to_dict(event: Event) -> Dict[str, Any]:
    """Serialize an event as ``{"type": ..., **fields}``."""
    return {"type": type(event).__name__, **asdict(event)}
