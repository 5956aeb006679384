"""
Razor DEX Transaction Atomicity

Every transaction against the exchange runs inside ``atomic``: the registry
(and optionally the ledger and event log) open a rollback journal on entry,
recording only the pools and balances the transaction touches, and any
exception restores them before propagating. A flash loan still outstanding
when the block exits aborts the transaction the same way, so the reentrancy
lock can never leak out of a transaction.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from ..exceptions import LoanError
from ..logger import get_logger
from .assets import Ledger
from .events import EventLog
from .registry import PoolRegistry

logger = get_logger(__name__)


@contextmanager
def atomic(
    registry: PoolRegistry,
    ledger: Optional[Ledger] = None,
    events: Optional[EventLog] = None,
) -> Iterator[None]:
    """
    Run the enclosed block as one all-or-nothing transaction.

    Usage:

        with atomic(registry, ledger):
            coin_x, coin_y, ticket = engine.borrow(X, Y, 100, 0)
            ...
            engine.repay(X, Y, coin_x, coin_y, ticket)
    """
    registry_snapshot = registry.snapshot()
    ledger_snapshot = ledger.snapshot() if ledger is not None else None
    event_mark = events.mark() if events is not None else None

    def rollback() -> None:
        registry.restore(registry_snapshot)
        if ledger is not None:
            ledger.restore(ledger_snapshot)
        if events is not None:
            events.truncate(event_mark)

    try:
        yield
        outstanding = registry.locked_pools(registry_snapshot)
        if outstanding:
            keys = ", ".join(p.key for p in outstanding)
            raise LoanError(f"flash loan not repaid before transaction end: {keys}")
    except BaseException:
        rollback()
        logger.debug("Transaction rolled back")
        raise
    registry.commit(registry_snapshot)
    if ledger is not None:
        ledger.commit(ledger_snapshot)
