"""Shared fixtures for the Razor DEX test suite."""

import pytest

from razordex.dex.assets import AssetType, Balance
from razordex.dex.engine import SwapEngine
from razordex.dex.events import EventLog
from razordex.dex.registry import PoolRegistry, RegistryConfig
from razordex.dex.router import Router

ADMIN = "0xadmin"
TREASURY = "0xtreasury"
ALICE = "0xa11ce"
BOB = "0xb0b"

# Byte order: A < B < C
ASSET_A = AssetType("0x1", "coins", "A")
ASSET_B = AssetType("0x1", "coins", "B")
ASSET_C = AssetType("0x1", "coins", "C")

START_MS = 1_700_000_000_000


class ManualClock:
    """Millisecond clock advanced explicitly by tests."""

    def __init__(self, now_ms: int = START_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: int) -> None:
        self.now_ms += seconds * 1000


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def registry():
    return PoolRegistry(RegistryConfig(admin=ADMIN, fee_to=TREASURY))


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def engine(registry, clock, events):
    return SwapEngine(registry, clock=clock, events=events)


@pytest.fixture
def router(engine):
    return Router(engine)


def seed(engine, x, y, amount_x, amount_y, sender=ALICE):
    """Create the (x, y) pair and make the first deposit. Returns the LP balance."""
    if not engine.registry.pair_exists(x, y):
        engine.create_pair(x, y, sender)
    lp, _, _ = engine.add_liquidity(x, y, Balance(x, amount_x), Balance(y, amount_y), sender=sender)
    return lp


@pytest.fixture
def pool_ab(engine):
    """A/B pool seeded with 10000 / 10000."""
    seed(engine, ASSET_A, ASSET_B, 10_000, 10_000)
    return engine.registry.get_pool(ASSET_A, ASSET_B)
