"""
Razor DEX Exceptions

Custom exception classes for the Razor DEX core.

Every failure raised by the exchange engine is a ``DexError`` subclass with
a stable numeric ``code`` so callers (and the entry layer) can tell the exact
failure kind apart without matching on message text.
"""


class RazorDexException(Exception):
    """Base exception for Razor DEX."""
    pass


class ConfigurationError(RazorDexException):
    """Configuration error."""
    pass


class DexError(RazorDexException):
    """
    Base class for every exchange abort.

    Raising one of these unwinds the enclosing transaction entirely.
    """
    code: int = 0

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def __str__(self) -> str:
        return f"[E{self.code}] {self.message}"


# -- Pair lookup / creation ---------------------------------------------------

class PairOrderError(DexError):
    """Asset types supplied in non-canonical order."""
    code = 1


class PairAlreadyExists(DexError):
    """A pool already exists for this canonical pair."""
    code = 2


class PairNotFound(DexError):
    """No pool registered for this pair."""
    code = 3


# -- Amounts ------------------------------------------------------------------

class InsufficientAmount(DexError):
    code = 4


class InsufficientLiquidity(DexError):
    code = 5


class InsufficientInputAmount(DexError):
    """Swap input is zero or exceeds the caller's bound."""
    code = 6


class InsufficientOutputAmount(DexError):
    """Swap output is zero or below the caller's bound."""
    code = 7


class InsufficientXAmount(DexError):
    code = 8


class InsufficientYAmount(DexError):
    code = 9


class InsufficientLiquidityMinted(DexError):
    code = 10


class InsufficientLiquidityBurned(DexError):
    code = 11


# -- Safety -------------------------------------------------------------------

class KInvariantError(DexError):
    """Fee-adjusted reserve product decreased."""
    code = 12


class LoanError(DexError):
    """Flash-loan amounts invalid, unavailable, or ticket mismatch."""
    code = 13


class ReentrancyLockError(DexError):
    code = 14


class PausedError(DexError):
    code = 15


class Forbidden(DexError):
    """Caller lacks admin / fee-recipient authority."""
    code = 16


class InvalidFee(DexError):
    code = 17


class ArithmeticOverflow(DexError):
    code = 18


# -- Ledger collaborators -------------------------------------------------------

class AssetMismatch(DexError):
    """Balance of one asset type used where another was expected."""
    code = 19


class InsufficientBalance(DexError):
    code = 20


class DeadlineExceeded(DexError):
    code = 21
