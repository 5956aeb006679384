"""
Razor DEX Constants

This module consolidates the protocol constants and environment configuration
used throughout the codebase. Constants are organized by category for easy
reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_ENABLED':                'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: THE VALUES BELOW ARE PART OF THE POOL ACCOUNTING. CHANGING THEM ON A
# LIVE REGISTRY MAKES EXISTING POOL STATE INCONSISTENT WITH NEW OPERATIONS.

# ==================================================================================
# INTEGER WIDTHS
# ==================================================================================
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1
U256_MAX = 2**256 - 1


# ==================================================================================
# POOL PARAMETERS
# ==================================================================================
# Liquidity units minted on the first deposit and locked forever
MINIMUM_LIQUIDITY = 1000

# Fees are expressed in basis points (1/10000)
BPS_DENOMINATOR = 10000

DEFAULT_SWAP_FEE_BPS = 30                # 0.30 %
DEFAULT_PROTOCOL_FEE_DENOMINATOR = 5     # 1/6 of k-growth to the fee recipient
DEFAULT_PROTOCOL_FEE_ENABLED = False

# Fixed-point resolution of the price accumulators (UQ64.64)
PRICE_RESOLUTION = 64

LP_NAME_PREFIX = "Razor LP"
LP_SYMBOL = "RAZOR-LP"


# ==================================================================================
# ENTRY LAYER
# ==================================================================================
MAX_PARAMS_SIZE = 4096  # bytes of JSON-encoded transaction params


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
