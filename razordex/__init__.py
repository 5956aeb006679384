"""
Razor DEX Package

Core imports are lazily loaded so the CLI and config layer stay light.
For direct module access, import from submodules:

    from razordex.dex import SwapEngine, PoolRegistry, RegistryConfig
    from razordex.config import load_config
    from razordex.exceptions import DexError
"""

__version__ = "0.1.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'SwapEngine':
        from .dex import SwapEngine
        return SwapEngine
    elif name == 'DexStateManager':
        from .dex import DexStateManager
        return DexStateManager
    elif name == 'DexError':
        from .exceptions import DexError
        return DexError
    raise AttributeError(f"module 'razordex' has no attribute {name!r}")

__all__ = ['SwapEngine', 'DexStateManager', 'DexError', '__version__']
