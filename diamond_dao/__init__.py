"""
Diamond DAO Package

Core imports are lazily loaded so that importing a submodule does not pull
in the whole governance stack. For direct module access, import from
submodules:

    from diamond_dao.governance import DiamondDAO, ChangeSet, FacetCut
    from diamond_dao.clock import ManualClock
"""

__version__ = "1.0.0"


# Lazy imports to keep submodule imports cheap
def __getattr__(name):
    """Lazy module loading."""
    if name == 'DiamondDAO':
        from .governance import DiamondDAO
        return DiamondDAO
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'diamond_dao' has no attribute {name!r}")

__all__ = ['DiamondDAO', 'load_config', '__version__']
