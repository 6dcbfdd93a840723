from .cache_cmds import register as register_cache
from .normalize_cmds import register as register_normalize

__all__ = [
    "register_cache",
    "register_normalize",
]
