from .bindbridge import BindBridge

__all__ = [
    'BindBridge',
]
