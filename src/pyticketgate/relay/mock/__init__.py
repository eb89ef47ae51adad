from .api import Relay

__all__ = ["Relay"]
