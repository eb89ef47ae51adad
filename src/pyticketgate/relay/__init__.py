"""Door relay implementations."""

from .base import BaseRelay
from .loader import RelayManifest, get_manifest, list_relays

__all__ = ["BaseRelay", "RelayManifest", "get_manifest", "list_relays"]
