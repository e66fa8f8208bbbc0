"""Runtime configuration: the mutable store and reactive bindings."""

from .binding import LiveReference, ReactiveBinding, bind
from .store import ConfigChange, ConfigStore, parse_identifier

__all__ = [
    "ConfigChange",
    "ConfigStore",
    "LiveReference",
    "ReactiveBinding",
    "bind",
    "parse_identifier",
]
