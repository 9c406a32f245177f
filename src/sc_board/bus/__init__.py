"""Bus backends: real I2C adapter and YAML-file simulator."""

from .backend import (
    BusBackend,
    BusTransaction,
    SmbusBackend,
    YamlBusBackend,
)
from .simulator import add_device

__all__ = [
    "BusBackend",
    "BusTransaction",
    "SmbusBackend",
    "YamlBusBackend",
    "add_device",
]
