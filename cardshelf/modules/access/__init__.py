"""Access control exports."""

from .policy import can_read, can_write

__all__ = [
    "can_read",
    "can_write",
]
