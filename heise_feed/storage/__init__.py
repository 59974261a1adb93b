"""Remote link storage."""

from .remote import RemoteStore

__all__ = ["RemoteStore"]
