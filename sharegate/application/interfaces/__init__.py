"""Ports for the application layer."""

from sharegate.application.interfaces.storage import (
    IBlobReader,
    IBlobStore,
    IBlobWriter,
    IEntry,
    IStorage,
)

__all__ = [
    "IBlobReader",
    "IBlobStore",
    "IBlobWriter",
    "IEntry",
    "IStorage",
]
