"""
Store Module
============

Frame buffer and preservation store.

Components:
    - FrameBuffer: Bounded FIFO ring of classified frames
    - PreservedFrameSet: Latest frame per useful category
    - FrameStore: Lock-guarded owner of both (the only public writer)
    - StoreSnapshot: Consistent read-only copy for selection
    - FilePreservedStore: Optional on-disk copy of preserved frames
"""

from bridgewatch.store.buffer import FrameBuffer
from bridgewatch.store.preserved import PreservedFrameSet
from bridgewatch.store.state import FrameStore, StoreSnapshot
from bridgewatch.store.persistence import FilePreservedStore


__all__ = [
    "FrameBuffer",
    "PreservedFrameSet",
    "FrameStore",
    "StoreSnapshot",
    "FilePreservedStore",
]
