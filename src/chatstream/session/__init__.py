"""Streaming session module.

Turns backend fragment streams into committed conversation turns.
"""

from .coordinator import StreamingSessionCoordinator, StreamState, stream_turn
from .observer import NullObserver, RecordingObserver, StreamObserver

__all__ = [
    "NullObserver",
    "RecordingObserver",
    "StreamObserver",
    "StreamState",
    "StreamingSessionCoordinator",
    "stream_turn",
]
