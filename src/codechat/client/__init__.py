"""Client side of codechat: stream decoding, transcript state and session control."""

from .api import RelayClient
from .cache import TranscriptCache
from .controller import SessionController
from .decoder import EventStreamDecoder
from .reducer import ConversationState, reduce, replay

__all__ = [
    "ConversationState",
    "EventStreamDecoder",
    "RelayClient",
    "SessionController",
    "TranscriptCache",
    "reduce",
    "replay",
]
