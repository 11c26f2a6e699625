"""
Cross-Frame Scroll Protocol.

The injected script (see script_injector) and the dashboard's parent frame talk
over window.postMessage. Every message is a JSON object tagged by `type`:

  PROXY_FRAME_READY  frame  → parent   {}
  SCROLL_UPDATE      frame  → parent   {windowId, scrollX, scrollY}
  RESTORE_SCROLL     parent → frame    {windowId?, scrollX, scrollY}

Per embedded window the parent walks LOADING → READY → SYNCING and stops at
CLOSED when the window is removed. The parent side lives in the dashboard;
FrameChannel / ScrollSyncHub are its reference model.
"""

import logging
from enum import Enum
from typing import Annotated, Callable, Dict, Literal, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger("scroll_protocol")


class MessageType(str, Enum):
    PROXY_FRAME_READY = "PROXY_FRAME_READY"
    SCROLL_UPDATE = "SCROLL_UPDATE"
    RESTORE_SCROLL = "RESTORE_SCROLL"


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ProxyFrameReady(_Message):
    type: Literal["PROXY_FRAME_READY"] = "PROXY_FRAME_READY"


class ScrollUpdate(_Message):
    type: Literal["SCROLL_UPDATE"] = "SCROLL_UPDATE"
    window_id: str = Field(..., alias="windowId")
    scroll_x: float = Field(0, alias="scrollX")
    scroll_y: float = Field(0, alias="scrollY")


class RestoreScroll(_Message):
    type: Literal["RESTORE_SCROLL"] = "RESTORE_SCROLL"
    window_id: Optional[str] = Field(None, alias="windowId")
    scroll_x: float = Field(0, alias="scrollX")
    scroll_y: float = Field(0, alias="scrollY")


SyncMessage = Annotated[
    Union[ProxyFrameReady, ScrollUpdate, RestoreScroll],
    Field(discriminator="type"),
]
_sync_message_adapter = TypeAdapter(SyncMessage)
_MESSAGE_TYPES = frozenset(m.value for m in MessageType)


def parse_message(data) -> Optional[Union[ProxyFrameReady, ScrollUpdate, RestoreScroll]]:
    """
    Returns the typed message, or None for anything that is not part of the
    protocol. Proxied pages post their own messages to the parent, so unknown
    payloads are expected and ignored.
    """
    if not isinstance(data, dict) or data.get("type") not in _MESSAGE_TYPES:
        return None
    try:
        return _sync_message_adapter.validate_python(data)
    except ValidationError as e:
        logger.debug(f"Dropping malformed {data.get('type')} message: {e.error_count()} errors")
        return None


class ScrollState(BaseModel):
    window_id: str
    scroll_x: float = 0
    scroll_y: float = 0


class ScrollStateStore(Protocol):
    def get(self, window_id: str) -> Optional[ScrollState]: ...

    def save(self, state: ScrollState) -> None: ...


class InMemoryScrollStore:
    """Dict-backed store for development and tests; the dashboard persists its own."""

    def __init__(self):
        self._states: Dict[str, ScrollState] = {}

    def get(self, window_id: str) -> Optional[ScrollState]:
        return self._states.get(window_id)

    def save(self, state: ScrollState) -> None:
        self._states[state.window_id] = state


class FrameState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    SYNCING = "syncing"
    CLOSED = "closed"


class FrameChannel:
    """Parent-side endpoint for one embedded window."""

    def __init__(self, window_id: str, store: ScrollStateStore, post: Callable[[dict], None]):
        self.window_id = window_id
        self.state = FrameState.LOADING
        self._store = store
        self._post = post

    def handle(self, message) -> bool:
        """
        Applies one inbound frame message. Returns True when it was accepted,
        False when it was dropped (closed channel, foreign windowId, or a
        message that only travels parent → frame).
        """
        if self.state is FrameState.CLOSED:
            return False

        if isinstance(message, ProxyFrameReady):
            self.state = FrameState.READY
            saved = self._store.get(self.window_id)
            restore = RestoreScroll(
                window_id=self.window_id,
                scroll_x=saved.scroll_x if saved else 0,
                scroll_y=saved.scroll_y if saved else 0,
            )
            self._post(restore.to_wire())
            self.state = FrameState.SYNCING
            return True

        if isinstance(message, ScrollUpdate):
            if message.window_id != self.window_id:
                logger.debug(f"Discarding SCROLL_UPDATE for {message.window_id} on channel {self.window_id}")
                return False
            self._store.save(ScrollState(
                window_id=self.window_id,
                scroll_x=message.scroll_x,
                scroll_y=message.scroll_y,
            ))
            self.state = FrameState.SYNCING
            return True

        return False

    def close(self):
        self.state = FrameState.CLOSED


class ScrollSyncHub:
    """
    Owner-scoped subscriptions: one FrameChannel per embedded window, created
    when the window is added and torn down when it is removed, so no
    RESTORE_SCROLL is ever posted to a destroyed frame.
    """

    def __init__(self, store: ScrollStateStore):
        self.store = store
        self._channels: Dict[str, FrameChannel] = {}

    def subscribe(self, window_id: str, post: Callable[[dict], None]) -> FrameChannel:
        previous = self._channels.pop(window_id, None)
        if previous is not None:
            previous.close()
        channel = FrameChannel(window_id, self.store, post)
        self._channels[window_id] = channel
        return channel

    def unsubscribe(self, window_id: str) -> bool:
        channel = self._channels.pop(window_id, None)
        if channel is None:
            return False
        channel.close()
        return True

    def channel(self, window_id: str) -> Optional[FrameChannel]:
        return self._channels.get(window_id)

    def dispatch(self, source_window_id: str, data) -> bool:
        """Routes a raw postMessage payload from the frame registered as `source_window_id`."""
        channel = self._channels.get(source_window_id)
        if channel is None:
            return False
        message = parse_message(data)
        if message is None:
            return False
        return channel.handle(message)
