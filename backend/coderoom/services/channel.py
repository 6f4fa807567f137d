"""
Presence and co-editing channel.

Each project gets one ``ProjectChannel``; every connected participant holds a
``ChannelSession`` on it. Sessions receive events through their own queue and
a pump task hands them to registered handlers in arrival order. Channels live
in a ``ChannelRegistry`` owned by the application, so separate registries (and
the projects inside them) never share state.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from coderoom.services.debounce import Debouncer

logger = logging.getLogger(__name__)

# Distinct colours for user presence
USER_COLORS = [
    "#3b82f6",  # blue
    "#22c55e",  # green
    "#f59e0b",  # amber
    "#ef4444",  # red
    "#8b5cf6",  # violet
    "#ec4899",  # pink
    "#06b6d4",  # cyan
    "#f97316",  # orange
]

DEFAULT_TYPING_IDLE_SECONDS = 1.5


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def user_color(user_id: str) -> str:
    """Stable colour for a user id; same result as the web client's hash."""
    h = 0
    for ch in user_id:
        h = ord(ch) + (_to_int32(_to_int32(h) << 5) - h)
    return USER_COLORS[abs(h) % len(USER_COLORS)]


@dataclass
class PresenceRecord:
    user_id: str
    display_name: str
    avatar_url: Optional[str] = None
    color: str = ""
    current_file_id: Optional[str] = None
    is_typing: bool = False
    last_seen: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if not self.color:
            self.color = user_color(self.user_id)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ContentChange:
    user_id: str
    file_id: Optional[str]
    content: str
    session_id: str


@dataclass(frozen=True)
class PresenceSync:
    users: List[PresenceRecord]


ChannelEvent = Union[ContentChange, PresenceSync]
Handler = Callable[[Any], Union[None, Awaitable[None]]]

_UNSET = object()


class ChannelSession:
    """One participant's connection to a project channel."""

    def __init__(
        self,
        channel: "ProjectChannel",
        presence: PresenceRecord,
        typing_idle_seconds: float = DEFAULT_TYPING_IDLE_SECONDS,
    ):
        self.session_id = uuid.uuid4().hex
        self.channel = channel
        self.presence = presence
        self._change_handlers: List[Handler] = []
        self._presence_handlers: List[Handler] = []
        self._queue: "asyncio.Queue[ChannelEvent]" = asyncio.Queue()
        self._pump: Optional[asyncio.Task] = None
        self._typing = Debouncer(typing_idle_seconds, name="typing-reset")
        self._last_broadcast: Optional[tuple] = None
        self.members: List[PresenceRecord] = []
        self.closed = False

    @property
    def user_id(self) -> str:
        return self.presence.user_id

    @property
    def project_id(self) -> str:
        return self.channel.project_id

    # -- subscription -----------------------------------------------------

    def on_remote_change(self, handler: Callable[[ContentChange], Any]) -> Callable[[], None]:
        self._change_handlers.append(handler)
        return lambda: self._change_handlers.remove(handler)

    def on_presence_sync(self, handler: Callable[[List[PresenceRecord]], Any]) -> Callable[[], None]:
        self._presence_handlers.append(handler)
        return lambda: self._presence_handlers.remove(handler)

    # -- outgoing ---------------------------------------------------------

    async def update_presence(self, current_file_id: Any = _UNSET, is_typing: Any = _UNSET) -> None:
        changes: Dict[str, Any] = {}
        if current_file_id is not _UNSET:
            changes["current_file_id"] = current_file_id
        if is_typing is not _UNSET:
            changes["is_typing"] = bool(is_typing)
        await self.channel.update_presence(self, **changes)

    async def note_local_edit(self) -> None:
        """Raise the typing flag and (re)arm its quiet-period reset."""
        if not self.presence.is_typing:
            await self.update_presence(is_typing=True)
        self._typing.schedule("typing", self._clear_typing)

    async def _clear_typing(self) -> None:
        if not self.closed and self.presence.is_typing:
            await self.update_presence(is_typing=False)

    async def broadcast_change(self, file_id: Optional[str], content: str) -> bool:
        """Send full content for a file; identical repeats are dropped.

        Returns False when the broadcast was suppressed as a duplicate.
        """
        key = (file_id, content)
        if key == self._last_broadcast:
            return False
        self._last_broadcast = key
        await self.channel.publish_change(self, file_id, content)
        return True

    async def leave(self) -> None:
        await self.channel.leave(self)

    # -- incoming ---------------------------------------------------------

    def _start(self) -> None:
        self._pump = asyncio.get_running_loop().create_task(self._run_pump())

    def _deliver(self, event: ChannelEvent) -> None:
        if not self.closed:
            self._queue.put_nowait(event)

    async def _run_pump(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._dispatch(event)
            except Exception:
                logger.exception("Handler failed in session %s", self.session_id)
            finally:
                self._queue.task_done()

    async def _dispatch(self, event: ChannelEvent) -> None:
        if isinstance(event, PresenceSync):
            self.members = event.users
            for handler in list(self._presence_handlers):
                await _call(handler, event.users)
            return

        # Self-suppression and current-file scoping happen on the receiving side
        if event.user_id == self.user_id:
            return
        if event.file_id != self.presence.current_file_id:
            return
        for handler in list(self._change_handlers):
            await _call(handler, event)

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        if self.closed:
            return
        await self._queue.join()

    async def _close(self) -> None:
        self.closed = True
        self._typing.cancel_all()
        pump, self._pump = self._pump, None
        if pump is None:
            return
        pump.cancel()
        if pump is asyncio.current_task():
            return
        try:
            await pump
        except asyncio.CancelledError:
            pass


async def _call(handler: Handler, payload: Any) -> None:
    result = handler(payload)
    if inspect.isawaitable(result):
        await result


class ProjectChannel:
    """Broadcast domain for a single project."""

    def __init__(
        self,
        project_id: str,
        typing_idle_seconds: float = DEFAULT_TYPING_IDLE_SECONDS,
        registry: Optional["ChannelRegistry"] = None,
    ):
        self.project_id = project_id
        self.typing_idle_seconds = typing_idle_seconds
        self._registry = registry
        self._sessions: Dict[str, ChannelSession] = {}

    @property
    def is_empty(self) -> bool:
        return not self._sessions

    @property
    def sessions(self) -> List[ChannelSession]:
        return list(self._sessions.values())

    def presence_state(self) -> List[PresenceRecord]:
        """Current members, one record per user (most recently seen wins)."""
        by_user: Dict[str, PresenceRecord] = {}
        for session in self._sessions.values():
            record = session.presence
            existing = by_user.get(record.user_id)
            if existing is None or record.last_seen >= existing.last_seen:
                by_user[record.user_id] = record
        return [PresenceRecord(**asdict(r)) for r in by_user.values()]

    async def join(
        self,
        user_id: str,
        display_name: str,
        avatar_url: Optional[str] = None,
        current_file_id: Optional[str] = None,
    ) -> ChannelSession:
        presence = PresenceRecord(
            user_id=str(user_id),
            display_name=display_name,
            avatar_url=avatar_url,
            current_file_id=current_file_id,
        )
        session = ChannelSession(self, presence, typing_idle_seconds=self.typing_idle_seconds)
        self._sessions[session.session_id] = session
        session._start()
        logger.info("User %s joined channel %s (session %s)", presence.user_id, self.project_id, session.session_id)
        self._sync_presence()
        return session

    async def leave(self, session: ChannelSession) -> None:
        if self._sessions.pop(session.session_id, None) is None:
            return
        await session._close()
        logger.info("User %s left channel %s (session %s)", session.user_id, self.project_id, session.session_id)
        self._sync_presence()
        if self.is_empty and self._registry is not None:
            self._registry._discard(self)

    async def update_presence(self, session: ChannelSession, **changes: Any) -> None:
        if session.session_id not in self._sessions:
            return
        for key, value in changes.items():
            setattr(session.presence, key, value)
        session.presence.last_seen = time.time()
        self._sync_presence()

    async def publish_change(self, sender: ChannelSession, file_id: Optional[str], content: str) -> None:
        event = ContentChange(
            user_id=sender.user_id,
            file_id=file_id,
            content=content,
            session_id=sender.session_id,
        )
        sender.presence.last_seen = time.time()
        recipients = 0
        for session in self._sessions.values():
            if session is sender:
                continue
            session._deliver(event)
            recipients += 1
        logger.debug(
            "channel:content_change project=%s file=%s author=%s len=%s recipients=%s",
            self.project_id,
            file_id,
            sender.user_id,
            len(content),
            recipients,
        )

    def _sync_presence(self) -> None:
        state = self.presence_state()
        for session in self._sessions.values():
            session._deliver(PresenceSync(users=state))

    async def close(self) -> None:
        for session in list(self._sessions.values()):
            await session._close()
        self._sessions.clear()


class ChannelRegistry:
    """Owns the channels of one application instance, keyed by project id."""

    def __init__(self, typing_idle_seconds: float = DEFAULT_TYPING_IDLE_SECONDS):
        self.typing_idle_seconds = typing_idle_seconds
        self._channels: Dict[str, ProjectChannel] = {}

    def get(self, project_id: str) -> Optional[ProjectChannel]:
        return self._channels.get(str(project_id))

    def channel_for(self, project_id: str) -> ProjectChannel:
        key = str(project_id)
        channel = self._channels.get(key)
        if channel is None:
            channel = ProjectChannel(key, typing_idle_seconds=self.typing_idle_seconds, registry=self)
            self._channels[key] = channel
        return channel

    async def join(
        self,
        project_id: str,
        user_id: str,
        display_name: str,
        avatar_url: Optional[str] = None,
        current_file_id: Optional[str] = None,
    ) -> ChannelSession:
        channel = self.channel_for(project_id)
        return await channel.join(user_id, display_name, avatar_url, current_file_id)

    async def leave(self, session: ChannelSession) -> None:
        await session.channel.leave(session)

    def _discard(self, channel: ProjectChannel) -> None:
        if self._channels.get(channel.project_id) is channel:
            del self._channels[channel.project_id]

    def active_projects(self) -> List[str]:
        return list(self._channels)

    async def close(self) -> None:
        for channel in list(self._channels.values()):
            await channel.close()
        self._channels.clear()
