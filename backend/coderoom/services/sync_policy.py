"""
Editor synchronisation: broadcast-then-debounce-persist, receiver wins locally.

``EditorSync`` is the client side of a channel session. It owns the buffer of
the open file and decides when to broadcast, when to persist and when to take
a remote broadcast. There is no merge: whichever broadcast arrives last
replaces the buffer, and whichever persist lands last is what is stored.
Two users typing in the same file inside one debounce window will lose one
side's keystrokes. That is the intended behaviour for pair programming, not a
bug to be fixed here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from coderoom.core.config import settings
from coderoom.services.channel import ChannelSession, ContentChange
from coderoom.services.debounce import Debouncer

logger = logging.getLogger(__name__)

Persist = Callable[[Optional[str], str], Awaitable[Any]]
BufferListener = Callable[[str], Any]


class EditorSync:
    """Buffer, broadcast and persistence state for one participant."""

    def __init__(
        self,
        session: ChannelSession,
        persist: Persist,
        save_debounce_seconds: Optional[float] = None,
        echo_window_seconds: Optional[float] = None,
        on_buffer_replaced: Optional[BufferListener] = None,
    ):
        self.session = session
        self._persist_fn = persist
        self.echo_window_seconds = (
            settings.REMOTE_ECHO_WINDOW_SECONDS if echo_window_seconds is None else echo_window_seconds
        )
        self._saves = Debouncer(
            settings.SAVE_DEBOUNCE_SECONDS if save_debounce_seconds is None else save_debounce_seconds,
            name="save",
        )
        self._on_buffer_replaced = on_buffer_replaced

        self.file_id: Optional[str] = None
        self.buffer: str = ""
        # Per-file buffers survive a switch so a pending save still has content
        self._buffers: Dict[Optional[str], str] = {}
        # Last content known to be stored, per file
        self._known: Dict[Optional[str], str] = {}
        self._remote_until = 0.0
        # (file_id, content) of the last remote apply, to recognise its echo
        self._last_remote: Optional[tuple] = None
        # One persist in flight per file
        self._save_locks: Dict[Optional[str], asyncio.Lock] = {}
        self._unsubscribe = session.on_remote_change(self.apply_remote)

    @property
    def is_dirty(self) -> bool:
        return self.buffer != self._known.get(self.file_id)

    def _now(self) -> float:
        return asyncio.get_running_loop().time()

    def in_echo_window(self) -> bool:
        return self._now() < self._remote_until

    async def open_file(self, file_id: Optional[str], content: str) -> None:
        """Load ``content`` as the stored state of ``file_id`` and view it."""
        self.file_id = file_id
        self.buffer = content
        self._buffers[file_id] = content
        self._known[file_id] = content
        await self.session.update_presence(current_file_id=file_id)

    async def switch_file(self, file_id: Optional[str], content: str) -> None:
        """Leave the open file, saving it right away if it has unsaved edits."""
        if file_id == self.file_id:
            return
        outgoing = self.file_id
        if outgoing in self._buffers:
            if self._buffers.get(outgoing) != self._known.get(outgoing):
                await self._saves.flush(outgoing, lambda: self._persist(outgoing))
            else:
                self._saves.cancel(outgoing)
        await self.open_file(file_id, content)

    async def local_change(self, content: str) -> bool:
        """Apply an edit made in this editor.

        Returns False when the change is the echo of the remote apply just
        made; it is neither broadcast nor saved. Any other edit is saved, and
        broadcast unless it falls inside the echo window.
        """
        file_id = self.file_id
        self.buffer = content
        self._buffers[file_id] = content
        in_window = self.in_echo_window()
        if in_window and self._last_remote == (file_id, content):
            return False

        if not in_window:
            await self.session.broadcast_change(file_id, content)
        await self.session.note_local_edit()
        self._saves.schedule(file_id, lambda: self._persist(file_id))
        return True

    async def apply_remote(self, change: ContentChange) -> bool:
        """Overwrite the buffer with a broadcast for the open file."""
        if change.user_id == self.session.user_id or change.file_id != self.file_id:
            return False
        self._remote_until = self._now() + self.echo_window_seconds
        self._last_remote = (change.file_id, change.content)
        self.buffer = change.content
        self._buffers[change.file_id] = change.content
        # The author persists its own broadcast
        self._known[change.file_id] = change.content
        if self._on_buffer_replaced is not None:
            result = self._on_buffer_replaced(change.content)
            if asyncio.iscoroutine(result):
                await result
        return True

    async def _persist(self, file_id: Optional[str]) -> None:
        lock = self._save_locks.setdefault(file_id, asyncio.Lock())
        # The buffer is read under the lock so a queued save writes the newest content
        async with lock:
            content = self._buffers.get(file_id)
            if content is None or content == self._known.get(file_id):
                return
            try:
                await self._persist_fn(file_id, content)
            except Exception:
                logger.exception("Saving file %s failed; edits kept in buffer", file_id)
                return
            self._known[file_id] = content

    def save_pending(self, file_id: Any = ...) -> bool:
        key = self.file_id if file_id is ... else file_id
        return self._saves.pending(key)

    async def flush(self) -> None:
        """Persist the open file now instead of waiting for the debounce."""
        file_id = self.file_id
        await self._saves.flush(file_id, lambda: self._persist(file_id))

    async def execute(self, gateway, language: str):
        """Run the open buffer; returns None if the user moved on meanwhile."""
        file_id = self.file_id
        result = await gateway.execute(self.buffer, language)
        if self.file_id != file_id or self.session.closed:
            logger.debug("Discarding execution result for %s after file switch", file_id)
            return None
        return result

    async def close(self) -> None:
        if not self.session.closed:
            await self.flush()
        self._saves.cancel_all()
        self._unsubscribe()
        await self.session.leave()
