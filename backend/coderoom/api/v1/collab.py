"""
WebSocket transport for the presence and co-editing channel.

One socket per participant. Frames from the client are validated and turned
into channel calls; channel events for this participant are written back as
JSON frames by the session's handlers.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from coderoom.api.utils.project_access import get_project_or_404
from coderoom.core.security import verify_identity_token
from coderoom.database import SessionLocal
from coderoom.schemas.collab import (
    ClientMessage,
    ContentChangeMessage,
    PingMessage,
    PresenceMessage,
    connection_established,
    content_changed,
    error_frame,
    presence_sync,
)
from coderoom.services.channel import ChannelSession, ContentChange
from coderoom.services.role_resolver import can_read_project, resolve_role
from coderoom.services.users import sync_user_profile

router = APIRouter()

logger = logging.getLogger(__name__)


class _SocketWriter:
    """Serialises writes from the receive loop and the session pump."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._lock = asyncio.Lock()

    async def send(self, message: Dict[str, Any]) -> None:
        async with self._lock:
            try:
                await self.websocket.send_json(message)
            except Exception as exc:
                logger.error("Failed to send %s frame: %s", message.get("type"), exc)


def _can_edit(project_id: UUID, user_id: UUID) -> bool:
    """Resolve the role again so grant changes apply to open sockets."""
    db = SessionLocal()
    try:
        project = get_project_or_404(db, project_id)
        return resolve_role(db, project, user_id).can_edit
    except HTTPException:
        return False
    finally:
        db.close()


async def _handle_frame(
    raw: str,
    session: ChannelSession,
    writer: _SocketWriter,
    project_id: UUID,
    user_id: UUID,
) -> None:
    try:
        message = ClientMessage.validate_python(json.loads(raw))
    except (ValueError, ValidationError):
        await writer.send(error_frame("Malformed message"))
        return

    if isinstance(message, PingMessage):
        await writer.send({"type": "pong"})
        return

    if isinstance(message, PresenceMessage):
        changes: Dict[str, Any] = {}
        if "current_file_id" in message.model_fields_set:
            changes["current_file_id"] = str(message.current_file_id) if message.current_file_id else None
        if message.is_typing is not None:
            changes["is_typing"] = message.is_typing
        await session.update_presence(**changes)
        return

    if isinstance(message, ContentChangeMessage):
        # Blocking DB lookup; keep it off the event loop
        if not await asyncio.to_thread(_can_edit, project_id, user_id):
            await writer.send(error_frame("Edit access required"))
            return
        file_id = str(message.file_id) if message.file_id else None
        await session.broadcast_change(file_id, message.content)
        await session.note_local_edit()


@router.websocket("/projects/{project_id}/collab/ws")
async def project_collab_ws(
    websocket: WebSocket,
    project_id: UUID,
    token: str = Query(..., description="Bearer token for authentication"),
    file_id: Optional[UUID] = Query(default=None),
):
    claims = verify_identity_token(token) if token else None
    if claims is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    db = SessionLocal()
    try:
        user = sync_user_profile(db, claims)
        project = get_project_or_404(db, project_id)
        resolution = resolve_role(db, project, user.id)
        if not can_read_project(project, resolution):
            raise HTTPException(status_code=403, detail="Project access denied")
        user_id = user.id
        display_name = user.username or "Anonymous"
        avatar_url = user.avatar_url
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    except Exception:
        logger.exception("Failed to open collaboration socket for project %s", project_id)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return
    finally:
        db.close()

    registry = websocket.app.state.channel_registry
    await websocket.accept()
    writer = _SocketWriter(websocket)

    session = await registry.join(
        project_id,
        str(user_id),
        display_name,
        avatar_url=avatar_url,
        current_file_id=str(file_id) if file_id else None,
    )

    async def forward_change(change: ContentChange) -> None:
        await writer.send(content_changed(change.user_id, change.file_id, change.content))

    async def forward_presence(users) -> None:
        await writer.send(presence_sync([record.to_dict() for record in users]))

    session.on_remote_change(forward_change)
    session.on_presence_sync(forward_presence)

    try:
        await writer.send(
            connection_established(
                session.session_id,
                str(user_id),
                resolution.label,
                resolution.can_edit,
            )
        )
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                break
            await _handle_frame(raw, session, writer, project_id, user_id)
    except Exception:
        logger.exception("Collaboration socket failed for project %s", project_id)
        try:
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        except Exception:
            logger.debug("Socket already closed")
    finally:
        try:
            await registry.leave(session)
        except Exception:
            logger.exception("Failed to leave collaboration channel")
