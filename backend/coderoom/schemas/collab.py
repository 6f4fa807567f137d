"""Frames exchanged on the project collaboration websocket."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter


class PresenceMessage(BaseModel):
    type: Literal["presence"]
    current_file_id: Optional[UUID] = None
    is_typing: Optional[bool] = None


class ContentChangeMessage(BaseModel):
    type: Literal["content_change"]
    file_id: Optional[UUID] = None
    content: str


class PingMessage(BaseModel):
    type: Literal["ping"]


ClientMessage = TypeAdapter(
    Annotated[Union[PresenceMessage, ContentChangeMessage, PingMessage], Field(discriminator="type")]
)


def connection_established(session_id: str, user_id: str, role: str, can_edit: bool) -> Dict[str, Any]:
    return {
        "type": "connection_established",
        "session_id": session_id,
        "user_id": user_id,
        "role": role,
        "can_edit": can_edit,
    }


def presence_sync(users: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "presence_sync", "users": users}


def content_changed(user_id: str, file_id: Optional[str], content: str) -> Dict[str, Any]:
    return {"type": "content_changed", "user_id": user_id, "file_id": file_id, "content": content}


def error_frame(detail: str) -> Dict[str, Any]:
    return {"type": "error", "detail": detail}
