"""Tests for the collaboration websocket."""

import uuid

import pytest
from starlette.websockets import WebSocketDisconnect

from coderoom.models import CollaboratorRole

FILE_ID = str(uuid.uuid4())


def receive_until(ws, frame_type, predicate=None, limit=20):
    """Read frames until one of ``frame_type`` matches; return it and the frames skipped."""
    skipped = []
    for _ in range(limit):
        frame = ws.receive_json()
        if frame["type"] == frame_type and (predicate is None or predicate(frame)):
            return frame, skipped
        skipped.append(frame)
    raise AssertionError(f"no {frame_type} frame within {limit} frames: {skipped}")


@pytest.fixture
def ws_url(auth_headers):
    def _url(project, user, file_id=FILE_ID):
        token = auth_headers(user)["Authorization"].split(" ", 1)[1]
        url = f"/api/v1/projects/{project.id}/collab/ws?token={token}"
        if file_id:
            url += f"&file_id={file_id}"
        return url

    return _url


class TestConnection:
    def test_handshake_reports_role_and_presence(self, client, project, owner, ws_url):
        with client.websocket_connect(ws_url(project, owner)) as ws:
            established, _ = receive_until(ws, "connection_established")
            assert established["user_id"] == str(owner.id)
            assert established["role"] == "owner"
            assert established["can_edit"] is True

            sync, _ = receive_until(ws, "presence_sync")
            assert [user["user_id"] for user in sync["users"]] == [str(owner.id)]
            assert sync["users"][0]["current_file_id"] == FILE_ID
            assert sync["users"][0]["color"].startswith("#")

    def test_invalid_token_is_refused(self, client, project):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(f"/api/v1/projects/{project.id}/collab/ws?token=bogus") as ws:
                ws.receive_json()
        assert exc_info.value.code == 1008

    def test_stranger_on_private_project_is_refused(self, client, project, make_user, ws_url):
        stranger = make_user("stranger")
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(ws_url(project, stranger)) as ws:
                ws.receive_json()
        assert exc_info.value.code == 1008

    def test_ping_and_malformed_frames(self, client, project, owner, ws_url):
        with client.websocket_connect(ws_url(project, owner)) as ws:
            receive_until(ws, "connection_established")

            ws.send_text("not json")
            error, _ = receive_until(ws, "error")
            assert error["detail"] == "Malformed message"

            ws.send_json({"type": "ping"})
            receive_until(ws, "pong")


class TestCoEditing:
    def test_change_reaches_other_participant_but_not_author(self, client, project, owner, make_user, grant, ws_url):
        editor = make_user("editor")
        grant(project, editor, CollaboratorRole.EDIT)

        with client.websocket_connect(ws_url(project, owner)) as alice:
            receive_until(alice, "connection_established")
            with client.websocket_connect(ws_url(project, editor)) as bob:
                receive_until(bob, "connection_established")
                receive_until(alice, "presence_sync", lambda f: len(f["users"]) == 2)

                alice.send_json({"type": "content_change", "file_id": FILE_ID, "content": "print('hi')"})
                changed, _ = receive_until(bob, "content_changed")
                assert changed == {
                    "type": "content_changed",
                    "user_id": str(owner.id),
                    "file_id": FILE_ID,
                    "content": "print('hi')",
                }

                alice.send_json({"type": "ping"})
                _, skipped = receive_until(alice, "pong")
                assert all(frame["type"] != "content_changed" for frame in skipped)

    def test_change_is_scoped_to_open_file(self, client, project, owner, make_user, grant, ws_url):
        editor = make_user("editor")
        grant(project, editor, CollaboratorRole.EDIT)

        with client.websocket_connect(ws_url(project, owner)) as alice:
            receive_until(alice, "connection_established")
            with client.websocket_connect(ws_url(project, editor, file_id=str(uuid.uuid4()))) as bob:
                receive_until(bob, "connection_established")

                alice.send_json({"type": "content_change", "file_id": FILE_ID, "content": "x"})
                bob.send_json({"type": "ping"})
                _, skipped = receive_until(bob, "pong")
                assert all(frame["type"] != "content_changed" for frame in skipped)

    def test_presence_update_is_shared(self, client, project, owner, make_user, grant, ws_url):
        viewer = make_user("viewer")
        grant(project, viewer, CollaboratorRole.VIEW)
        other_file = str(uuid.uuid4())

        with client.websocket_connect(ws_url(project, owner)) as alice:
            receive_until(alice, "connection_established")
            with client.websocket_connect(ws_url(project, viewer)) as bob:
                receive_until(bob, "connection_established")
                bob.send_json({"type": "presence", "current_file_id": other_file, "is_typing": True})

                def bob_moved(frame):
                    users = {user["user_id"]: user for user in frame["users"]}
                    record = users.get(str(viewer.id))
                    return record is not None and record["current_file_id"] == other_file

                sync, _ = receive_until(alice, "presence_sync", bob_moved)
                bob_record = next(u for u in sync["users"] if u["user_id"] == str(viewer.id))
                assert bob_record["is_typing"] is True

    def test_content_change_raises_then_clears_typing(
        self, client, project, owner, make_user, grant, ws_url, monkeypatch
    ):
        editor = make_user("editor")
        grant(project, editor, CollaboratorRole.EDIT)
        monkeypatch.setattr(client.app.state.channel_registry, "typing_idle_seconds", 0.1)

        def editor_typing(expected):
            def check(frame):
                users = {user["user_id"]: user for user in frame["users"]}
                record = users.get(str(editor.id))
                return record is not None and record["is_typing"] is expected

            return check

        with client.websocket_connect(ws_url(project, owner)) as alice:
            receive_until(alice, "connection_established")
            with client.websocket_connect(ws_url(project, editor)) as bob:
                receive_until(bob, "connection_established")

                bob.send_json({"type": "content_change", "file_id": FILE_ID, "content": "x = 1"})
                receive_until(alice, "presence_sync", editor_typing(True))
                receive_until(alice, "presence_sync", editor_typing(False))

    def test_viewer_cannot_broadcast(self, client, project, owner, make_user, grant, ws_url):
        viewer = make_user("viewer")
        grant(project, viewer, CollaboratorRole.VIEW)

        with client.websocket_connect(ws_url(project, owner)) as alice:
            receive_until(alice, "connection_established")
            with client.websocket_connect(ws_url(project, viewer)) as bob:
                established, _ = receive_until(bob, "connection_established")
                assert established["can_edit"] is False

                bob.send_json({"type": "content_change", "file_id": FILE_ID, "content": "vandalism"})
                error, _ = receive_until(bob, "error")
                assert error["detail"] == "Edit access required"

                alice.send_json({"type": "ping"})
                _, skipped = receive_until(alice, "pong")
                assert all(frame["type"] != "content_changed" for frame in skipped)

    def test_revoked_editor_loses_broadcast_on_open_socket(self, client, project, owner, make_user, grant, ws_url):
        editor = make_user("editor")
        grant(project, editor, CollaboratorRole.EDIT)

        with client.websocket_connect(ws_url(project, editor)) as bob:
            receive_until(bob, "connection_established")
            grant(project, editor, CollaboratorRole.VIEW)

            bob.send_json({"type": "content_change", "file_id": FILE_ID, "content": "late edit"})
            error, _ = receive_until(bob, "error")
            assert error["detail"] == "Edit access required"

    def test_leaving_updates_presence(self, client, project, owner, make_user, grant, ws_url):
        editor = make_user("editor")
        grant(project, editor, CollaboratorRole.EDIT)

        with client.websocket_connect(ws_url(project, owner)) as alice:
            receive_until(alice, "connection_established")
            with client.websocket_connect(ws_url(project, editor)) as bob:
                receive_until(bob, "connection_established")
                receive_until(alice, "presence_sync", lambda f: len(f["users"]) == 2)

            receive_until(alice, "presence_sync", lambda f: len(f["users"]) == 1)
