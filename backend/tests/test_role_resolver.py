"""Tests for effective role resolution and capability flags."""

import pytest

from coderoom.models import CollaboratorRole
from coderoom.services.errors import PermissionDeniedError
from coderoom.services.role_resolver import (
    NO_ACCESS,
    can_read_project,
    require_edit,
    require_manage_files,
    require_owner,
    require_view,
    resolve_role,
)


class TestResolveRole:
    """Ownership first, then the grant row, else none."""

    def test_owner_is_owner_without_grant(self, db, project, owner):
        resolution = resolve_role(db, project, owner.id)
        assert resolution.is_owner is True
        assert resolution.role is None
        assert resolution.label == "owner"

    def test_stranger_has_no_access(self, db, project, make_user):
        stranger = make_user("stranger")
        assert resolve_role(db, project, stranger.id) == NO_ACCESS

    @pytest.mark.parametrize("role", list(CollaboratorRole))
    def test_grant_role_is_returned(self, db, project, make_user, grant, role):
        user = make_user("bob")
        grant(project, user, role)
        resolution = resolve_role(db, project, user.id)
        assert resolution.is_owner is False
        assert resolution.role == role

    def test_grant_change_is_observed_on_next_resolution(self, db, project, make_user, grant):
        user = make_user("bob")
        grant(project, user, CollaboratorRole.VIEW)
        assert resolve_role(db, project, user.id).can_edit is False

        grant(project, user, CollaboratorRole.EDIT)
        assert resolve_role(db, project, user.id).can_edit is True

    def test_owner_change_is_observed(self, db, project, owner, make_user):
        successor = make_user("successor")
        project.owner_id = successor.id
        db.commit()

        assert resolve_role(db, project, successor.id).is_owner is True
        assert resolve_role(db, project, owner.id) == NO_ACCESS


class TestCapabilityFlags:
    @pytest.mark.parametrize(
        "role,can_view,can_edit,can_manage",
        [
            (CollaboratorRole.VIEW, True, False, False),
            (CollaboratorRole.EDIT, True, True, False),
            (CollaboratorRole.FULL_ACCESS, True, True, True),
        ],
    )
    def test_flags_per_role(self, db, project, make_user, grant, role, can_view, can_edit, can_manage):
        user = make_user("carol")
        grant(project, user, role)
        resolution = resolve_role(db, project, user.id)
        assert resolution.can_view is can_view
        assert resolution.can_edit is can_edit
        assert resolution.can_manage_files is can_manage

    def test_owner_has_every_capability(self, db, project, owner):
        resolution = resolve_role(db, project, owner.id)
        assert resolution.can_view and resolution.can_edit and resolution.can_manage_files
        assert resolution.rank == 4

    def test_none_has_no_capability(self):
        assert not NO_ACCESS.can_view
        assert not NO_ACCESS.can_edit
        assert not NO_ACCESS.can_manage_files
        assert NO_ACCESS.rank == 0


class TestGuards:
    def test_public_project_is_readable_by_anyone(self, db, project, make_user):
        project.is_public = True
        db.commit()
        stranger = make_user("stranger")
        resolution = require_view(db, project, stranger.id)
        assert can_read_project(project, resolution)
        assert resolution.can_edit is False

    def test_private_project_rejects_stranger(self, db, project, make_user):
        stranger = make_user("stranger")
        with pytest.raises(PermissionDeniedError):
            require_view(db, project, stranger.id)

    def test_viewer_cannot_edit_or_manage(self, db, project, make_user, grant):
        viewer = make_user("viewer")
        grant(project, viewer, CollaboratorRole.VIEW)
        with pytest.raises(PermissionDeniedError):
            require_edit(db, project, viewer.id)
        with pytest.raises(PermissionDeniedError):
            require_manage_files(db, project, viewer.id)

    def test_editor_cannot_manage_files(self, db, project, make_user, grant):
        editor = make_user("editor")
        grant(project, editor, CollaboratorRole.EDIT)
        require_edit(db, project, editor.id)
        with pytest.raises(PermissionDeniedError):
            require_manage_files(db, project, editor.id)

    def test_full_access_is_not_owner(self, db, project, make_user, grant):
        admin = make_user("admin")
        grant(project, admin, CollaboratorRole.FULL_ACCESS)
        require_manage_files(db, project, admin.id)
        with pytest.raises(PermissionDeniedError):
            require_owner(project, admin.id)
