"""Tests for the owner-approved role upgrade workflow."""

from unittest.mock import patch

import pytest

from coderoom.models import AccessRequest, AccessRequestStatus, CollaboratorRole
from coderoom.services import access_requests as workflow
from coderoom.services.errors import AlreadyPendingError, InvalidRequestError, PermissionDeniedError
from coderoom.services.role_resolver import get_grant


@pytest.fixture
def viewer(make_user, project, grant):
    user = make_user("viewer")
    grant(project, user, CollaboratorRole.VIEW)
    return user


class TestRequestAccess:
    def test_viewer_can_request_edit(self, db, project, viewer):
        request = workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT, "  pairing today ")
        assert request.status == AccessRequestStatus.PENDING
        assert request.existing_role == CollaboratorRole.VIEW
        assert request.message == "pairing today"

    def test_second_request_while_pending_fails(self, db, project, viewer):
        workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)
        with pytest.raises(AlreadyPendingError):
            workflow.request_access(db, project, viewer.id, CollaboratorRole.FULL_ACCESS)

    def test_new_request_allowed_after_rejection(self, db, project, owner, viewer):
        first = workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)
        workflow.reject(db, project, owner.id, first)

        second = workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)

        assert second.id != first.id
        assert second.status == AccessRequestStatus.PENDING

    def test_view_is_not_requestable(self, db, project, make_user):
        stranger = make_user("stranger")
        with pytest.raises(InvalidRequestError):
            workflow.request_access(db, project, stranger.id, CollaboratorRole.VIEW)

    def test_same_or_lower_tier_is_rejected(self, db, project, make_user, grant):
        editor = make_user("editor")
        grant(project, editor, CollaboratorRole.EDIT)
        with pytest.raises(InvalidRequestError):
            workflow.request_access(db, project, editor.id, CollaboratorRole.EDIT)

    def test_full_access_holder_cannot_request(self, db, project, make_user, grant):
        admin = make_user("admin")
        grant(project, admin, CollaboratorRole.FULL_ACCESS)
        with pytest.raises(InvalidRequestError):
            workflow.request_access(db, project, admin.id, CollaboratorRole.FULL_ACCESS)

    def test_owner_cannot_request(self, db, project, owner):
        with pytest.raises(InvalidRequestError):
            workflow.request_access(db, project, owner.id, CollaboratorRole.FULL_ACCESS)


class TestApprove:
    def test_approve_creates_grant_and_marks_request(self, db, project, owner, viewer):
        request = workflow.request_access(db, project, viewer.id, CollaboratorRole.FULL_ACCESS)

        grant = workflow.approve(db, project, owner.id, request)

        db.expire_all()
        stored = db.get(AccessRequest, request.id)
        assert stored.status == AccessRequestStatus.APPROVED
        assert stored.responded_at is not None
        assert grant.role == CollaboratorRole.FULL_ACCESS
        assert get_grant(db, project.id, viewer.id).role == CollaboratorRole.FULL_ACCESS

    def test_approve_materialises_grant_for_user_without_one(self, db, project, owner, make_user):
        newcomer = make_user("newcomer")
        request = workflow.request_access(db, project, newcomer.id, CollaboratorRole.EDIT)

        workflow.approve(db, project, owner.id, request)

        db.expire_all()
        assert get_grant(db, project.id, newcomer.id).role == CollaboratorRole.EDIT

    def test_failed_approve_leaves_request_pending(self, db, project, owner, viewer):
        request = workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)

        with patch.object(workflow, "upsert_grant", side_effect=RuntimeError("db down")):
            with pytest.raises(RuntimeError):
                workflow.approve(db, project, owner.id, request)

        db.expire_all()
        assert db.get(AccessRequest, request.id).status == AccessRequestStatus.PENDING
        assert get_grant(db, project.id, viewer.id).role == CollaboratorRole.VIEW

    def test_only_owner_can_approve(self, db, project, viewer, make_user, grant):
        admin = make_user("admin")
        grant(project, admin, CollaboratorRole.FULL_ACCESS)
        request = workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)
        with pytest.raises(PermissionDeniedError):
            workflow.approve(db, project, admin.id, request)

    def test_cannot_approve_twice(self, db, project, owner, viewer):
        request = workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)
        workflow.approve(db, project, owner.id, request)
        with pytest.raises(InvalidRequestError):
            workflow.approve(db, project, owner.id, request)


class TestRejectAndWithdraw:
    def test_reject_has_no_grant_side_effect(self, db, project, owner, viewer):
        request = workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)
        rejected = workflow.reject(db, project, owner.id, request)
        assert rejected.status == AccessRequestStatus.REJECTED
        assert get_grant(db, project.id, viewer.id).role == CollaboratorRole.VIEW

    def test_requester_can_withdraw_pending(self, db, project, viewer):
        request = workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)
        workflow.withdraw(db, viewer.id, request)
        assert workflow.list_mine(db, viewer.id) == []

    def test_others_cannot_withdraw(self, db, project, owner, viewer):
        request = workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)
        with pytest.raises(PermissionDeniedError):
            workflow.withdraw(db, owner.id, request)

    def test_cannot_withdraw_resolved_request(self, db, project, owner, viewer):
        request = workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)
        workflow.reject(db, project, owner.id, request)
        with pytest.raises(InvalidRequestError):
            workflow.withdraw(db, viewer.id, request)


class TestListing:
    def test_pending_list_is_owner_only(self, db, project, owner, viewer):
        workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)
        assert len(workflow.list_pending(db, project, owner.id)) == 1
        with pytest.raises(PermissionDeniedError):
            workflow.list_pending(db, project, viewer.id)

    def test_list_mine_includes_history(self, db, project, owner, viewer):
        first = workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)
        workflow.reject(db, project, owner.id, first)
        workflow.request_access(db, project, viewer.id, CollaboratorRole.EDIT)

        mine = workflow.list_mine(db, viewer.id, project.id)

        assert sorted(r.status for r in mine) == [AccessRequestStatus.PENDING, AccessRequestStatus.REJECTED]
        assert workflow.list_pending(db, project, owner.id)[0].status == AccessRequestStatus.PENDING
