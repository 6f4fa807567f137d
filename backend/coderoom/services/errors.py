"""Domain errors raised by the service layer and mapped to HTTP by the API."""

from __future__ import annotations


class CodeRoomError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(CodeRoomError):
    status_code = 404
    default_message = "Not found"


class PermissionDeniedError(CodeRoomError):
    status_code = 403
    default_message = "Insufficient permissions"


class JoinFailedError(CodeRoomError):
    """Unknown room code and wrong secret deliberately share one message."""

    status_code = 404
    default_message = "Join failed: room not found or link is invalid"

    def __init__(self) -> None:
        super().__init__(self.default_message)


class RoomNotFoundError(JoinFailedError):
    pass


class InvalidSecretError(JoinFailedError):
    pass


class AlreadyPendingError(CodeRoomError):
    status_code = 409
    default_message = "An access request is already pending for this project"


class InvalidRequestError(CodeRoomError):
    status_code = 400
    default_message = "Invalid request"


class PathConflictError(CodeRoomError):
    status_code = 409
    default_message = "A file or folder with this path already exists"


class UnsupportedLanguageError(CodeRoomError):
    status_code = 400

    def __init__(self, language: str) -> None:
        self.language = language
        super().__init__(f"Unsupported language: {language}")
