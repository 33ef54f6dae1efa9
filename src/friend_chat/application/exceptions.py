from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    code = "error"
    retryable = False

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class AuthenticationError(AppError):
    code = "authentication_failed"


class NotFoundError(AppError):
    code = "not_found"


class RequestNotFoundError(NotFoundError):
    code = "request_not_found"


class UserNotFoundError(NotFoundError):
    code = "user_not_found"


class MessageNotFoundError(NotFoundError):
    code = "message_not_found"


class ForbiddenError(AppError):
    code = "forbidden"


class NotFriendsError(ForbiddenError):
    code = "not_friends"


class ConflictError(AppError):
    code = "conflict"


class AlreadyFriendsError(ConflictError):
    code = "already_friends"


class DuplicateRequestError(ConflictError):
    code = "duplicate_request"


class RequestAlreadyProcessedError(ConflictError):
    code = "request_already_processed"


class ValidationError(AppError):
    code = "validation_failed"


class SelfRequestError(ValidationError):
    code = "self_request"


class InvalidReplyError(ValidationError):
    code = "invalid_reply"


class TransientStoreError(AppError):
    """The store did not complete in time or is unreachable; safe to retry."""

    code = "store_unavailable"
    retryable = True
