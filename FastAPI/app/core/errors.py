"""
Domain errors raised by the connection and conversation services.

Every error carries the HTTP status it maps to, a stable machine-readable
``code`` and a user-facing message. Routers convert them with
``to_http_exception``; nothing here is retried.
"""
from fastapi import HTTPException, status


class DomainError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "domain_error"
    default_detail = "Request could not be completed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"


class NotAuthorizedError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "not_authorized"
    default_detail = "You are not allowed to perform this action"


class NotAParticipantError(NotAuthorizedError):
    code = "not_a_participant"
    default_detail = "You are not a participant in this conversation"


# Lifecycle state errors

class InvalidStateError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state"
    default_detail = "This action is not valid in the current state"


class AlreadyAcceptedError(InvalidStateError):
    code = "already_accepted"
    default_detail = "Already accepted"


class AlreadyClosedError(InvalidStateError):
    code = "already_closed"
    default_detail = "Chat is already closed"


class NotClosedError(InvalidStateError):
    code = "not_closed"
    default_detail = "Chat is not closed"


class AlreadyConnectedError(InvalidStateError):
    code = "already_connected"
    default_detail = "Already connected"


class RequestAlreadyPendingError(InvalidStateError):
    code = "request_already_pending"
    default_detail = "Connection request already sent"


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_detail = "Concurrent update conflict. Please retry."


# Gate denials

class GateDeniedError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "denied"
    default_detail = "Messaging is not allowed"


class JobClosedError(GateDeniedError):
    code = "job_closed"
    default_detail = "This job has been closed"


class ChatClosedError(GateDeniedError):
    code = "chat_closed"
    default_detail = "This conversation has been closed by the employer"


class NotConnectedError(GateDeniedError):
    code = "not_connected"
    default_detail = "You must be connected first"


# Input validation

class InvalidInputError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_input"
    default_detail = "Invalid input"


class EmptyMessageError(InvalidInputError):
    code = "empty_message"
    default_detail = "Message cannot be empty"


class MessageTooLongError(InvalidInputError):
    code = "message_too_long"
    default_detail = "Message is too long"


class SelfConnectionError(InvalidInputError):
    code = "self_connection"
    default_detail = "Cannot connect with yourself"


def to_http_exception(exc: DomainError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail=exc.detail,
        headers={"X-Error-Code": exc.code},
    )
