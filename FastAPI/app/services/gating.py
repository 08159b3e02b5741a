"""
Decides whether a message may be sent, or a conversation created.

Pure functions over the conversation's flags and the job's state; nothing is
read from or written to the database here. Direct (permanent) conversations
are never gated by job or chat closure: once two users are connected their
channel lives independently of any single job.
"""
from enum import Enum

from app.core.errors import ChatClosedError, GateDeniedError, JobClosedError, NotConnectedError
from app.models.job import JobState


class GateDecision(str, Enum):
    ALLOW = "allow"
    DENY_NOT_CONNECTED = "deny_not_connected"
    DENY_JOB_CLOSED = "deny_job_closed"
    DENY_CHAT_CLOSED = "deny_chat_closed"


_DENY_ERRORS: dict[GateDecision, type[GateDeniedError]] = {
    GateDecision.DENY_NOT_CONNECTED: NotConnectedError,
    GateDecision.DENY_JOB_CLOSED: JobClosedError,
    GateDecision.DENY_CHAT_CLOSED: ChatClosedError,
}


def can_message(conversation, job_state: JobState | None) -> GateDecision:
    """
    Gate for appending a message to an existing conversation.
    A job chat whose job no longer exists (job_state None) counts as closed.
    """
    if conversation.is_direct:
        return GateDecision.ALLOW
    if job_state is None or job_state.is_closed:
        return GateDecision.DENY_JOB_CLOSED
    if conversation.closed_by_employer:
        return GateDecision.DENY_CHAT_CLOSED
    return GateDecision.ALLOW


def can_create_conversation(
    initiator_role: str,
    job_state: JobState | None,
    connection_exists: bool,
    requires_connection: bool,
) -> GateDecision:
    """
    Gate for creating a conversation that does not exist yet.
    Job chats pass job_state and requires_connection=False (applying is the
    connection signal); direct chats pass job_state=None and requires_connection=True.
    """
    if job_state is not None and job_state.is_closed:
        return GateDecision.DENY_JOB_CLOSED
    if requires_connection and not connection_exists:
        return GateDecision.DENY_NOT_CONNECTED
    return GateDecision.ALLOW


def ensure_allowed(decision: GateDecision) -> None:
    """Raise the matching GateDeniedError for any non-ALLOW decision."""
    if decision is GateDecision.ALLOW:
        return
    raise _DENY_ERRORS[decision]()
