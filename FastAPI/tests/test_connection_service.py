import pytest

from app.core.errors import (
    AlreadyAcceptedError,
    AlreadyConnectedError,
    InvalidInputError,
    InvalidStateError,
    NotAuthorizedError,
    NotFoundError,
    RequestAlreadyPendingError,
    SelfConnectionError,
)
from app.models.connection import ConnectionRequest
from app.models.user import ROLE_EMPLOYER, ROLE_JOB_SEEKER
from app.repos import connection_repo
from app.services import connection_service as svc


def test_request_creates_pending(db, employer, seeker):
    conn, created = svc.request_connection(db, employer.id, seeker.id, "  Hi there  ")
    assert created is True
    assert conn.status == "pending"
    assert conn.sender_id == employer.id
    assert conn.receiver_id == seeker.id
    assert conn.message == "Hi there"


def test_request_to_self_rejected(db, employer):
    with pytest.raises(SelfConnectionError):
        svc.request_connection(db, employer.id, employer.id)


def test_request_to_unknown_user(db, employer):
    with pytest.raises(NotFoundError):
        svc.request_connection(db, employer.id, "missing-user")


def test_request_message_too_long(db, employer, seeker):
    with pytest.raises(InvalidInputError):
        svc.request_connection(db, employer.id, seeker.id, "x" * 301)


def test_duplicate_pending_in_either_direction(db, employer, seeker):
    svc.request_connection(db, employer.id, seeker.id)
    with pytest.raises(RequestAlreadyPendingError):
        svc.request_connection(db, employer.id, seeker.id)
    with pytest.raises(RequestAlreadyPendingError):
        svc.request_connection(db, seeker.id, employer.id)
    assert db.query(ConnectionRequest).count() == 1


def test_request_when_already_connected(db, employer, seeker):
    conn, _ = svc.request_connection(db, employer.id, seeker.id)
    svc.respond_to_connection(db, conn.id, seeker.id, svc.DECISION_ACCEPT)
    with pytest.raises(AlreadyConnectedError):
        svc.request_connection(db, seeker.id, employer.id)


def test_only_receiver_can_respond(db, employer, seeker):
    conn, _ = svc.request_connection(db, employer.id, seeker.id)
    with pytest.raises(NotAuthorizedError):
        svc.respond_to_connection(db, conn.id, employer.id, svc.DECISION_ACCEPT)


def test_respond_unknown_request(db, seeker):
    with pytest.raises(NotFoundError):
        svc.respond_to_connection(db, "nope", seeker.id, svc.DECISION_ACCEPT)


def test_accept_sets_responded_at_and_connects(db, employer, seeker):
    conn, _ = svc.request_connection(db, employer.id, seeker.id)
    accepted = svc.respond_to_connection(db, conn.id, seeker.id, svc.DECISION_ACCEPT)
    assert accepted.status == "accepted"
    assert accepted.responded_at is not None
    assert svc.is_connected(db, employer.id, seeker.id) is True
    assert svc.is_connected(db, seeker.id, employer.id) is True


def test_accept_twice_and_reject_accepted(db, employer, seeker):
    conn, _ = svc.request_connection(db, employer.id, seeker.id)
    svc.respond_to_connection(db, conn.id, seeker.id, svc.DECISION_ACCEPT)
    with pytest.raises(AlreadyAcceptedError):
        svc.respond_to_connection(db, conn.id, seeker.id, svc.DECISION_ACCEPT)
    with pytest.raises(InvalidStateError):
        svc.respond_to_connection(db, conn.id, seeker.id, svc.DECISION_REJECT)


def test_respond_to_rejected_is_invalid(db, employer, seeker):
    conn, _ = svc.request_connection(db, employer.id, seeker.id)
    svc.respond_to_connection(db, conn.id, seeker.id, svc.DECISION_REJECT)
    with pytest.raises(InvalidStateError):
        svc.respond_to_connection(db, conn.id, seeker.id, svc.DECISION_ACCEPT)


def test_resend_after_reject_reuses_record(db, employer, seeker):
    conn, _ = svc.request_connection(db, employer.id, seeker.id, "first")
    svc.respond_to_connection(db, conn.id, seeker.id, svc.DECISION_REJECT)
    assert svc.is_connected(db, employer.id, seeker.id) is False

    again, created = svc.request_connection(db, employer.id, seeker.id, "second")
    assert created is False
    assert again.id == conn.id
    assert again.status == "pending"
    assert again.message == "second"
    assert again.responded_at is None
    assert db.query(ConnectionRequest).count() == 1


def test_resend_after_reject_by_other_party_flips_direction(db, employer, seeker):
    conn, _ = svc.request_connection(db, employer.id, seeker.id)
    svc.respond_to_connection(db, conn.id, seeker.id, svc.DECISION_REJECT)

    again, _ = svc.request_connection(db, seeker.id, employer.id)
    assert again.id == conn.id
    assert again.sender_id == seeker.id
    assert again.receiver_id == employer.id
    # The new receiver can now answer it.
    accepted = svc.respond_to_connection(db, again.id, employer.id, svc.DECISION_ACCEPT)
    assert accepted.status == "accepted"


def test_cancel_pending_by_sender_only(db, employer, seeker):
    conn, _ = svc.request_connection(db, employer.id, seeker.id)
    with pytest.raises(NotAuthorizedError):
        svc.cancel_connection(db, conn.id, seeker.id)
    svc.cancel_connection(db, conn.id, employer.id)
    assert connection_repo.get_by_id(db, conn.id) is None


def test_cancel_accepted_not_allowed(db, employer, seeker):
    conn, _ = svc.request_connection(db, employer.id, seeker.id)
    svc.respond_to_connection(db, conn.id, seeker.id, svc.DECISION_ACCEPT)
    with pytest.raises(InvalidStateError):
        svc.cancel_connection(db, conn.id, employer.id)


def test_concurrent_request_loser_sees_pending(db, monkeypatch, employer, seeker):
    svc.request_connection(db, seeker.id, employer.id)
    real_get_between = connection_repo.get_between
    calls = {"n": 0}

    def _stale_first(session, a, b):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_get_between(session, a, b)

    monkeypatch.setattr(connection_repo, "get_between", _stale_first)
    with pytest.raises(RequestAlreadyPendingError):
        svc.request_connection(db, employer.id, seeker.id)
    assert db.query(ConnectionRequest).count() == 1


def test_connection_status_views(db, employer, seeker):
    assert svc.get_connection_status(db, employer.id, seeker.id) == {"status": "none", "can_send_request": True}
    conn, _ = svc.request_connection(db, employer.id, seeker.id)
    mine = svc.get_connection_status(db, employer.id, seeker.id)
    theirs = svc.get_connection_status(db, seeker.id, employer.id)
    assert mine["status"] == "pending" and mine["is_sender"] is True
    assert theirs["is_sender"] is False
    assert mine["can_send_request"] is False
    svc.respond_to_connection(db, conn.id, seeker.id, svc.DECISION_REJECT)
    assert svc.get_connection_status(db, employer.id, seeker.id)["can_send_request"] is True


def test_list_connections_shows_other_party(db, make_user, employer, seeker):
    other = make_user(ROLE_EMPLOYER, full_name="Olive Other")
    c1, _ = svc.request_connection(db, employer.id, seeker.id)
    c2, _ = svc.request_connection(db, other.id, seeker.id)
    svc.respond_to_connection(db, c1.id, seeker.id, svc.DECISION_ACCEPT)
    svc.respond_to_connection(db, c2.id, seeker.id, svc.DECISION_ACCEPT)

    out = svc.list_connections(db, seeker.id)
    assert {c["user_id"] for c in out["connections"]} == {employer.id, other.id}
    assert out["total"] == 2

    filtered = svc.list_connections(db, seeker.id, search="olive")
    assert [c["user_id"] for c in filtered["connections"]] == [other.id]

    by_role = svc.list_connections(db, employer.id, role=ROLE_JOB_SEEKER)
    assert [c["role"] for c in by_role["connections"]] == [ROLE_JOB_SEEKER]


def test_pending_and_sent_lists(db, employer, seeker):
    conn, _ = svc.request_connection(db, employer.id, seeker.id)
    assert [c.id for c in svc.list_pending_requests(db, seeker.id)] == [conn.id]
    assert svc.list_pending_requests(db, employer.id) == []
    assert [c.id for c in svc.list_sent_requests(db, employer.id)] == [conn.id]


def test_browse_job_seekers_annotates_status(db, make_user, employer, seeker):
    legacy = make_user("employee", full_name="Legacy Lee")
    svc.request_connection(db, employer.id, seeker.id)

    out = svc.browse_job_seekers(db, employer.id, ROLE_EMPLOYER)
    by_id = {s["user_id"]: s for s in out["job_seekers"]}
    assert out["total"] == 2
    assert by_id[seeker.id]["connection_status"] == "pending"
    assert by_id[seeker.id]["is_sender"] is True
    assert by_id[legacy.id]["connection_status"] == "none"


def test_browse_job_seekers_employers_only(db, seeker):
    with pytest.raises(NotAuthorizedError):
        svc.browse_job_seekers(db, seeker.id, ROLE_JOB_SEEKER)
