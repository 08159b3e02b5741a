import app.repos.user_repo as urepo
from app.models.connection import compute_pair_key
from app.models.job import JobState
from app.models.conversation import ChatState, compute_conversation_key
from app.models.user import ROLE_EMPLOYER, ROLE_JOB_SEEKER, normalize_role
from app.repos import application_repo, connection_repo, job_repo, notification_repo


class _DB:
    def __init__(self):
        self.added = []
        self.commits = 0

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        self.commits += 1

    def refresh(self, obj):
        return None


def test_user_create_hashes_password_and_normalizes_role():
    db = _DB()
    user = urepo.create(db, "new@example.com", "password123", full_name="New", role="employee")
    assert db.added == [user]
    assert db.commits == 1
    assert user.role == ROLE_JOB_SEEKER
    assert user.password_hash != "password123"


def test_normalize_role():
    assert normalize_role("employee") == ROLE_JOB_SEEKER
    assert normalize_role(None) == ROLE_JOB_SEEKER
    assert normalize_role(ROLE_EMPLOYER) == ROLE_EMPLOYER


def test_keys_are_order_independent_where_needed():
    assert compute_pair_key("b", "a") == compute_pair_key("a", "b") == "a|b"
    assert compute_conversation_key("e", "s") == "direct|e|s"
    assert compute_conversation_key("e", "s", "j") == "job|j|e|s"


def test_chat_state_phases():
    assert ChatState(accepted=False, closed=False).phase == "pending"
    assert ChatState(accepted=True, closed=False).phase == "accepted"
    assert ChatState(accepted=True, closed=True).phase == "closed"
    assert ChatState(accepted=False, closed=True).phase == "closed_pending"


def test_user_lookup_helpers(db, employer, seeker):
    assert urepo.get_by_email(db, seeker.email).id == seeker.id
    assert urepo.get_role(db, employer.id) == ROLE_EMPLOYER
    assert urepo.get_role(db, "missing") is None
    assert set(urepo.get_many(db, [employer.id, seeker.id, "missing"])) == {employer.id, seeker.id}
    assert urepo.get_many(db, []) == {}


def test_list_job_seekers_search(db, make_user, employer):
    ann = make_user(ROLE_JOB_SEEKER, full_name="Ann Archer")
    make_user(ROLE_JOB_SEEKER, full_name="Bob Baker")
    items, total = urepo.list_job_seekers(db, employer.id, search="archer")
    assert total == 1
    assert [u.id for u in items] == [ann.id]


def test_job_state_and_titles(db, job, employer):
    state = job_repo.get_job_state(db, job.id)
    assert isinstance(state, JobState)
    assert state.status == "published" and state.is_closed is False
    assert job_repo.get_job_state(db, None) is None
    assert job_repo.get_job_state(db, "missing") is None
    assert job_repo.get_titles(db, [job.id, None]) == {job.id: "Barista"}
    job_repo.update_status(db, job.id, employer.id, is_active=False)
    assert job_repo.get_job_state(db, job.id).is_closed is True


def test_application_create_if_absent_is_idempotent(db, job, employer, seeker):
    first, created = application_repo.create_if_absent(db, job.id, seeker.id, employer.id)
    second, created_again = application_repo.create_if_absent(db, job.id, seeker.id, employer.id)
    assert created is True and created_again is False
    assert first.id == second.id
    assert first.cover_letter == application_repo.CHAT_ACCEPT_COVER_LETTER
    assert application_repo.count_for(db, job.id, seeker.id) == 1


def test_application_create_if_absent_recovers_from_race(db, monkeypatch, job, employer, seeker):
    winner, _ = application_repo.create_if_absent(db, job.id, seeker.id, employer.id)
    real_get_existing = application_repo.get_existing
    calls = {"n": 0}

    def _miss_first(session, job_id, applicant_id):
        calls["n"] += 1
        return None if calls["n"] == 1 else real_get_existing(session, job_id, applicant_id)

    monkeypatch.setattr(application_repo, "get_existing", _miss_first)
    app, created = application_repo.create_if_absent(db, job.id, seeker.id, employer.id)
    assert created is False
    assert app.id == winner.id


def test_connection_pairs_lookup(db, make_user, employer, seeker):
    other = make_user(ROLE_JOB_SEEKER)
    conn = connection_repo.create(db, seeker.id, employer.id, "hi")
    found = connection_repo.get_for_pairs(db, employer.id, [seeker.id, other.id])
    assert list(found) == [seeker.id]
    assert found[seeker.id].id == conn.id
    assert connection_repo.get_between(db, employer.id, seeker.id).id == conn.id
    assert conn.other_party(employer.id) == seeker.id


def test_notification_repo_flow(db, seeker):
    n1 = notification_repo.create(db, seeker.id, "chat_closed", "Chat Closed", "closed", related_id="c1", data={"x": 1})
    notification_repo.create(db, seeker.id, "chat_reopened", "Chat Reopened", "reopened")
    assert notification_repo.count_unread(db, seeker.id) == 2
    assert notification_repo.mark_read(db, n1.id, "someone-else") is None
    assert notification_repo.mark_read(db, n1.id, seeker.id).is_read is True
    assert [n.type for n in notification_repo.get_for_user(db, seeker.id, unread_only=True)] == ["chat_reopened"]
    assert notification_repo.mark_all_read(db, seeker.id) == 1
    assert notification_repo.delete(db, n1.id, seeker.id) is True
    assert notification_repo.delete(db, n1.id, seeker.id) is False
