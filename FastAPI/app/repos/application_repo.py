import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import generate_id
from app.models.application import Application

logger = logging.getLogger(__name__)

CHAT_ACCEPT_COVER_LETTER = "Application created from chat request"


def get_existing(db: Session, job_id: str, applicant_id: str) -> Application | None:
    return (
        db.query(Application)
        .filter(
            Application.job_id == job_id,
            Application.applicant_id == applicant_id,
        )
        .first()
    )


def count_for(db: Session, job_id: str, applicant_id: str) -> int:
    return (
        db.query(Application)
        .filter(Application.job_id == job_id, Application.applicant_id == applicant_id)
        .count()
    )


def create_if_absent(
    db: Session,
    job_id: str,
    applicant_id: str,
    employer_id: str,
    cover_letter: str = CHAT_ACCEPT_COVER_LETTER,
) -> tuple[Application, bool]:
    """
    Return (application, created). Safe under concurrent callers: the unique
    (job_id, applicant_id) constraint decides the winner, losers re-read it.
    """
    existing = get_existing(db, job_id, applicant_id)
    if existing:
        return existing, False
    application = Application(
        id=generate_id(),
        job_id=job_id,
        applicant_id=applicant_id,
        employer_id=employer_id,
        status="pending",
        cover_letter=cover_letter,
        applied_at=datetime.now(timezone.utc),
    )
    db.add(application)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Application for job=%s applicant=%s created concurrently; reusing it", job_id, applicant_id)
        existing = get_existing(db, job_id, applicant_id)
        if existing is None:
            raise
        return existing, False
    db.refresh(application)
    return application, True
