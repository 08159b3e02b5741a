from sqlalchemy.orm import Session

from app.core.security import generate_id
from app.models.job import Job, JobState


def get_by_id(db: Session, job_id: str) -> Job | None:
    return db.query(Job).filter(Job.id == job_id).first()


def get_job_state(db: Session, job_id: str | None) -> JobState | None:
    """Job status provider: (status, is_active) for gating, None if the job is gone."""
    if job_id is None:
        return None
    job = get_by_id(db, job_id)
    if not job:
        return None
    return JobState(status=job.status, is_active=bool(job.is_active))


def get_titles(db: Session, job_ids: list[str]) -> dict[str, str]:
    ids = {j for j in job_ids if j}
    if not ids:
        return {}
    rows = db.query(Job.id, Job.title).filter(Job.id.in_(ids)).all()
    return {job_id: title for job_id, title in rows}


def create(
    db: Session,
    employer_id: str,
    title: str,
    business_name: str | None = None,
    status: str = "published",
) -> Job:
    job = Job(
        id=generate_id(),
        employer_id=employer_id,
        title=title,
        business_name=business_name,
        status=status,
        is_active=True,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def update_status(
    db: Session,
    job_id: str,
    employer_id: str,
    *,
    status: str | None = None,
    is_active: bool | None = None,
) -> Job | None:
    job = db.query(Job).filter(Job.id == job_id, Job.employer_id == employer_id).first()
    if not job:
        return None
    if status is not None:
        job.status = status
    if is_active is not None:
        job.is_active = is_active
    db.commit()
    db.refresh(job)
    return job
