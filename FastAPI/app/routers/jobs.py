import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_employer, get_current_user
from app.models.user import User
from app.repos import job_repo
from app.schemas.job import JobCreate, JobResult, JobStatusUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("", response_model=JobResult, status_code=status.HTTP_201_CREATED)
def create_job(
    data: JobCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_employer),
):
    try:
        job = job_repo.create(db, user.id, data.title.strip(), business_name=data.business_name)
        logger.info("Job %s created by employer %s", job.id, user.id)
        return job
    except Exception as e:
        logger.exception("Create job failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create job") from e


@router.get("/{job_id}", response_model=JobResult)
def get_job(
    job_id: str,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    job = job_repo.get_by_id(db, job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return job


@router.patch("/{job_id}/status", response_model=JobResult)
def update_job_status(
    job_id: str,
    data: JobStatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_employer),
):
    """Close, archive or deactivate a job. Closing a job stops messaging in its chats."""
    if data.status is None and data.is_active is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update")
    job = job_repo.update_status(db, job_id, user.id, status=data.status, is_active=data.is_active)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    logger.info("Job %s status=%s is_active=%s set by %s", job.id, job.status, job.is_active, user.id)
    return job
