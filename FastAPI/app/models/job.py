from dataclasses import dataclass

from sqlalchemy import Column, String, Boolean, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base

JOB_STATUSES = ("draft", "published", "closed", "filled", "archived")
JOB_STATUS_CLOSED = "closed"


class Job(Base):
    """Job posting owned by an employer. Only status/is_active gate messaging."""

    __tablename__ = "jobs"

    id = Column(String, primary_key=True, index=True)
    employer_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    business_name = Column(String)
    status = Column(String, default="published", index=True)  # draft | published | closed | filled | archived
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employer = relationship("User", back_populates="jobs")
    applications = relationship(
        "Application",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


@dataclass(frozen=True)
class JobState:
    """What gating needs to know about a job."""

    status: str | None
    is_active: bool = True

    @property
    def is_closed(self) -> bool:
        return self.status == JOB_STATUS_CLOSED or not self.is_active
