from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base

ROLE_EMPLOYER = "employer"
ROLE_JOB_SEEKER = "jobSeeker"
# Older accounts were created with "employee"; it means the same as jobSeeker.
LEGACY_ROLE_ALIASES = {"employee": ROLE_JOB_SEEKER}
ROLES = (ROLE_EMPLOYER, ROLE_JOB_SEEKER)


def normalize_role(role: str | None) -> str:
    role = LEGACY_ROLE_ALIASES.get(role or "", role)
    return role if role in ROLES else ROLE_JOB_SEEKER


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=False, default="")
    role = Column(String, nullable=False, default=ROLE_JOB_SEEKER, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    jobs = relationship("Job", back_populates="employer")

    @property
    def normalized_role(self) -> str:
        return normalize_role(self.role)
