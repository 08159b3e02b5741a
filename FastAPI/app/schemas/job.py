from pydantic import BaseModel, Field, field_validator

from app.models.job import JOB_STATUSES


class JobCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    business_name: str | None = Field(default=None, max_length=200)


class JobStatusUpdate(BaseModel):
    status: str | None = None
    is_active: bool | None = None

    @field_validator("status")
    @classmethod
    def status_known(cls, v: str | None) -> str | None:
        if v is not None and v not in JOB_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(JOB_STATUSES)}")
        return v


class JobResult(BaseModel):
    id: str
    employer_id: str
    title: str
    business_name: str | None = None
    status: str
    is_active: bool

    class Config:
        from_attributes = True
