from datetime import datetime

from pydantic import BaseModel, Field


class ConnectionRequestCreate(BaseModel):
    receiver_id: str = Field(min_length=1)
    # Length is enforced by the service so the limit stays configurable.
    message: str | None = None


class ConnectionResult(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    status: str
    message: str | None = None
    created_at: datetime | None = None
    responded_at: datetime | None = None

    class Config:
        from_attributes = True


class ConnectionEnvelope(BaseModel):
    message: str
    connection: ConnectionResult


class ConnectionStatusResult(BaseModel):
    status: str  # none | pending | accepted | rejected
    is_sender: bool | None = None
    connection_id: str | None = None
    can_send_request: bool


class ConnectedUser(BaseModel):
    connection_id: str
    user_id: str
    full_name: str
    email: str
    role: str
    connected_at: datetime | None = None
    status: str


class ConnectionList(BaseModel):
    connections: list[ConnectedUser]
    page: int
    total: int


class JobSeekerWithStatus(BaseModel):
    user_id: str
    full_name: str
    email: str
    connection_status: str
    connection_id: str | None = None
    is_sender: bool = False


class JobSeekerList(BaseModel):
    job_seekers: list[JobSeekerWithStatus]
    page: int
    total: int
