from sqlalchemy import Column, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func

from app.database import Base

CONNECTION_PENDING = "pending"
CONNECTION_ACCEPTED = "accepted"
CONNECTION_REJECTED = "rejected"


def compute_pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for a pair of users (A->B and B->A share it)."""
    first, second = sorted((str(user_a), str(user_b)))
    return f"{first}|{second}"


class ConnectionRequest(Base):
    """Directed connection request; at most one row per unordered user pair."""

    __tablename__ = "connections"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','accepted','rejected')",
            name="connections_status_check",
        ),
    )

    id = Column(String, primary_key=True, index=True)
    sender_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    pair_key = Column(String, unique=True, nullable=False, index=True)
    status = Column(String, nullable=False, default=CONNECTION_PENDING, index=True)
    message = Column(String(300))
    responded_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def other_party(self, user_id: str) -> str:
        return self.sender_id if self.receiver_id == user_id else self.receiver_id
