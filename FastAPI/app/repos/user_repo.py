from sqlalchemy.orm import Session

from app.models.user import User, ROLE_JOB_SEEKER, normalize_role
from app.core.security import hash_password, generate_id


def get_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


def get_by_id(db: Session, user_id: str) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_many(db: Session, user_ids: list[str]) -> dict[str, User]:
    if not user_ids:
        return {}
    users = db.query(User).filter(User.id.in_(set(user_ids))).all()
    return {u.id: u for u in users}


def get_role(db: Session, user_id: str) -> str | None:
    """Identity lookup: resolve an opaque user id to employer/jobSeeker."""
    user = get_by_id(db, user_id)
    if not user:
        return None
    return normalize_role(user.role)


def create(
    db: Session,
    email: str,
    password: str,
    full_name: str = "",
    role: str = ROLE_JOB_SEEKER,
) -> User:
    user = User(
        id=generate_id(),
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        role=normalize_role(role),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def list_job_seekers(
    db: Session,
    exclude_user_id: str,
    search: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[User], int]:
    """Job seekers (incl. legacy "employee" accounts) newest first. Returns (items, total)."""
    q = (
        db.query(User)
        .filter(User.role.in_([ROLE_JOB_SEEKER, "employee"]), User.id != exclude_user_id)
        .order_by(User.created_at.desc())
    )
    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.filter((User.full_name.ilike(term)) | (User.email.ilike(term)))
    total = q.count()
    items = q.offset(offset).limit(limit).all()
    return items, total
