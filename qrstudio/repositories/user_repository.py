from sqlalchemy import update

from ..extensions import db
from ..models.user import User
from ..utils import clock


def find_by_external_id(external_id: str) -> User | None:
    """Includes soft-deleted rows."""
    return User.query.filter_by(external_id=external_id).first()


def create_user(external_id: str, email: str = "") -> User:
    user = User(external_id=external_id, email=email or "", qr_count=0, ai_suggestions_used=0)
    db.session.add(user)
    db.session.commit()
    return user


def restore_user(user: User) -> User:
    user.deleted_at = None
    user.updated_at = clock.utcnow()
    db.session.commit()
    return user


def update_email(user: User, email: str) -> User:
    user.email = email or ""
    user.updated_at = clock.utcnow()
    db.session.commit()
    return user


def soft_delete_user(user: User) -> User:
    now = clock.utcnow()
    user.deleted_at = now
    user.updated_at = now
    db.session.commit()
    return user


def increment_qr_count(user_id: str) -> None:
    db.session.execute(
        update(User)
        .where(User.id == user_id)
        .values(qr_count=User.qr_count + 1, updated_at=clock.utcnow())
    )
    db.session.commit()


def increment_ai_suggestions(user_id: str, limit: int) -> bool:
    """Conditional increment; False when the user was already at ``limit``."""
    result = db.session.execute(
        update(User)
        .where(User.id == user_id, User.ai_suggestions_used < limit)
        .values(ai_suggestions_used=User.ai_suggestions_used + 1, updated_at=clock.utcnow())
    )
    db.session.commit()
    return result.rowcount == 1
