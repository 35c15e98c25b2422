from ..extensions import db
from ..models.qr_code import QRCode
from ..utils import clock


def get_owned(qr_id: str, user_id: str) -> QRCode | None:
    """Active (non-deleted) QR code owned by ``user_id``."""
    return QRCode.query.filter(
        QRCode.id == qr_id,
        QRCode.user_id == user_id,
        QRCode.deleted_at.is_(None),
    ).first()


def count_active(user_id: str) -> int:
    return QRCode.query.filter(
        QRCode.user_id == user_id,
        QRCode.deleted_at.is_(None),
    ).count()


def list_for_user(user_id: str, include_deleted: bool = False) -> list[QRCode]:
    q = QRCode.query.filter(QRCode.user_id == user_id)
    if not include_deleted:
        q = q.filter(QRCode.deleted_at.is_(None))
    return q.order_by(QRCode.created_at.desc()).all()


def insert(user_id: str, name: str, url: str, settings: dict, is_dynamic: bool) -> QRCode:
    qr = QRCode(user_id=user_id, name=name, url=url, settings=settings, is_dynamic=is_dynamic)
    db.session.add(qr)
    db.session.commit()
    return qr


def save(qr: QRCode) -> QRCode:
    qr.updated_at = clock.utcnow()
    db.session.commit()
    return qr


def soft_delete(qr: QRCode) -> None:
    now = clock.utcnow()
    qr.deleted_at = now
    qr.updated_at = now
    db.session.commit()


def hard_delete(qr_id: str) -> None:
    """Only used to undo a half-created dynamic QR code."""
    QRCode.query.filter_by(id=qr_id).delete()
    db.session.commit()
