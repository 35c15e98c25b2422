import datetime

from ..extensions import db
from ..models.dynamic_qr_code import DynamicQRCode
from ..utils import clock


def get_for_qr(qr_code_id: str, user_id: str | None = None) -> DynamicQRCode | None:
    q = DynamicQRCode.query.filter(
        DynamicQRCode.qr_code_id == qr_code_id,
        DynamicQRCode.deleted_at.is_(None),
    )
    if user_id is not None:
        q = q.filter(DynamicQRCode.user_id == user_id)
    return q.first()


def get_by_unique_id(unique_id: str) -> DynamicQRCode | None:
    return DynamicQRCode.query.filter(
        DynamicQRCode.unique_id == unique_id,
        DynamicQRCode.deleted_at.is_(None),
    ).first()


def count_active(user_id: str, now: datetime.datetime) -> int:
    return DynamicQRCode.query.filter(
        DynamicQRCode.user_id == user_id,
        DynamicQRCode.deleted_at.is_(None),
        DynamicQRCode.expires_at > now,
    ).count()


def insert(qr_code_id: str, user_id: str, unique_id: str, destination_url: str,
           expires_at: datetime.datetime) -> DynamicQRCode:
    dyn = DynamicQRCode(
        qr_code_id=qr_code_id,
        user_id=user_id,
        unique_id=unique_id,
        destination_url=destination_url,
        expires_at=expires_at,
    )
    db.session.add(dyn)
    db.session.commit()
    return dyn


def update_destination(dyn: DynamicQRCode, destination_url: str) -> DynamicQRCode:
    dyn.destination_url = destination_url
    dyn.updated_at = clock.utcnow()
    db.session.commit()
    return dyn


def soft_delete_for_qr(qr_code_id: str) -> DynamicQRCode | None:
    dyn = get_for_qr(qr_code_id)
    if dyn is None:
        return None
    now = clock.utcnow()
    dyn.deleted_at = now
    dyn.updated_at = now
    db.session.commit()
    return dyn
