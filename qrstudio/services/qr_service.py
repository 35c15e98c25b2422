import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ImmutableField, InvalidInput, NotFound, UpstreamError
from ..extensions import db
from ..models.qr_code import QRCode
from ..models.user import User
from ..repositories import dynamic_qr_repository, qr_repository, user_repository
from ..utils import clock, plan_checker
from ..utils.plan_limits import limits_for
from ..utils.security import validate_destination_url, validate_name
from . import dynamic_service

NOT_FOUND_MESSAGE = "QR code not found or access denied"


def _settings_with(settings: dict, url: str, is_dynamic: bool) -> dict:
    # The row columns are authoritative; the document only echoes them
    merged = dict(settings)
    merged["url"] = url
    merged["isDynamic"] = is_dynamic
    return merged


def save_qr_code(user: User, name, url, settings, qr_id=None) -> str:
    if settings is None:
        settings = {}
    if not isinstance(settings, dict):
        raise InvalidInput("Settings must be an object")

    name = validate_name(name)
    url = validate_destination_url(url)
    is_dynamic = settings.get("isDynamic", False)
    if not isinstance(is_dynamic, bool):
        raise InvalidInput("isDynamic must be true or false")

    if qr_id:
        return _update(user, qr_id, name, url, settings, is_dynamic)

    if is_dynamic:
        plan_checker.require_dynamic_slot(user)
    plan_checker.require_qr_slot(user)

    if is_dynamic:
        qr_id = _create_dynamic(user, name, url, settings)
    else:
        qr_id = _create_static(user, name, url, settings)

    _bump_qr_count(user)
    return qr_id


def _create_static(user: User, name: str, url: str, settings: dict) -> str:
    try:
        qr = qr_repository.insert(user.id, name, url, _settings_with(settings, url, False), False)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating QR code: {e}")
        raise UpstreamError("Failed to save QR code")

    current_app.logger.info(f"Created static QR code {qr.id} for user {user.id}")
    return qr.id


def _create_dynamic(user: User, name: str, destination_url: str, settings: dict) -> str:
    unique_id = dynamic_service.generate_unique_id()
    scan_url = dynamic_service.build_scan_url(unique_id)

    try:
        qr = qr_repository.insert(user.id, name, scan_url, _settings_with(settings, scan_url, True), True)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating QR code: {e}")
        raise UpstreamError("Failed to save QR code")

    qr_id = qr.id
    ttl_days = limits_for(user)["dynamic_ttl_days"]
    expires_at = clock.utcnow() + datetime.timedelta(days=ttl_days)
    try:
        dynamic_qr_repository.insert(qr_id, user.id, unique_id, destination_url, expires_at)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Dynamic companion insert failed for QR {qr_id}, rolling back: {e}")
        qr_repository.hard_delete(qr_id)
        raise UpstreamError("Failed to create dynamic QR code")

    current_app.logger.info(f"Created dynamic QR code {qr_id} ({unique_id}) for user {user.id}")
    return qr_id


def _bump_qr_count(user: User):
    # Best effort: the QR record already exists even if the counter update fails
    try:
        user_repository.increment_qr_count(user.id)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.warning(f"Failed to increment qr_count for user {user.id}: {e}")


def _update(user: User, qr_id: str, name: str, url: str, settings: dict, is_dynamic: bool) -> str:
    qr = qr_repository.get_owned(qr_id, user.id)
    if qr is None:
        raise NotFound(NOT_FOUND_MESSAGE)

    if qr.is_dynamic != is_dynamic:
        raise ImmutableField("QR code type cannot be changed after creation.")

    if not qr.is_dynamic and url != qr.url:
        raise ImmutableField("QR code content cannot be changed for non-dynamic QR codes.")

    final_url = qr.url
    if qr.is_dynamic:
        dyn = dynamic_qr_repository.get_for_qr(qr.id, user.id)
        if dyn is None:
            current_app.logger.warning(f"Dynamic QR {qr.id} has no companion record; destination not updated")
        else:
            dynamic_qr_repository.update_destination(dyn, url)
            dynamic_service.invalidate(dyn.unique_id)

    qr.name = name
    qr.url = final_url
    qr.settings = _settings_with({**(qr.settings or {}), **settings}, final_url, qr.is_dynamic)
    qr_repository.save(qr)
    return qr.id


def delete_qr_code(user: User, qr_id: str):
    qr = qr_repository.get_owned(qr_id, user.id)
    if qr is None:
        raise NotFound(NOT_FOUND_MESSAGE)

    qr_repository.soft_delete(qr)

    if qr.is_dynamic:
        dyn = dynamic_qr_repository.soft_delete_for_qr(qr.id)
        if dyn is not None:
            dynamic_service.invalidate(dyn.unique_id)

    current_app.logger.info(f"Soft-deleted QR code {qr.id} for user {user.id}")


def rename_qr_code(user: User, qr_id: str, name) -> QRCode:
    name = validate_name(name)
    qr = qr_repository.get_owned(qr_id, user.id)
    if qr is None:
        raise NotFound(NOT_FOUND_MESSAGE)

    qr.name = name
    return qr_repository.save(qr)


def get_owned_qr_code(user: User, qr_id: str) -> QRCode:
    qr = qr_repository.get_owned(qr_id, user.id)
    if qr is None:
        raise NotFound(NOT_FOUND_MESSAGE)
    return qr


def list_qr_codes(user: User, include_deleted: bool = False) -> list[QRCode]:
    return qr_repository.list_for_user(user.id, include_deleted=include_deleted)
