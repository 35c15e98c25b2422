import requests
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import AccountCreationError
from ..extensions import db
from ..models.user import User
from ..repositories import user_repository
from ..utils.plan_checker import ai_suggestions_remaining


def _pick_primary_email(data: dict) -> str:
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for entry in addresses:
        if entry.get("id") == primary_id and entry.get("email_address"):
            return entry["email_address"]
    if addresses:
        return addresses[0].get("email_address") or ""
    return ""


def fetch_primary_email(external_id: str) -> str:
    """Best-effort lookup against the identity provider; "" when unavailable."""
    secret = current_app.config.get("CLERK_SECRET_KEY")
    if not secret:
        return ""

    api_url = current_app.config.get("CLERK_API_URL", "https://api.clerk.com/v1").rstrip("/")
    try:
        resp = requests.get(
            f"{api_url}/users/{external_id}",
            headers={"Authorization": f"Bearer {secret}"},
            timeout=5,
        )
        if resp.status_code != 200:
            current_app.logger.warning(f"Email lookup for {external_id} returned {resp.status_code}")
            return ""
        return _pick_primary_email(resp.json())
    except (requests.RequestException, ValueError) as e:
        current_app.logger.warning(f"Email lookup for {external_id} failed: {e}")
        return ""


def ensure_user(external_id: str) -> User:
    """Find or create the local user for an authenticated principal.

    A soft-deleted row is restored rather than duplicated.
    """
    user = user_repository.find_by_external_id(external_id)

    if user is not None:
        if user.is_deleted:
            user_repository.restore_user(user)
            current_app.logger.info(f"Restored soft-deleted user {external_id}")
        return user

    email = fetch_primary_email(external_id)
    try:
        user = user_repository.create_user(external_id, email)
    except IntegrityError as e:
        # A concurrent first request inserted the row first
        db.session.rollback()
        user = user_repository.find_by_external_id(external_id)
        if user is None:
            current_app.logger.error(f"Account creation failed for {external_id}: {e}")
            raise AccountCreationError("Account creation failed. Please try again later.")
        return user
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Account creation failed for {external_id}: {e}")
        raise AccountCreationError("Account creation failed. Please try again later.")

    current_app.logger.info(f"Created user {external_id}")
    return user


def get_user_data(user: User) -> dict:
    return {
        "qr_count": user.qr_count,
        "ai_suggestions_used": user.ai_suggestions_used,
        "ai_suggestions_remaining": ai_suggestions_remaining(user),
    }


def sync_user_from_provider(data: dict) -> User:
    """Upsert path used by the identity-provider webhook."""
    external_id = data.get("id")
    email = _pick_primary_email(data)

    user = user_repository.find_by_external_id(external_id)
    if user is not None:
        return user_repository.update_email(user, email)
    return user_repository.create_user(external_id, email)


def deactivate_user(external_id: str) -> User | None:
    user = user_repository.find_by_external_id(external_id)
    if user is None or user.is_deleted:
        return user
    return user_repository.soft_delete_user(user)
