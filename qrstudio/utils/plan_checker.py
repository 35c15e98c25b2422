# utils/plan_checker.py
from ..errors import QuotaExceeded
from ..repositories import qr_repository, dynamic_qr_repository
from ..utils import clock
from .plan_limits import limits_for


def check_qr_limit(user) -> dict:
    """Active-row quota. Soft-deleted codes free their slot."""
    limit = limits_for(user)["qrs"]
    count = qr_repository.count_active(user.id)
    return {"canCreate": count < limit, "count": count, "limit": limit}


def check_dynamic_quota(user) -> dict:
    limit = limits_for(user)["dynamic_qrs"]
    count = dynamic_qr_repository.count_active(user.id, clock.utcnow())
    return {"canCreate": count < limit, "count": count, "limit": limit}


def ai_suggestions_remaining(user) -> int:
    limit = limits_for(user)["ai_suggestions"]
    return max(0, limit - (user.ai_suggestions_used or 0))


def require_qr_slot(user):
    quota = check_qr_limit(user)
    if not quota["canCreate"]:
        limit = quota["limit"]
        raise QuotaExceeded(
            f"QR code limit reached ({limit}/{limit}). Please delete an existing QR code to create a new one.",
            limit,
        )


def require_dynamic_slot(user):
    quota = check_dynamic_quota(user)
    if not quota["canCreate"]:
        limit = quota["limit"]
        raise QuotaExceeded(
            f"Dynamic QR code limit reached ({limit}/{limit}). "
            "Delete your active dynamic QR code or wait for it to expire.",
            limit,
        )


def require_ai_suggestion(user):
    limit = limits_for(user)["ai_suggestions"]
    if (user.ai_suggestions_used or 0) >= limit:
        raise QuotaExceeded(ai_limit_message(limit), limit)


def ai_limit_message(limit: int) -> str:
    return f"AI suggestions limit reached ({limit}/{limit}). You have used all your AI suggestions."
