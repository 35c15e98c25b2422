# utils/plan_limits.py
PLAN_LIMITS = {
    "free": {
        "qrs": 4,               # active (non-deleted) QR codes
        "ai_suggestions": 2,    # lifetime AI branding calls
        "dynamic_qrs": 1,       # active, non-expired dynamic QR codes
        "dynamic_ttl_days": 15  # fixed at creation, not renewed by edits
    },
}


def limits_for(user=None):
    plan = getattr(user, "plan", "free")
    return PLAN_LIMITS.get(plan, PLAN_LIMITS["free"])
