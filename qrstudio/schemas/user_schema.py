def serialize_user(user) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "qr_count": user.qr_count,
        "ai_suggestions_used": user.ai_suggestions_used,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }
