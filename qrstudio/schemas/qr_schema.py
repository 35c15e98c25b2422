def _iso(value):
    return value.isoformat() if value else None


def serialize_qr_code(qr) -> dict:
    return {
        "id": qr.id,
        "user_id": qr.user_id,
        "name": qr.name,
        "url": qr.url,
        "is_dynamic": qr.is_dynamic,
        "settings": qr.settings or {},
        "created_at": _iso(qr.created_at),
        "updated_at": _iso(qr.updated_at),
        "deleted_at": _iso(qr.deleted_at),
    }
