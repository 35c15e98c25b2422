import datetime
import json
import secrets

import redis
from flask import current_app

from .. import extensions
from ..errors import Expired, NotFound
from ..models.dynamic_qr_code import DynamicQRCode
from ..repositories import dynamic_qr_repository
from ..utils import clock

CACHE_PREFIX = "dynamic:"


def generate_unique_id() -> str:
    return secrets.token_hex(16)


def build_scan_url(unique_id: str) -> str:
    domain = current_app.config["APP_DOMAIN"]
    host = domain.split(":", 1)[0]
    scheme = "http" if host in ("localhost", "127.0.0.1") else "https"
    return f"{scheme}://{domain}/dynamic/scan/{unique_id}"


# ---------------------------------------------------------------------------
# Scan cache (optional, Redis)
# ---------------------------------------------------------------------------

def _cache_get(unique_id: str):
    if not extensions.redis_client:
        return None
    try:
        cached = extensions.redis_client.get(CACHE_PREFIX + unique_id)
    except redis.RedisError as e:
        current_app.logger.warning(f"Scan cache read failed: {e}")
        return None
    if not cached:
        return None
    try:
        payload = json.loads(cached)
        return payload["destination_url"], datetime.datetime.fromisoformat(payload["expires_at"])
    except (ValueError, KeyError, TypeError):
        current_app.logger.warning(f"Discarding malformed scan cache entry for {unique_id}")
        return None


def _cache_set(dyn: DynamicQRCode, now: datetime.datetime):
    if not extensions.redis_client:
        return
    remaining = int((dyn.expires_at - now).total_seconds())
    ttl = min(int(current_app.config.get("REDIS_TTL", 3600)), remaining)
    if ttl <= 0:
        return
    try:
        extensions.redis_client.setex(
            CACHE_PREFIX + dyn.unique_id,
            ttl,
            json.dumps({"destination_url": dyn.destination_url, "expires_at": dyn.expires_at.isoformat()}),
        )
    except redis.RedisError as e:
        current_app.logger.warning(f"Scan cache write failed: {e}")


def invalidate(unique_id: str):
    if not extensions.redis_client:
        return
    try:
        extensions.redis_client.delete(CACHE_PREFIX + unique_id)
    except redis.RedisError as e:
        current_app.logger.warning(f"Scan cache invalidation failed: {e}")


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def resolve(unique_id: str) -> str:
    """Public lookup: destination URL, or NotFound / Expired."""
    if not unique_id:
        raise NotFound("QR code not found")

    now = clock.utcnow()

    cached = _cache_get(unique_id)
    if cached:
        destination_url, expires_at = cached
        if now >= expires_at:
            raise Expired("QR code has expired")
        return destination_url

    dyn = dynamic_qr_repository.get_by_unique_id(unique_id)
    if dyn is None:
        raise NotFound("QR code not found")
    if dyn.is_expired(now):
        raise Expired("QR code has expired")

    _cache_set(dyn, now)
    return dyn.destination_url


def _owned_live(qr_id: str, user) -> DynamicQRCode | None:
    dyn = dynamic_qr_repository.get_for_qr(qr_id, user.id)
    if dyn is None or dyn.is_expired(clock.utcnow()):
        return None
    return dyn


def get_destination(qr_id: str, user) -> str | None:
    dyn = _owned_live(qr_id, user)
    return dyn.destination_url if dyn else None


def get_scan_url(qr_id: str, user) -> str | None:
    dyn = _owned_live(qr_id, user)
    return build_scan_url(dyn.unique_id) if dyn else None
