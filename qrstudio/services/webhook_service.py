import base64
import hashlib
import hmac
import json
import time

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.webhook_events import WebhookEvent
from ..utils import clock
from . import user_service

TIMESTAMP_TOLERANCE_SECONDS = 5 * 60


def _secret_bytes(secret: str) -> bytes:
    if secret.startswith("whsec_"):
        secret = secret[len("whsec_"):]
    return base64.b64decode(secret)


def verify_webhook_signature(payload_body, msg_id, timestamp, signature_header, secret, now=None):
    """
    Verify a Svix-signed identity-provider webhook.

    Args:
        payload_body: Raw request body as bytes or string
        msg_id: svix-id header value
        timestamp: svix-timestamp header value (unix seconds)
        signature_header: svix-signature header value, space-separated "v1,<sig>" entries
        secret: Signing secret from the provider dashboard ("whsec_...")

    Returns:
        bool: True if one of the signatures matches and the timestamp is fresh
    """
    try:
        if isinstance(payload_body, bytes):
            payload_body = payload_body.decode('utf-8')

        sent_at = int(timestamp)
        now = int(time.time()) if now is None else now
        if abs(now - sent_at) > TIMESTAMP_TOLERANCE_SECONDS:
            current_app.logger.warning(f"Webhook {msg_id} timestamp outside tolerance")
            return False

        signed_content = f"{msg_id}.{timestamp}.{payload_body}".encode('utf-8')
        expected = base64.b64encode(
            hmac.new(_secret_bytes(secret), signed_content, hashlib.sha256).digest()
        ).decode('ascii')

        for entry in signature_header.split():
            version, _, sig = entry.partition(",")
            if version == "v1" and hmac.compare_digest(expected, sig):
                return True
        return False
    except (ValueError, TypeError) as e:
        current_app.logger.warning(f"Signature verification failed: {e}")
        return False


def store_webhook_event(msg_id, event_data, signature):
    """
    Store webhook event in database

    Returns:
        WebhookEvent: New record, the stored record of an earlier delivery that
        failed, or None if this svix-id was already processed
    """
    existing_event = WebhookEvent.query.filter_by(event_id=msg_id).first()
    if existing_event:
        if existing_event.processed:
            current_app.logger.info(f"Webhook event {msg_id} already processed, skipping")
            return None
        current_app.logger.info(f"Retrying webhook event {msg_id}")
        return existing_event

    data = event_data.get('data') or {}
    webhook_event = WebhookEvent(
        event_id=msg_id,
        event_type=event_data.get('type', 'unknown'),
        payload=json.dumps(event_data),
        signature=signature,
        processed=False,
        external_user_id=data.get('id') if isinstance(data, dict) else None,
    )
    db.session.add(webhook_event)
    db.session.commit()
    return webhook_event


def process_webhook_event(msg_id, event_data, signature):
    """
    Route an identity-provider event to its handler.

    Returns:
        tuple: (success, message)
    """
    try:
        webhook_event = store_webhook_event(msg_id, event_data, signature)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to store webhook event {msg_id}: {e}")
        return False, "Failed to store event"

    if webhook_event is None:
        return True, "Duplicate event ignored"

    event_type = webhook_event.event_type
    data = event_data.get('data')
    if not isinstance(data, dict):
        data = {}

    try:
        if event_type in ('user.created', 'user.updated'):
            user_service.sync_user_from_provider(data)
            message = f"User {data.get('id')} synced"
        elif event_type == 'user.deleted':
            user_service.deactivate_user(data.get('id'))
            message = f"User {data.get('id')} deactivated"
        else:
            message = f"Event type {event_type} ignored"

        webhook_event.processed = True
        webhook_event.processed_at = clock.utcnow()
        webhook_event.error_message = None
        db.session.commit()
        current_app.logger.info(f"Webhook {msg_id} processed: {message}")
        return True, message

    except SQLAlchemyError as e:
        db.session.rollback()
        error_msg = f"Failed to process {event_type}: {e}"
        current_app.logger.error(error_msg)
        webhook_event.error_message = error_msg
        db.session.commit()
        return False, "Error syncing user"
