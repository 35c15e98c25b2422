import json

from flask import Blueprint, current_app, jsonify, request

from ..services.webhook_service import process_webhook_event, verify_webhook_signature

webhook_bp = Blueprint('webhook_bp', __name__)


@webhook_bp.route('/webhooks/clerk/user-events', methods=['POST'])
def identity_webhook():
    """
    Identity-provider webhook - NO SESSION AUTHENTICATION
    Requests are authenticated by their Svix signature instead.
    """
    webhook_secret = current_app.config.get('CLERK_WEBHOOK_SECRET')
    if not webhook_secret:
        current_app.logger.error("CLERK_WEBHOOK_SECRET not configured")
        return jsonify({'error': 'Webhook not configured'}), 500

    msg_id = request.headers.get('svix-id')
    timestamp = request.headers.get('svix-timestamp')
    signature = request.headers.get('svix-signature')
    if not msg_id or not timestamp or not signature:
        return jsonify({'error': 'Error occurred -- no svix headers'}), 400

    payload_body = request.get_data()
    if not verify_webhook_signature(payload_body, msg_id, timestamp, signature, webhook_secret):
        current_app.logger.warning(f"Invalid signature on webhook {msg_id}")
        return jsonify({'error': 'Invalid signature'}), 400

    try:
        event_data = json.loads(payload_body)
    except ValueError:
        return jsonify({'error': 'Invalid JSON'}), 400
    if not isinstance(event_data, dict):
        return jsonify({'error': 'Invalid JSON'}), 400

    success, message = process_webhook_event(msg_id, event_data, signature)
    if not success:
        return jsonify({'status': 'error', 'message': message}), 500

    return jsonify({'status': 'success', 'message': message}), 200
