from flask import Blueprint, current_app, jsonify, redirect

from ..errors import Expired, NotFound
from ..routes.auth_routes import token_required
from ..services import dynamic_service
from ..utils import plan_checker
from ..utils.response import api_response

dynamic_bp = Blueprint("dynamic", __name__)
scan_bp = Blueprint("scan", __name__)


@dynamic_bp.route("/dynamic/quota", methods=["GET"])
@token_required
def dynamic_quota(current_user):
    return api_response(True, "Dynamic QR quota fetched", plan_checker.check_dynamic_quota(current_user))


@dynamic_bp.route("/dynamic/<qr_id>/destination", methods=["GET"])
@token_required
def dynamic_destination(current_user, qr_id):
    destination = dynamic_service.get_destination(qr_id, current_user)
    return api_response(True, "Destination fetched", {"destination_url": destination})


@dynamic_bp.route("/dynamic/<qr_id>/scan-url", methods=["GET"])
@token_required
def dynamic_scan_url(current_user, qr_id):
    scan_url = dynamic_service.get_scan_url(qr_id, current_user)
    return api_response(True, "Scan URL fetched", {"scan_url": scan_url})


@dynamic_bp.route("/dynamic/scan/<unique_id>", methods=["GET"])
def resolve_scan(unique_id):
    """Public, unauthenticated lookup used by scanners."""
    try:
        destination = dynamic_service.resolve(unique_id)
    except NotFound:
        return jsonify({"error": "QR code not found or expired"}), 404
    except Expired:
        return jsonify({"error": "QR code has expired"}), 410

    return jsonify({"destination_url": destination}), 200


@scan_bp.route("/dynamic/scan/<unique_id>")
def scan_redirect(unique_id):
    # This is the URL printed inside dynamic QR codes
    try:
        destination = dynamic_service.resolve(unique_id)
    except (NotFound, Expired) as e:
        current_app.logger.info(f"Scan of {unique_id} sent home: {e}")
        return redirect(current_app.config["BASE_URL"] + "/", code=302)

    return redirect(destination, code=302)
