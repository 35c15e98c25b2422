import io

from flask import Blueprint, request, send_file

from ..routes.auth_routes import token_required
from ..schemas.qr_schema import serialize_qr_code
from ..services import qr_service
from ..utils import plan_checker
from ..utils.qr_generator import render_qr_png
from ..utils.response import api_response

qr_bp = Blueprint("qr", __name__)


@qr_bp.route("/qr-codes", methods=["POST"])
@token_required
def save_qr_code(current_user):
    data = request.get_json(silent=True) or {}

    qr_id = qr_service.save_qr_code(
        current_user,
        data.get("name"),
        data.get("url"),
        data.get("settings"),
        qr_id=data.get("qrId"),
    )
    message = "QR code updated successfully." if data.get("qrId") else "QR code saved successfully."
    return api_response(True, message, {"id": qr_id})


@qr_bp.route("/qr-codes", methods=["GET"])
@token_required
def list_qr_codes(current_user):
    include_deleted = request.args.get("include_deleted", "").lower() in ("1", "true", "yes")
    codes = qr_service.list_qr_codes(current_user, include_deleted=include_deleted)
    return api_response(True, "QR codes fetched", {
        "qr_codes": [serialize_qr_code(qr) for qr in codes]
    })


@qr_bp.route("/qr-codes/limit", methods=["GET"])
@token_required
def check_qr_limit(current_user):
    return api_response(True, "QR limit fetched", plan_checker.check_qr_limit(current_user))


@qr_bp.route("/qr-codes/<qr_id>", methods=["PATCH"])
@token_required
def rename_qr_code(current_user, qr_id):
    data = request.get_json(silent=True) or {}
    qr = qr_service.rename_qr_code(current_user, qr_id, data.get("name"))
    return api_response(True, "QR code renamed successfully.", serialize_qr_code(qr))


@qr_bp.route("/qr-codes/<qr_id>", methods=["DELETE"])
@token_required
def delete_qr_code(current_user, qr_id):
    qr_service.delete_qr_code(current_user, qr_id)
    return api_response(True, "QR code deleted successfully.", None)


@qr_bp.route("/qr-codes/<qr_id>/image", methods=["GET"])
@token_required
def download_qr_image(current_user, qr_id):
    qr = qr_service.get_owned_qr_code(current_user, qr_id)
    png = render_qr_png(qr.url, qr.settings)
    return send_file(
        io.BytesIO(png),
        mimetype="image/png",
        as_attachment=request.args.get("download") == "1",
        download_name=f"qr_{qr.id}.png",
    )
