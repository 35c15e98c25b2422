from flask import Blueprint, request

from ..routes.auth_routes import token_required
from ..services import branding_service
from ..utils.response import api_response

branding_bp = Blueprint("branding", __name__)


@branding_bp.route("/branding/insights", methods=["POST"])
@token_required
def branding_insights(current_user):
    data = request.get_json(silent=True) or {}
    suggestion = branding_service.get_branding_insights(current_user, data.get("url"))
    return api_response(True, "Branding suggestion generated", suggestion)


@branding_bp.route("/branding/logo", methods=["POST"])
@token_required
def fetch_logo(current_user):
    data = request.get_json(silent=True) or {}
    logo = branding_service.fetch_logo(data.get("url"))
    if logo is None:
        return api_response(False, "Could not fetch logo", {"logo": None})
    return api_response(True, "Logo fetched", {"logo": logo})
