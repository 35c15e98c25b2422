from functools import wraps

import jwt
from flask import Blueprint, current_app, request

from ..errors import NotAuthenticated
from ..schemas.user_schema import serialize_user
from ..services import user_service
from ..utils.jwt_helper import decode_token
from ..utils.response import api_response

auth_bp = Blueprint("auth", __name__)

LOGIN_REQUIRED_MESSAGE = "Please log in to continue"


def _bearer_token():
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        return None
    if " " in auth_header:
        return auth_header.split(" ", 1)[1].strip()
    return auth_header


def token_required(f):
    """Resolve the caller to a local user (creating or restoring it) and pass it in."""

    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()
        if not token:
            raise NotAuthenticated(LOGIN_REQUIRED_MESSAGE)

        try:
            payload = decode_token(token)
        except jwt.PyJWTError as e:
            current_app.logger.info(f"Rejected session token: {e}")
            raise NotAuthenticated("Invalid or expired session. Please log in again.")

        external_id = payload.get("sub")
        if not external_id:
            raise NotAuthenticated(LOGIN_REQUIRED_MESSAGE)

        current_user = user_service.ensure_user(external_id)
        return f(current_user, *args, **kwargs)

    return decorated


@auth_bp.route("/user", methods=["GET"])
@token_required
def get_user_data(current_user):
    data = user_service.get_user_data(current_user)
    data["user"] = serialize_user(current_user)
    return api_response(True, "User data fetched", data)
