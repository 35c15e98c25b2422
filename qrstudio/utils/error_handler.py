from flask import current_app

from ..errors import ServiceError, UpstreamError
from .response import api_response


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def service_error(e):
        if isinstance(e, UpstreamError):
            current_app.logger.error(f"Upstream failure: {e}")
        return api_response(False, e.message, None)

    @app.errorhandler(400)
    def bad_request(e):
        return api_response(False, "Bad Request", None, 400)

    @app.errorhandler(401)
    def unauthorized(e):
        return api_response(False, "Unauthorized", None, 401)

    @app.errorhandler(404)
    def not_found(e):
        return api_response(False, "Not Found", None, 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_response(False, "Method Not Allowed", None, 405)

    @app.errorhandler(500)
    def server_error(e):
        return api_response(False, "Server Error", None, 500)
