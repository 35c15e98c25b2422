from flask import jsonify


def api_response(success: bool, message: str, data=None, status: int = 200):
    # Unified envelope; status stays 200 for expected outcomes
    return jsonify({
        "success": success,
        "message": message,
        "data": data
    }), status
