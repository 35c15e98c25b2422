import datetime
import jwt
from flask import current_app

_jwks_clients = {}


def encode_token(external_id: str, days: int = 7) -> str:
    payload = {
        "sub": external_id,
        "exp": datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(days=days),
    }
    token = jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm="HS256")
    return token


def decode_token(token: str) -> dict:
    """Validate a session token.

    With CLERK_JWKS_URL configured the token is an RS256 session token from the
    identity provider; otherwise it is an HS256 token signed with SECRET_KEY.
    """
    jwks_url = current_app.config.get("CLERK_JWKS_URL")
    if jwks_url:
        client = _jwks_clients.get(jwks_url)
        if client is None:
            client = _jwks_clients[jwks_url] = jwt.PyJWKClient(jwks_url)
        signing_key = client.get_signing_key_from_jwt(token)
        return jwt.decode(token, signing_key.key, algorithms=["RS256"])

    payload = jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=["HS256"])
    return payload
