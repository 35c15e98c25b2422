from urllib.parse import urlparse

from flask import current_app

from ..errors import InvalidInput

MAX_URL_LENGTH = 2048
MAX_NAME_LENGTH = 255
ALLOWED_SCHEMES = ("http", "https")


def is_unsafe_url(url: str) -> tuple[bool, str | None]:
    """
    Checks a destination host against the configured BLOCKED_DOMAINS list.

    Returns:
        tuple[bool, str | None]: (is_unsafe, reason)
    """
    if not url:
        return False, None

    blocked = current_app.config.get("BLOCKED_DOMAINS") or []
    domain = (urlparse(url).hostname or "").lower()

    for bad_domain in blocked:
        if domain == bad_domain or domain.endswith("." + bad_domain):
            return True, f"Domain '{domain}' is blocked."

    return False, None


def validate_destination_url(url) -> str:
    if not isinstance(url, str) or not url.strip():
        raise InvalidInput("URL is required")

    url = url.strip()
    if len(url) > MAX_URL_LENGTH:
        raise InvalidInput("URL is too long. Please use a shorter URL.")

    parsed = urlparse(url)
    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.hostname:
        raise InvalidInput("Invalid URL format")

    unsafe, reason = is_unsafe_url(url)
    if unsafe:
        raise InvalidInput(reason)

    return url


def validate_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("Name cannot be empty")
    name = name.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidInput(f"Name must be at most {MAX_NAME_LENGTH} characters")
    return name


def sanitize_branding_url(url) -> str:
    """Reduce to scheme://host/path so query strings never reach the model."""
    if not url or not isinstance(url, str):
        raise InvalidInput("Invalid URL provided")

    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
    except ValueError:
        raise InvalidInput("Invalid URL format")

    if not parsed.scheme or not hostname:
        raise InvalidInput("Invalid URL format")

    if ":" in hostname:
        hostname = f"[{hostname}]"
    sanitized = f"{parsed.scheme.lower()}://{hostname}{parsed.path or '/'}"

    if len(sanitized) > MAX_URL_LENGTH:
        raise InvalidInput("URL is too long. Please use a shorter URL.")

    return sanitized
