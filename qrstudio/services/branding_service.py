import base64
import json

import requests
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import QuotaExceeded, UpstreamError
from ..extensions import db
from ..models.user import User
from ..repositories import user_repository
from ..utils import plan_checker
from ..utils.plan_limits import limits_for
from ..utils.security import ALLOWED_SCHEMES, sanitize_branding_url

DEFAULT_GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"
LOGO_CHUNK_SIZE = 8192

PROMPT_TEMPLATE = """Analyze the following website URL and suggest color palette for a QR code based on the website's brand colors.

Website URL: {url}

Analyze the website's brand colors and color scheme. Based on this analysis, suggest:
1. Primary color (hex) for QR dots - should match or complement the website's primary brand color
2. Secondary color (hex) for corner squares/eyes - should match or complement the website's secondary/accent color
3. Background color (hex) - if a background color would enhance the design, suggest a hex color that matches the website's color scheme. If transparent background is better, set backgroundColor to null
4. If a gradient background would look better, set bgGradientEnabled to true and provide bgGradientSecondary color
5. Make sure the colors are not too dark or too light, they should be readable and contrast well with the background.

Return only color values in hex format."""

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "primaryColor": {"type": "STRING", "description": "Primary hex color for QR dots"},
        "secondaryColor": {"type": "STRING", "description": "Secondary hex color for corner squares"},
        "backgroundColor": {
            "type": "STRING",
            "description": "Background hex color, or null/empty string if transparent background is preferred",
        },
        "bgGradientEnabled": {
            "type": "BOOLEAN",
            "description": "Whether to use a gradient background instead of solid color",
        },
        "bgGradientSecondary": {
            "type": "STRING",
            "description": "Secondary hex color for gradient (only if bgGradientEnabled is true)",
        },
    },
    "required": ["primaryColor", "secondaryColor"],
}


def _call_model(sanitized_url: str) -> dict:
    api_key = current_app.config.get("GEMINI_API_KEY")
    if not api_key:
        raise UpstreamError("GEMINI_API_KEY is not configured")

    model = current_app.config.get("GEMINI_MODEL", "gemini-2.0-flash")
    base = current_app.config.get("GEMINI_API_URL", DEFAULT_GEMINI_API_URL).rstrip("/")
    body = {
        "contents": [{"parts": [{"text": PROMPT_TEMPLATE.format(url=sanitized_url)}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }

    current_app.logger.info(f"Requesting branding suggestion for {sanitized_url} from {model}")
    try:
        resp = requests.post(
            f"{base}/models/{model}:generateContent",
            headers={"x-goog-api-key": api_key},
            json=body,
            timeout=current_app.config.get("GEMINI_TIMEOUT", 30),
        )
        resp.raise_for_status()
        text = resp.json()["candidates"][0]["content"]["parts"][0]["text"]
        result = json.loads(text or "{}")
    except requests.RequestException as e:
        raise UpstreamError(f"AI suggestion request failed: {e}")
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise UpstreamError(f"AI suggestion response could not be read: {e}")

    if not isinstance(result, dict) or not result.get("primaryColor") or not result.get("secondaryColor"):
        raise UpstreamError("AI suggestion response is missing required colors")
    return result


def normalize_suggestion(result: dict) -> dict:
    suggestion = {
        "primaryColor": result["primaryColor"],
        "secondaryColor": result["secondaryColor"],
        "backgroundColor": result.get("backgroundColor") or None,
        "bgGradientEnabled": bool(result.get("bgGradientEnabled", False)),
    }
    if result.get("bgGradientSecondary"):
        suggestion["bgGradientSecondary"] = result["bgGradientSecondary"]
    return suggestion


def get_branding_insights(user: User, url) -> dict:
    plan_checker.require_ai_suggestion(user)
    sanitized = sanitize_branding_url(url)

    suggestion = normalize_suggestion(_call_model(sanitized))

    limit = limits_for(user)["ai_suggestions"]
    try:
        counted = user_repository.increment_ai_suggestions(user.id, limit)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to record AI suggestion for user {user.id}: {e}")
        raise UpstreamError("Error updating your account limits")

    if not counted:
        # A concurrent request used the last slot first
        raise QuotaExceeded(plan_checker.ai_limit_message(limit), limit)

    return suggestion


def fetch_logo(url) -> str | None:
    """Download an image and return it as a data URI, or None on any failure."""
    if not isinstance(url, str) or not url.strip():
        return None
    url = url.strip()
    if not url.lower().startswith(tuple(f"{s}://" for s in ALLOWED_SCHEMES)):
        return None

    max_bytes = current_app.config.get("MAX_LOGO_BYTES", 2 * 1024 * 1024)
    chunks = []
    size = 0
    try:
        with requests.get(url, timeout=10, stream=True) as resp:
            if not resp.ok:
                return None
            mime_type = resp.headers.get("content-type") or "image/png"
            for chunk in resp.iter_content(chunk_size=LOGO_CHUNK_SIZE):
                size += len(chunk)
                if size > max_bytes:
                    current_app.logger.warning(f"Logo {url} exceeds {max_bytes} bytes")
                    return None
                chunks.append(chunk)
    except requests.RequestException as e:
        current_app.logger.warning(f"Error fetching logo {url}: {e}")
        return None

    encoded = base64.b64encode(b"".join(chunks)).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"
